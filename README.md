# microviewer

A small read-only HTTP backend that serves microcontroller board data as
JSON: categories, manufacturers, the boards in each, and the details of a
single board. Queries run through a bounded pool of database transactions;
out of the box the database is an SQLite file.

## Installing

```
pip install .
```

## Running

```
microviewer
```

Options:

| Option                 | Default          | Meaning                                   |
|------------------------|------------------|-------------------------------------------|
| `--host HOST`          | `0.0.0.0`        | address to listen on                      |
| `--port PORT`          | `9080`           | port to listen on                         |
| `--database PATH`      | `microviewer.db` | SQLite database file                      |
| `--transactions N`     | `8`              | most transactions open at once (min. 1)   |

On start-up it prints the backend version and API version, opens the first
database connection and then serves until interrupted. It exits with status
1 if the first connection cannot be opened or the server cannot bind its
address, and with status 0 after Ctrl-C.

## Endpoints

All endpoints answer `GET`. A path that matches no route gets `404`; a known
path asked for with another method gets `405`.

| Path                | Response                                                              |
|---------------------|-----------------------------------------------------------------------|
| `/`                 | `{"backend_version": "...", "api_version": 1}`                        |
| `/favicon.ico`      | `204 No Content`                                                      |
| `/categories`       | `{"categories": [{"cat_name": ..., "cat_id": ...}, ...]}`             |
| `/category/:id`     | `{"boards": [{"boa_name": ..., "boa_id": ...}, ...]}` for that category |
| `/manufacturers`    | `{"manufacturers": [{"man_name": ..., "man_id": ...}, ...]}`          |
| `/manufacturer/:id` | `{"boards": [{"boa_name": ..., "boa_id": ...}, ...]}` for that maker  |
| `/details/:id`      | `boa_name`, `boa_image`, `man_name`, `cat_name`, `chi_name`, `boa_doc`, `boa_sch`, `boa_pin` |

An `:id` that is not an unsigned 64-bit integer gets `400 Bad Request` with
the reason as the body. An id that matches nothing gets an empty list, or an
empty object from `/details/:id`. A failing query, or a row whose values are
not of the expected types (text names and links, unsigned integer ids), gets
`500 Internal Server Error` with an empty body, and its transaction is
cancelled.

The queries expect tables `categories (cat_id, cat_name)`,
`manufacturers (man_id, man_name)`, `chips (chi_id, chi_name)` and
`boards (boa_id, boa_name, cat_id, man_id, chi_id, boa_image_link,
boa_doc_link, boa_sch_link, boa_pin_link)`.

## Using it as a library

- `microviewer.queryservice.QueryService(connection_string,
  transactions_limit=8, connect=...)` holds the pool of database slots.
  `connect` takes the connection string and returns a DB-API connection; the
  default opens it with `sqlite3`. `start()` opens the first connection;
  `start_transaction()` waits for a free slot and returns a `Transaction`;
  `commit_transaction()` and `cancel_transaction()` finish it and free the
  slot. `transaction()` is a context manager that commits on normal exit and
  cancels when the block raises. Failures raise `QueryServiceError`.
- `Transaction.query(sql, params)` runs a statement and returns its rows as
  tuples; `commit()` and `abort()` finish it.
- `microviewer.api.Router` maps `GET` patterns such as `/category/:id` to
  handlers with `add_get(pattern, handler)`;
  `dispatch(method, path, address)` returns a `Response` with `status`,
  `body` and `headers`. `prepare_endpoints(router, service)` registers every
  endpoint above, bound to a `QueryService`. `parse_id(request)` reads the
  `id` path parameter.
- `microviewer.server.make_server(router, host, port)` wraps a router in a
  threaded `http.server` server; `microviewer.server.main(argv)` is the
  `microviewer` command.

## What it does not do

It does not create or fill the database schema, and it has no endpoints that
write data. Only an SQLite connector is included: for another database, pass
your own `connect` callable returning a DB-API connection that accepts `?`
parameter placeholders.

## Tests

```
pip install .[test]
pytest
```