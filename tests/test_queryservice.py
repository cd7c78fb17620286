import threading

import pytest

from microviewer.queryservice import QueryService, QueryServiceError, Transaction


class FakeCursor:
    description = None

    def execute(self, sql, params):
        self.sql = sql

    def fetchall(self):
        return []


class FakeConnection:
    def __init__(self):
        self.closed = False
        self.commits = 0
        self.rollbacks = 0

    def cursor(self):
        return FakeCursor()

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class Connector:
    def __init__(self, fail_after=None):
        self.made = []
        self.fail_after = fail_after

    def __call__(self, connection_string):
        if self.fail_after is not None and len(self.made) >= self.fail_after:
            raise OSError("unreachable")
        conn = FakeConnection()
        self.made.append(conn)
        return conn


@pytest.fixture
def sqlite_service(tmp_path):
    service = QueryService(str(tmp_path / "db.sqlite"), 4)
    service.start()
    with service.transaction() as work:
        work.query("CREATE TABLE categories (cat_id INTEGER, cat_name TEXT)")
    return service


def test_start_failure_raises():
    service = QueryService("db", 2, connect=Connector(fail_after=0))
    with pytest.raises(QueryServiceError):
        service.start()


def test_start_rejects_closed_first_connection():
    def connect(_):
        conn = FakeConnection()
        conn.closed = True
        return conn

    with pytest.raises(QueryServiceError):
        QueryService("db", 2, connect=connect).start()


def test_start_opens_single_connection():
    connector = Connector()
    QueryService("db", 5, connect=connector).start()
    assert len(connector.made) == 1


def test_limit_clamped_to_one():
    service = QueryService("db", 0, connect=Connector())
    service.start()
    assert service.transactions_limit == 1


def test_start_transaction_before_start_raises():
    with pytest.raises(QueryServiceError):
        QueryService("db", 2, connect=Connector()).start_transaction()


def test_query_round_trip(sqlite_service):
    with sqlite_service.transaction() as work:
        work.query("INSERT INTO categories VALUES (?, ?)", (1, "boards"))
    with sqlite_service.transaction() as work:
        rows = work.query("SELECT cat_id, cat_name FROM categories")
    assert rows == [(1, "boards")]


def test_cancel_rolls_back(sqlite_service):
    work = sqlite_service.start_transaction()
    work.query("INSERT INTO categories VALUES (?, ?)", (2, "chips"))
    sqlite_service.cancel_transaction(work)
    with sqlite_service.transaction() as check:
        assert check.query("SELECT * FROM categories") == []


def test_context_manager_cancels_and_reraises(sqlite_service):
    with pytest.raises(RuntimeError):
        with sqlite_service.transaction() as work:
            work.query("INSERT INTO categories VALUES (?, ?)", (3, "x"))
            raise RuntimeError("boom")
    with sqlite_service.transaction() as check:
        assert check.query("SELECT * FROM categories") == []


def test_commit_unknown_transaction_raises():
    service = QueryService("db", 2, connect=Connector())
    service.start()
    with pytest.raises(QueryServiceError):
        service.commit_transaction(Transaction(FakeConnection()))


def test_cancel_unknown_transaction_raises():
    service = QueryService("db", 2, connect=Connector())
    service.start()
    with pytest.raises(QueryServiceError):
        service.cancel_transaction(Transaction(FakeConnection()))


def test_commit_twice_raises():
    service = QueryService("db", 2, connect=Connector())
    service.start()
    work = service.start_transaction()
    service.commit_transaction(work)
    assert work.connection.commits == 1
    with pytest.raises(QueryServiceError):
        service.commit_transaction(work)


def test_finished_transaction_rejects_queries():
    work = Transaction(FakeConnection())
    work.abort()
    assert work.connection.rollbacks == 1
    with pytest.raises(QueryServiceError):
        work.query("SELECT 1")


def test_first_slot_reuses_initial_connection():
    connector = Connector()
    service = QueryService("db", 3, connect=connector)
    service.start()
    work = service.start_transaction()
    assert work.connection is connector.made[0]
    assert len(connector.made) == 1


def test_concurrent_transactions_use_distinct_connections():
    connector = Connector()
    service = QueryService("db", 3, connect=connector)
    service.start()
    works = [service.start_transaction() for _ in range(3)]
    assert len({id(w.connection) for w in works}) == 3
    assert len(connector.made) == 3


def test_reconnects_closed_slot():
    connector = Connector()
    service = QueryService("db", 1, connect=connector)
    service.start()
    connector.made[0].closed = True
    work = service.start_transaction()
    assert work.connection is connector.made[1]


def test_slot_connection_failure_raises():
    service = QueryService("db", 2, connect=Connector(fail_after=1))
    service.start()
    service.start_transaction()
    with pytest.raises(QueryServiceError):
        service.start_transaction()


def test_waits_for_free_slot():
    service = QueryService("db", 1, connect=Connector())
    service.start()
    first = service.start_transaction()
    obtained = []
    waiter = threading.Thread(
        target=lambda: obtained.append(service.start_transaction())
    )
    waiter.start()
    waiter.join(0.2)
    assert waiter.is_alive()
    assert obtained == []
    service.commit_transaction(first)
    waiter.join(2)
    assert len(obtained) == 1
    assert obtained[0] is not first
    assert obtained[0].connection is first.connection