"""HTTP routing and the JSON endpoints of the MicroViewer backend."""

from __future__ import annotations

import functools
import json
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any
from urllib.parse import unquote

from microviewer.queryservice import QueryService

logger = logging.getLogger(__name__)

BACKEND_VERSION = "0.1 (simple gets), build: 136 (2025-05-09)"
API_VERSION = 1

JSON_CONTENT_TYPE = "application/json"
NO_ID_MESSAGE = "No id parameter!"
BAD_ID_MESSAGE = "Parameter id must be an unsigned 64!"
FAVICON_MESSAGE = "No favicon for backend!\n"

_U64_MAX = 2**64 - 1
_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class Request:
    """A routed request with the parameters captured from its path."""

    method: str
    path: str
    address: str = ""
    params: Mapping[str, str] = field(default_factory=dict)


@dataclass
class Response:
    """Status, body and headers to send back to the client."""

    status: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def json(cls, document: Any, status: int = HTTPStatus.OK) -> Response:
        body = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
        return cls(status, body, {"Content-Type": JSON_CONTENT_TYPE})


Handler = Callable[[Request], Response]


@dataclass(frozen=True)
class _Route:
    method: str
    pattern: str
    regex: re.Pattern[str]
    handler: Handler


def _compile(pattern: str) -> re.Pattern[str]:
    if not pattern.startswith("/"):
        raise ValueError(f"route pattern must start with '/': {pattern!r}")
    parts = []
    for segment in pattern.split("/"):
        if segment.startswith(":"):
            name = segment[1:]
            if not name.isidentifier():
                raise ValueError(f"invalid parameter name in route: {segment!r}")
            parts.append(f"(?P<{name}>[^/]+)")
        else:
            parts.append(re.escape(segment))
    return re.compile("/".join(parts))


class Router:
    """Matches request paths against registered patterns such as ``/category/:id``."""

    def __init__(self) -> None:
        self._routes: list[_Route] = []

    def add_get(self, pattern: str, handler: Handler) -> None:
        self._routes.append(_Route("GET", pattern, _compile(pattern), handler))

    def dispatch(self, method: str, path: str, address: str = "") -> Response:
        """Run the handler whose route matches, or answer 404/405."""
        method = method.upper()
        path_known = False
        for route in self._routes:
            match = route.regex.fullmatch(path)
            if match is None:
                continue
            if route.method != method:
                path_known = True
                continue
            params = {name: unquote(value) for name, value in match.groupdict().items()}
            return route.handler(Request(method, path, address, params))
        if path_known:
            return Response(HTTPStatus.METHOD_NOT_ALLOWED, "Method Not Allowed")
        return Response(HTTPStatus.NOT_FOUND, "Could not find a matching route")


def parse_id(request: Request) -> int:
    """Return the ``id`` path parameter as an unsigned 64-bit integer."""
    raw = request.params.get("id")
    if raw is None:
        raise ValueError(NO_ID_MESSAGE)
    if not _DIGITS.fullmatch(raw):
        raise ValueError(BAD_ID_MESSAGE)
    value = int(raw)
    if value > _U64_MAX:
        raise ValueError(BAD_ID_MESSAGE)
    return value


def _require_text(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected text, got {value!r}")
    return value


def _require_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U64_MAX:
        raise TypeError(f"expected an unsigned 64-bit id, got {value!r}")
    return value


def _listing(key: str, id_field: str, name_field: str) -> Callable[[list[tuple]], dict]:
    def build(rows: list[tuple]) -> dict:
        return {
            key: [
                {name_field: _require_text(name), id_field: _require_id(ident)}
                for ident, name in rows
            ]
        }

    return build


_DETAIL_FIELDS = (
    "boa_name",
    "boa_image",
    "man_name",
    "cat_name",
    "chi_name",
    "boa_doc",
    "boa_sch",
    "boa_pin",
)


def _details(rows: list[tuple]) -> dict:
    document: dict[str, str] = {}
    for row in rows:
        document.update(zip(_DETAIL_FIELDS, map(_require_text, row)))
    return document


def _json_query(
    service: QueryService,
    label: str,
    sql: str,
    params: Sequence[Any],
    build: Callable[[list[tuple]], Any],
) -> Response:
    try:
        with service.transaction() as work:
            document = build(work.query(sql, params))
    except Exception as exc:
        logger.error("ERROR: %s request: %s", label, exc)
        return Response(HTTPStatus.INTERNAL_SERVER_ERROR, "")
    return Response.json(document)


def _id_or_error(request: Request) -> int | Response:
    try:
        return parse_id(request)
    except ValueError as exc:
        logger.warning("INVALID: %s", exc)
        return Response(HTTPStatus.BAD_REQUEST, str(exc))


def endpoint_alive(request: Request, service: QueryService) -> Response:
    logger.info("REQUEST: Alive request from: %s", request.address)
    return Response.json({"backend_version": BACKEND_VERSION, "api_version": API_VERSION})


def endpoint_favicon(request: Request, service: QueryService) -> Response:
    logger.info("Refused favicon.")
    return Response(HTTPStatus.NO_CONTENT, FAVICON_MESSAGE)


def endpoint_get_categories(request: Request, service: QueryService) -> Response:
    logger.info("REQUEST: Categories request from: %s", request.address)
    return _json_query(
        service,
        "Categories",
        "SELECT cat_id, cat_name FROM categories;",
        (),
        _listing("categories", "cat_id", "cat_name"),
    )


def endpoint_get_category(request: Request, service: QueryService) -> Response:
    logger.info("REQUEST: Category request from: %s", request.address)
    ident = _id_or_error(request)
    if isinstance(ident, Response):
        return ident
    return _json_query(
        service,
        "Category",
        "SELECT boa_id, boa_name FROM boards WHERE cat_id = ?;",
        (ident,),
        _listing("boards", "boa_id", "boa_name"),
    )


def endpoint_get_manufacturers(request: Request, service: QueryService) -> Response:
    logger.info("REQUEST: Manufacturers request from: %s", request.address)
    return _json_query(
        service,
        "Manufacturers",
        "SELECT man_id, man_name FROM manufacturers;",
        (),
        _listing("manufacturers", "man_id", "man_name"),
    )


def endpoint_get_manufacturer(request: Request, service: QueryService) -> Response:
    logger.info("REQUEST: Manufacturer request from: %s", request.address)
    ident = _id_or_error(request)
    if isinstance(ident, Response):
        return ident
    return _json_query(
        service,
        "Manufacturer",
        "SELECT boa_id, boa_name FROM boards WHERE man_id = ?;",
        (ident,),
        _listing("boards", "boa_id", "boa_name"),
    )


def endpoint_get_details(request: Request, service: QueryService) -> Response:
    logger.info("REQUEST: Details request from: %s", request.address)
    ident = _id_or_error(request)
    if isinstance(ident, Response):
        return ident
    return _json_query(
        service,
        "Details",
        "SELECT boa_name, boa_image_link, man_name, cat_name, chi_name, "
        "boa_doc_link, boa_sch_link, boa_pin_link FROM boards "
        "LEFT JOIN chips ON chips.chi_id = boards.chi_id "
        "LEFT JOIN manufacturers m ON m.man_id = boards.man_id "
        "LEFT JOIN categories c ON c.cat_id = boards.cat_id "
        "WHERE boa_id = ?;",
        (ident,),
        _details,
    )


_ENDPOINTS = (
    ("/", endpoint_alive),
    ("/favicon.ico", endpoint_favicon),
    ("/categories", endpoint_get_categories),
    ("/category/:id", endpoint_get_category),
    ("/manufacturers", endpoint_get_manufacturers),
    ("/manufacturer/:id", endpoint_get_manufacturer),
    ("/details/:id", endpoint_get_details),
)


def prepare_endpoints(router: Router, service: QueryService) -> None:
    """Register every backend endpoint on the router, bound to the service."""
    for pattern, endpoint in _ENDPOINTS:
        router.add_get(pattern, functools.partial(endpoint, service=service))