"""HTTP server entry point of the MicroViewer backend."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from microviewer.api import API_VERSION, BACKEND_VERSION, Router, prepare_endpoints
from microviewer.queryservice import QueryService, QueryServiceError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9080
DEFAULT_DATABASE = "microviewer.db"
DEFAULT_TRANSACTIONS = 8


def _handler_class(router: Router) -> type[BaseHTTPRequestHandler]:
    class _RequestHandler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def _handle(self) -> None:
            path = urlsplit(self.path).path
            response = router.dispatch(self.command, path, self.client_address[0])
            status = int(response.status)
            bodiless = status < 200 or status in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED)
            body = b"" if bodiless else response.body.encode("utf-8")
            self.send_response(status)
            for name, value in response.headers.items():
                self.send_header(name, value)
            if not bodiless:
                self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if body and self.command != "HEAD":
                self.wfile.write(body)

        do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = _handle

        def log_message(self, format: str, *args: object) -> None:
            logger.debug("%s - %s", self.address_string(), format % args)

    return _RequestHandler


def make_server(
    router: Router, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT
) -> ThreadingHTTPServer:
    """Bind a threaded HTTP server that answers through the router."""
    server = ThreadingHTTPServer((host, port), _handler_class(router))
    server.daemon_threads = True
    return server


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="microviewer", description="MicroViewer backend")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--database", default=DEFAULT_DATABASE)
    parser.add_argument("--transactions", type=int, default=DEFAULT_TRANSACTIONS)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    print("Starting MicroViewer backend...")
    print(f"Version: {BACKEND_VERSION}")
    print(f"Api version: {API_VERSION}")

    print("Preparing query service...")
    service = QueryService(args.database, args.transactions)
    try:
        service.start()
    except QueryServiceError:
        print("ERROR: First connection to database failed!\nAborting!")
        return 1

    router = Router()
    prepare_endpoints(router, service)
    try:
        server = make_server(router, args.host, args.port)
    except OSError:
        print("ERROR: Failed to start the server!")
        return 1

    host, port = server.server_address[:2]
    print("MicroViewer backend ready!")
    print(f"Address: {host}:{port}")
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0