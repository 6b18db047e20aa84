"""Threaded HTTP endpoint serving the bridge webhook route."""

from __future__ import annotations

import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlparse

from loguru import logger

from varbridge.bridge.dispatcher import CommandDispatcher, HookRequest
from varbridge.bridge.envelope import dump_envelope, error_envelope

DEFAULT_HOOK_PATH = "varbridge"


def normalize_hook_route(path: str | None) -> str:
    """``"lights"`` -> ``"/hook/lights"``; blank falls back to the default."""
    text = str(path or "").strip().strip("/")
    if text.startswith("hook/"):
        text = text[5:].strip("/")
    return f"/hook/{text or DEFAULT_HOOK_PATH}"


class _BridgeRequestHandler(BaseHTTPRequestHandler):
    """Hands every verb to the dispatcher so auth runs before the method check."""

    dispatcher: CommandDispatcher | None = None
    hook_route: str = normalize_hook_route(DEFAULT_HOOK_PATH)
    max_request_body_bytes: int = 1024 * 1024
    debug_log: bool = False

    server_version = "varbridge/0.1"

    def do_GET(self) -> None:  # noqa: N802
        self._handle_hook()

    def do_POST(self) -> None:  # noqa: N802
        self._handle_hook()

    def do_PUT(self) -> None:  # noqa: N802
        self._handle_hook()

    def do_PATCH(self) -> None:  # noqa: N802
        self._handle_hook()

    def do_DELETE(self) -> None:  # noqa: N802
        self._handle_hook()

    def log_message(self, fmt: str, *args: Any) -> None:
        logger.debug("bridge-api " + fmt % args)

    def _handle_hook(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path.rstrip("/") != self.hook_route:
            self._send_json(
                HTTPStatus.NOT_FOUND,
                error_envelope("Unknown endpoint", code=404, data={"path": parsed.path}),
            )
            return
        if self.dispatcher is None:
            self._send_json(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                error_envelope("Dispatcher unavailable", code=500),
            )
            return
        body, body_error = self._read_body()
        if self.debug_log:
            logger.debug(f"hook {self.command} {self.path}")
            logger.debug(f"hook body {body.decode('utf-8', errors='replace')}")
        request = HookRequest(
            method=self.command,
            headers=self.headers,
            query=parse_qs(parsed.query or ""),
            body=body,
            body_error=body_error,
        )
        try:
            status, payload = self.dispatcher.handle(request)
        except Exception as e:
            logger.exception("bridge-api request failed")
            status = HTTPStatus.INTERNAL_SERVER_ERROR
            payload = error_envelope("Exception", code=500, data={"message": str(e)})
        self._send_json(status, payload)

    def _read_body(self) -> tuple[bytes, str]:
        try:
            length = int(self.headers.get("Content-Length", "0"))
        except ValueError:
            length = 0
        max_body = max(1024, int(self.max_request_body_bytes))
        if length > max_body:
            self.close_connection = True
            return b"", f"Request body too large (max {max_body} bytes)"
        return (self.rfile.read(length) if length > 0 else b""), ""

    def _send_json(self, code: HTTPStatus, payload: dict[str, Any]) -> None:
        body = dump_envelope(payload)
        self.send_response(code)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class BridgeServer:
    """Runs the webhook endpoint on a background thread."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        dispatcher: CommandDispatcher,
        hook_path: str = DEFAULT_HOOK_PATH,
        max_request_body_bytes: int = 1024 * 1024,
        debug_log: bool = False,
    ) -> None:
        self.host = host
        self.port = port
        self.dispatcher = dispatcher
        self.hook_route = normalize_hook_route(hook_path)
        self.max_request_body_bytes = max(1024, int(max_request_body_bytes))
        self.debug_log = bool(debug_log)
        self._thread: threading.Thread | None = None
        self._server: ThreadingHTTPServer | None = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{self.hook_route}"

    def start(self) -> None:
        handler_cls = type("BoundBridgeRequestHandler", (_BridgeRequestHandler,), {})
        handler_cls.dispatcher = self.dispatcher
        handler_cls.hook_route = self.hook_route
        handler_cls.max_request_body_bytes = self.max_request_body_bytes
        handler_cls.debug_log = self.debug_log
        self._server = ThreadingHTTPServer((self.host, self.port), handler_cls)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info(f"Bridge webhook listening on {self.url}")

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2)
        self._thread = None
        logger.info("Bridge webhook stopped")
