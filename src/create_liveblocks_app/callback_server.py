"""Single-shot local HTTP server that waits for an integration callback.

The external integration page POSTs a JSON object back to the origin it was
given. The first valid body resolves the wait and the listener is closed
before ``wait_for_callback`` returns.
"""

import http.server
import json
import threading
import time
from typing import Callable

# How often the serving loop wakes up to check the deadline and cancel event
POLL_INTERVAL = 0.25

MAX_BODY_BYTES = 1024 * 1024


class CallbackServerError(RuntimeError):
    """The local listener could not be started."""


class CallbackTimeout(TimeoutError):
    """No callback arrived before the deadline."""


class CallbackCancelled(RuntimeError):
    """The wait was cancelled through the cancel event."""


class _CallbackHTTPServer(http.server.HTTPServer):
    # Stays None until a valid callback body has been received
    result: dict | None = None


class CallbackHandler(http.server.BaseHTTPRequestHandler):
    server: _CallbackHTTPServer
    # Socket timeout so a silent client cannot stall the serving loop
    timeout = 10

    def _send_cors_headers(self) -> None:
        self.send_header("Access-Control-Allow-Origin", self.headers.get("Origin") or "*")
        self.send_header("Access-Control-Allow-Methods", "POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Access-Control-Allow-Private-Network", "true")

    def _send_json(self, status: int, payload: dict) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self._send_cors_headers()
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_OPTIONS(self) -> None:  # noqa: N802
        self.send_response(204)
        self._send_cors_headers()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_POST(self) -> None:  # noqa: N802
        if self.server.result is not None:
            self._send_json(409, {"error": "callback already received"})
            return

        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = -1
        if length <= 0 or length > MAX_BODY_BYTES:
            self._send_json(400, {"error": "missing or oversized body"})
            return

        raw = self.rfile.read(length)
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            self._send_json(400, {"error": "body is not valid JSON"})
            return
        if not isinstance(payload, dict):
            self._send_json(400, {"error": "body must be a JSON object"})
            return

        self.server.result = payload
        self._send_json(200, {"ok": True})

    def do_GET(self) -> None:  # noqa: N802
        self.send_error(405, "Method Not Allowed")

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        return


def wait_for_callback(
    initiate: Callable[[str], None],
    *,
    host: str = "127.0.0.1",
    port: int = 0,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
) -> dict:
    """Serve until one callback arrives and return its JSON body.

    ``initiate`` receives the origin of the bound socket (``http://127.0.0.1:<port>``)
    once the listener is bound. Requests are served on the calling thread.

    Raises:
        CallbackServerError: the port could not be bound
        CallbackTimeout: ``timeout`` seconds passed without a callback
        CallbackCancelled: ``cancel`` was set before a callback arrived
    """
    try:
        server = _CallbackHTTPServer((host, port), CallbackHandler)
    except OSError as e:
        raise CallbackServerError(f"Could not start callback server on {host}:{port}: {e}") from e

    with server:
        server.timeout = POLL_INTERVAL
        origin = f"http://{server.server_address[0]}:{server.server_port}"
        initiate(origin)

        deadline = None if timeout is None else time.monotonic() + timeout
        while server.result is None:
            if cancel is not None and cancel.is_set():
                raise CallbackCancelled("Callback wait cancelled")
            if deadline is not None and time.monotonic() >= deadline:
                raise CallbackTimeout(f"No callback received on {origin} within {timeout:g}s")
            server.handle_request()

        return server.result
