"""Short-lived local HTTP endpoint that captures the OAuth redirect."""

import logging
import socket
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlparse

from .exceptions import (
    AuthorizationDeniedError,
    AuthorizationError,
    AuthorizationTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5 * 60

SUCCESS_PAGE = """<html>
  <head><title>Authorization Successful</title></head>
  <body style="font-family: system-ui; padding: 40px; text-align: center;">
    <h1 style="color: #28a745;">Authorization Successful!</h1>
    <p>You can close this window and return to the terminal.</p>
    <script>setTimeout(() => window.close(), 2000);</script>
  </body>
</html>
"""

FAILURE_PAGE = "Authorization failed: No code received"


class _CallbackServer(HTTPServer):
    """HTTPServer that remembers the outcome of the first callback."""

    # No other socket may share the port and intercept the code
    allow_reuse_port = False

    def __init__(self, address: tuple[str, int], callback_path: str):
        if ":" in address[0]:
            self.address_family = socket.AF_INET6
        super().__init__(address, _CallbackHandler)
        self.callback_path = callback_path
        self.resolved = False
        self.code: Optional[str] = None
        self.error: Optional[str] = None


class _CallbackHandler(BaseHTTPRequestHandler):
    # Don't let a half-open connection stall the wait loop
    timeout = 10

    server: _CallbackServer

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != self.server.callback_path or self.server.resolved:
            self._respond(404, "text/plain", "Not found")
            return

        params = parse_qs(parsed.query)
        code = params.get("code", [""])[0]
        if code:
            self._respond(200, "text/html; charset=utf-8", SUCCESS_PAGE)
            self.server.code = code
        else:
            self._respond(400, "text/plain; charset=utf-8", FAILURE_PAGE)
            self.server.error = params.get("error", ["missing code"])[0]
        self.server.resolved = True

    def _respond(self, status: int, content_type: str, body: str) -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format: str, *args) -> None:
        logger.debug("Callback request: " + format, *args)


class CallbackListener:
    """Single-use listener for the authorization redirect.

    Binding happens on entry so the socket is ready before the browser is
    sent to the provider; the socket is closed on every exit path
    (code received, denial, timeout, KeyboardInterrupt).

    Example:
        with CallbackListener(port=3000, path="/oauth/callback") as listener:
            webbrowser.open(url)
            code = listener.wait_for_code()
    """

    def __init__(
        self,
        port: int = 3000,
        path: str = "/oauth/callback",
        timeout: float = DEFAULT_TIMEOUT,
        host: str = "127.0.0.1",
        poll_interval: float = 0.5,
    ):
        """Initialize the listener.

        Args:
            port: Port to bind. 0 picks a free port (for testing).
            path: Only request path treated as the OAuth redirect
            timeout: Seconds to wait for the redirect before giving up
            host: Loopback address to bind, IPv4 or IPv6 (e.g. "::1").
                Must match the address the redirect URI resolves to in the
                browser.
            poll_interval: Upper bound on each blocking wait, so the
                deadline is checked regularly
        """
        self._address = (host, port)
        self._path = path
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._server: Optional[_CallbackServer] = None

    def __enter__(self) -> "CallbackListener":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def port(self) -> int:
        """Port actually bound (useful when constructed with port 0)."""
        if self._server is None:
            raise RuntimeError("Listener is not running")
        return self._server.server_address[1]

    @property
    def is_listening(self) -> bool:
        return self._server is not None

    def start(self) -> None:
        """Bind the listening socket.

        Raises:
            AuthorizationError: If the port cannot be bound
        """
        if self._server is not None:
            return
        try:
            self._server = _CallbackServer(self._address, self._path)
        except OSError as e:
            raise AuthorizationError(
                f"Could not listen for the OAuth callback on port {self._address[1]}: {e}"
            ) from e
        logger.info("Waiting for authorization on port %d...", self.port)

    def wait_for_code(self) -> str:
        """Block until the redirect arrives, then stop listening.

        Returns:
            The authorization code

        Raises:
            AuthorizationTimeoutError: No redirect before the timeout
            AuthorizationDeniedError: The redirect carried no code
        """
        self.start()
        server = self._server
        deadline = time.monotonic() + self._timeout
        try:
            while not server.resolved:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise AuthorizationTimeoutError(self._timeout)
                server.timeout = min(self._poll_interval, remaining)
                server.handle_request()
        finally:
            self.close()

        if server.code is None:
            raise AuthorizationDeniedError(server.error)
        return server.code

    def close(self) -> None:
        """Stop listening. Safe to call more than once."""
        if self._server is not None:
            self._server.server_close()
            self._server = None
