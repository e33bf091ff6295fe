"""Local redirect agent for the implicit-grant flow.

Starts a temporary loopback HTTP server, opens the system browser on the
authorization URL and waits for the provider to redirect back.

Implicit-grant tokens arrive in the URL fragment, which browsers never send
to the server. ``/callback`` therefore serves a small relay page that
forwards the fragment (or the query, for provider errors) to ``/complete``.
"""

from __future__ import annotations

import asyncio
import html
import logging
import webbrowser
from http.server import HTTPServer, BaseHTTPRequestHandler
from threading import Thread
from urllib.parse import parse_qsl, urlparse

from ..config import AuthSettings
from .client import RedirectResult


logger = logging.getLogger(__name__)


RELAY_PAGE = """<!DOCTYPE html>
<html>
<head><title>Signing in...</title></head>
<body>
<p>Completing sign-in...</p>
<script>
  var params = window.location.hash.substring(1) || window.location.search.substring(1);
  window.location.replace("/complete?" + params);
</script>
</body>
</html>
"""

RESULT_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>{title}</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            display: flex;
            justify-content: center;
            align-items: center;
            height: 100vh;
            margin: 0;
            background: {background};
        }}
        .container {{
            background: white;
            padding: 40px 60px;
            border-radius: 12px;
            box-shadow: 0 10px 40px rgba(0,0,0,0.2);
            text-align: center;
        }}
        h1 {{ color: #333; margin-bottom: 10px; }}
        p {{ color: #666; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{title}</h1>
        <p>{message}</p>
        <p>You can close this window and return to the terminal.</p>
    </div>
</body>
</html>
"""


class RedirectCallbackHandler(BaseHTTPRequestHandler):
    """HTTP handler for the provider redirect."""

    server: "RedirectCallbackServer"

    def log_message(self, format, *args):
        logger.debug("callback server: " + format, *args)

    def do_GET(self):
        parsed = urlparse(self.path)

        if parsed.path == "/callback":
            self._send_html(200, RELAY_PAGE)
        elif parsed.path == "/complete":
            params = dict(parse_qsl(parsed.query))
            result = RedirectResult.from_params(params)
            self.server.callback_result = result

            if result.success:
                self._send_result_page(200, "Authorization Successful!", "Signed in.", "#6441a5")
            else:
                message = params.get("error_description") or result.error or "unknown_error"
                self._send_result_page(400, "Authorization Failed", message, "#ee5a5a")
        else:
            self._send_html(404, "<h1>Not found</h1>")

    def _send_result_page(self, status: int, title: str, message: str, background: str):
        self._send_html(
            status,
            RESULT_PAGE.format(title=title, message=html.escape(message), background=background),
        )

    def _send_html(self, status: int, body: str):
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.end_headers()
        self.wfile.write(body.encode())


class RedirectCallbackServer(HTTPServer):
    """HTTPServer that keeps the redirect result on the instance."""

    def __init__(self, address: tuple[str, int]):
        super().__init__(address, RedirectCallbackHandler)
        self.callback_result: RedirectResult | None = None


class LocalRedirectAgent:
    """Redirect agent backed by the system browser and a loopback server.

    Usage:
        agent = LocalRedirectAgent(port=3000)
        result = await agent.perform_authorization_redirect(auth_url)

    The redirect URI (``http://localhost:3000/callback`` by default) must be
    registered with the provider. If no redirect arrives within ``timeout``
    seconds the agent gives up and reports a ``cancel`` result.
    """

    def __init__(
        self,
        port: int = 3000,
        host: str = "localhost",
        timeout: float = 300,
        open_browser: bool = True,
        poll_interval: float = 0.1,
    ):
        self.port = port
        self.host = host
        self.timeout = timeout
        self.open_browser = open_browser
        self.poll_interval = poll_interval
        self._server: RedirectCallbackServer | None = None
        self._thread: Thread | None = None

    @classmethod
    def from_settings(cls, settings: AuthSettings, open_browser: bool = True) -> "LocalRedirectAgent":
        return cls(
            port=settings.callback_port,
            host=settings.callback_host,
            timeout=settings.callback_timeout_seconds,
            open_browser=open_browser,
        )

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.host}:{self.port}/callback"

    def start(self) -> int:
        """Start the callback server.

        Returns:
            The port the server is running on
        """
        self._server = RedirectCallbackServer((self.host, self.port))
        if self.port == 0:
            self.port = self._server.server_address[1]

        self._thread = Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        return self.port

    def stop(self):
        """Stop the callback server."""
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=1)
            self._thread = None

    async def wait_for_result(self) -> RedirectResult:
        """Wait for the redirect, or report ``cancel`` after the timeout."""
        loop = asyncio.get_running_loop()
        start = loop.time()
        while loop.time() - start < self.timeout:
            if self._server and self._server.callback_result is not None:
                return self._server.callback_result
            await asyncio.sleep(self.poll_interval)

        logger.warning("No authorization redirect received within %s seconds", self.timeout)
        return RedirectResult(type="cancel", params={"error": "timeout"})

    async def perform_authorization_redirect(self, url: str) -> RedirectResult:
        self.start()
        try:
            logger.info("Opening browser for authorization: %s", url)
            if self.open_browser:
                webbrowser.open(url)
            return await self.wait_for_result()
        finally:
            self.stop()
