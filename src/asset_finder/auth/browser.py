"""System-browser window driver with a local relay server."""

import asyncio
import html
import json
import logging
import webbrowser
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from aiohttp import web

from .window import MessageHandler, PopupOptions, WindowDriver

logger = logging.getLogger(__name__)

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <title>{title}</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            max-width: 600px;
            margin: 100px auto;
            padding: 40px;
            text-align: center;
            background: #f5f5f5;
        }}
        .container {{
            background: white;
            padding: 40px;
            border-radius: 8px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }}
        h1 {{ color: #1a1a1a; margin-bottom: 16px; }}
        p {{ color: #616061; line-height: 1.5; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{heading}</h1>
        <p>{text}</p>
    </div>
    {script}
</body>
</html>
"""


CLOSE_BEACON_SCRIPT = """<script>
        window.addEventListener("pagehide", function () {{
            navigator.sendBeacon({url});
        }});
    </script>"""


def render_page(title: str, heading: str, text: str, beacon_url: Optional[str] = None) -> str:
    """Render a relay page; with ``beacon_url`` the page reports when it is left."""
    script = CLOSE_BEACON_SCRIPT.format(url=json.dumps(beacon_url)) if beacon_url else ""
    return PAGE_TEMPLATE.format(
        title=html.escape(title),
        heading=html.escape(heading),
        text=html.escape(text),
        script=script,
    )


class BrowserWindowDriver(WindowDriver):
    """Opens the system browser and listens for the window's reports on localhost.

    Remote surfaces report back by redirecting the browser to the relay:
    ``/relay?domain=...`` (domain chosen), ``/relay?success=1`` and
    ``/relay?aborted=1`` (user cancelled). ``/relay/status`` exposes the last
    payload the host posted (e.g. ``{"domainError": ...}``).

    The domain-received page beacons ``/relay/closed?generation=N`` when it is
    left. Every host-initiated ``open`` or ``navigate`` starts a new generation,
    so only a beacon from the page currently on screen marks the window closed;
    the one fired because the host moved the browser on is dropped.
    """

    def __init__(self, port: int = 8765, host: str = "localhost"):
        """Initialize the driver.

        Args:
            port: Port the relay server listens on
            host: Interface the relay server binds to
        """
        self.port = port
        self.host = host
        self.app = web.Application()
        self.app.router.add_get("/relay", self.handle_relay)
        self.app.router.add_get("/relay/closed", self.handle_closed)
        self.app.router.add_post("/relay/closed", self.handle_closed)
        self.app.router.add_get("/relay/status", self.handle_status)
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None
        self._on_message: Optional[MessageHandler] = None
        self._closed = True
        self._last_message: Optional[Dict[str, Any]] = None
        self._generation = 0

    @property
    def relay_url(self) -> str:
        return f"http://{self.host}:{self.port}/relay"

    @property
    def closed(self) -> bool:
        return self._closed

    def with_relay(self, url: str) -> str:
        """Append the relay address so the remote surface knows where to report."""
        parts = urlsplit(url)
        query = parse_qsl(parts.query, keep_blank_values=True)
        query.append(("relay", self.relay_url))
        return urlunsplit(parts._replace(query=urlencode(query)))

    async def handle_relay(self, request: web.Request) -> web.Response:
        """Turn a relay hit into a window message for the host."""
        domain = request.query.get("domain")
        if domain:
            message: Dict[str, Any] = {"domain": domain}
            heading, text = "Domain received", "Continue in the next step to authorize access."
            beacon_url: Optional[str] = f"/relay/closed?generation={self._generation}"
        elif request.query.get("success"):
            message = {"success": True}
            heading, text = "Authorization complete", "You can close this window."
            beacon_url = None
        elif request.query.get("aborted"):
            message = {"aborted": True}
            heading, text = "Authorization cancelled", "You can close this window."
            beacon_url = None
        else:
            return web.Response(
                text=render_page(
                    "Invalid Request", "Invalid request", "Missing relay parameters."
                ),
                content_type="text/html",
                status=400,
            )

        if self._on_message is not None and not self._closed:
            self._on_message(message)

        error = (self._last_message or {}).get("domainError")
        if error:
            heading, text = "Authorization failed", str(error)

        return web.Response(
            text=render_page("Asset Finder", heading, text, beacon_url),
            content_type="text/html",
        )

    async def handle_closed(self, request: web.Request) -> web.Response:
        """Mark the window closed unless the beacon comes from a page the host left."""
        try:
            generation = int(request.query.get("generation", self._generation))
        except ValueError:
            generation = self._generation

        if generation < self._generation:
            logger.debug(
                "Ignoring close beacon from generation %d (current %d)",
                generation,
                self._generation,
            )
        else:
            self._closed = True
        return web.Response(status=204)

    async def handle_status(self, request: web.Request) -> web.Response:
        return web.json_response(self._last_message or {})

    async def start(self) -> None:
        """Start the relay server."""
        if self.runner is not None:
            return
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()
        logger.info("Authorization relay listening on %s", self.relay_url)

    async def stop(self) -> None:
        """Stop the relay server."""
        if self.site:
            await self.site.stop()
            self.site = None
        if self.runner:
            await self.runner.cleanup()
            self.runner = None

    async def open(self, url: str, options: PopupOptions, on_message: MessageHandler) -> None:
        await self.start()
        self._on_message = on_message
        self._last_message = None
        self._closed = False
        self._generation += 1
        await self._show(self.with_relay(url), new=1)

    async def navigate(self, url: str) -> None:
        self._generation += 1
        await self._show(self.with_relay(url), new=0)

    async def post_message(self, payload: Dict[str, Any]) -> None:
        self._last_message = dict(payload)

    async def close(self) -> None:
        self._closed = True
        self._on_message = None
        await self.stop()

    async def _show(self, url: str, new: int) -> None:
        opened = await asyncio.to_thread(webbrowser.open, url, new)
        if not opened:
            logger.warning("Could not open a browser, open this URL manually: %s", url)
