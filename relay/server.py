"""
============================================================================
DEADMAN RELAY - HTTP SERVER
============================================================================
A lightweight aiohttp server in front of the RelayGate.

Endpoints
---------
    GET  /healthz           → 200 "OK"  (liveness, no auth)
    GET  /<channel>         → relay ?message= to <channel>
    POST /<channel>         → relay the request body to <channel>

Query parameters: token, format (json | apprise_json | markdown | md),
silent ("true" disables the chat notification sound), message.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from typing import Optional

from aiohttp import hdrs, web

from config.constants import HTTPStatus, RelayPaths
from config.settings import RelaySettings
from relay.gate import RelayGate, RelayRequest
from utils.logger import get_logger


logger = get_logger("RelayServer")


def build_app(gate: RelayGate) -> web.Application:
    """Create the aiohttp application routing every path through ``gate``."""

    async def handle_health(request: web.Request) -> web.Response:
        return web.Response(text="OK", status=HTTPStatus.OK)

    async def handle_relay(request: web.Request) -> web.Response:
        relay_request = RelayRequest(
            method=request.method,
            path=request.path,
            query=dict(request.query),
            authorization=request.headers.get(hdrs.AUTHORIZATION),
            body=await request.read(),
        )
        response = await gate.handle_notification_request(relay_request)
        return web.Response(text=response.text, status=response.status)

    app = web.Application()
    app.router.add_get(RelayPaths.HEALTHZ, handle_health)
    app.router.add_route("GET", "/{channel:.*}", handle_relay)
    app.router.add_route("POST", "/{channel:.*}", handle_relay)
    return app


class RelayServer:
    """
    Binds the relay application to a host and port.

    Attributes
    ----------
    _app : aiohttp.web.Application
    _runner : aiohttp.web.AppRunner
    _site : aiohttp.web.TCPSite
    """

    def __init__(self, gate: RelayGate, settings: RelaySettings):
        self.settings = settings
        self._app = build_app(gate)
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    async def start(self) -> None:
        """Bind and start serving."""
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.settings.host, self.settings.port)
        await self._site.start()
        logger.info(f"✓ Relay listening on {self.settings.host}:{self.settings.port}")

    async def stop(self) -> None:
        """Gracefully shut down the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
        logger.info("✓ Relay stopped")
