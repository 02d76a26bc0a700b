"""
Mock Server - aiohttp application hosting the AI mock middleware.

The mock can be mounted into any aiohttp application with
``ai_mock_middleware``; this module provides a standalone server for
running it on its own.
"""

import asyncio
from typing import Optional

from aiohttp import web

from ai_stream_mock.core.config_manager import MockServerConfig
from ai_stream_mock.core.endpoint import describe_endpoint
from ai_stream_mock.core.logging_utils import get_module_logger

from .keys import CONFIG_KEY
from .middleware import (
    ai_mock_middleware,
    error_handling_middleware,
    localhost_only_middleware,
    request_logging_middleware,
    set_debug_mode,
)
from .routes import setup_all_routes


logger = get_module_logger("MockServer")


def create_app(config: MockServerConfig) -> web.Application:
    """Create and configure the aiohttp application."""
    # Build middleware chain: localhost check -> request logging -> error handling -> mock
    middlewares = [request_logging_middleware, error_handling_middleware, ai_mock_middleware(config)]

    if config.localhost_only:
        middlewares.insert(0, localhost_only_middleware)

    app = web.Application(middlewares=middlewares)
    app[CONFIG_KEY] = config
    setup_all_routes(app)
    return app


class MockServer:
    """
    Standalone HTTP server for the AI stream mock.

    Client disconnects cancel the request handler, which is how an open SSE
    stream notices that its client went away.
    """

    def __init__(self, config: MockServerConfig):
        self.config = config
        self.host = config.host
        self.port = config.port

        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._running = False

        set_debug_mode(config.debug)

    async def start(self) -> None:
        """Start the server (non-blocking)."""
        if self._running:
            logger.warning("Mock server already running")
            return

        self._app = create_app(self.config)
        self._runner = web.AppRunner(self._app, handler_cancellation=True)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        self._running = True
        mode_info = " (debug mode)" if self.config.debug else ""
        logger.info("Mock server started on %s%s", self.url, mode_info)
        logger.info(
            "Serving %s from %s",
            ", ".join(describe_endpoint(self.config.endpoint)),
            self.config.data_dir,
        )

    async def stop(self) -> None:
        """Stop the server gracefully."""
        if not self._running:
            return

        logger.info("Stopping mock server...")

        if self._site:
            await self._site.stop()
            self._site = None

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        self._app = None
        self._running = False

        logger.info("Mock server stopped")

    async def serve_forever(self, stop_event: asyncio.Event) -> None:
        """Start, wait for ``stop_event``, then stop."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"
