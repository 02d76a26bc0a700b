"""
System Routes - health and scenario inspection endpoints.
"""

from aiohttp import web

from ai_stream_mock import __version__
from ai_stream_mock.core.scenarios import SCENARIO_OPTIONS, describe_presets

from ..keys import CONFIG_KEY

SYSTEM_PREFIX = "/__mock__"


def setup_system_routes(app: web.Application) -> None:
    """Register system routes."""
    app.router.add_get(f"{SYSTEM_PREFIX}/health", health_handler)
    app.router.add_get(f"{SYSTEM_PREFIX}/scenarios", scenarios_handler)


async def health_handler(request: web.Request) -> web.Response:
    """GET /__mock__/health - Health check."""
    return web.json_response({"status": "healthy", "version": __version__})


async def scenarios_handler(request: web.Request) -> web.Response:
    """GET /__mock__/scenarios - Presets, option fallbacks and active defaults."""
    config = request.app[CONFIG_KEY]
    return web.json_response({
        "presets": describe_presets(),
        "options": {
            option.name: {
                "type": option.type.value,
                "fallback": option.fallback,
                "description": option.description,
            }
            for option in SCENARIO_OPTIONS
        },
        **config.describe(),
    })
