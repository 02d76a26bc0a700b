"""
Mock request pipeline.

request -> scenario -> http error short-circuit -> file load -> normalize
-> mutate -> JSON inspection document or SSE stream.
"""

from __future__ import annotations

from typing import Optional

from aiohttp import web

from ai_stream_mock.core.chunks import normalize_chunks
from ai_stream_mock.core.config_manager import MockServerConfig
from ai_stream_mock.core.data_files import load_mock_data
from ai_stream_mock.core.endpoint import EndpointMatch
from ai_stream_mock.core.errors import MockError
from ai_stream_mock.core.logging_utils import get_module_logger
from ai_stream_mock.core.mutations import apply_chunk_mutations
from ai_stream_mock.core.scenarios import ScenarioConfig, resolve_scenario
from ai_stream_mock.core.sse import SSE_CONTENT_TYPE
from ai_stream_mock.core.stream_driver import StreamDriver


logger = get_module_logger("MockHandler")


def is_sse_request(request: web.Request) -> bool:
    """Stream when the client accepts text/event-stream or asks for transport=sse."""
    accept = request.headers.get("Accept", "")
    return SSE_CONTENT_TYPE in accept or request.query.get("transport") == "sse"


def resolve_request_scenario(
    request: web.Request,
    matched: EndpointMatch,
    config: MockServerConfig,
) -> ScenarioConfig:
    scenario = resolve_scenario(
        request.query,
        request.headers.get("Last-Event-ID"),
        config.default_scenario,
    )
    if matched.file_selector:
        scenario.file = matched.file_selector
    return scenario


def http_error_response(status: int) -> web.Response:
    return web.json_response({"error": "http_error", "status": status}, status=status)


def server_error_response(message: str) -> web.Response:
    return web.json_response({"error": "mock_server_error", "message": message}, status=500)


async def handle_mock_request(
    request: web.Request,
    matched: EndpointMatch,
    config: MockServerConfig,
) -> web.StreamResponse:
    """Serve one matched mock request.

    Failures before the SSE response is prepared become a 500
    ``mock_server_error``; once streaming has begun the driver owns error
    handling.
    """
    driver: Optional[StreamDriver] = None
    try:
        scenario = resolve_request_scenario(request, matched, config)

        if scenario.http_error_status >= 400:
            logger.info("Injecting HTTP %d for %s", scenario.http_error_status, request.path)
            return http_error_response(scenario.http_error_status)

        path, raw = await load_mock_data(config.data_dir, scenario.file)
        chunks = apply_chunk_mutations(normalize_chunks(raw), scenario)

        if not is_sse_request(request):
            return web.json_response({
                "mode": "json",
                "file": path.name,
                "total": len(chunks),
                "options": scenario.to_dict(),
                "chunks": [chunk.to_dict() for chunk in chunks],
            })

        driver = StreamDriver(chunks, scenario)
        return await driver.run(request)

    except Exception as exc:
        if driver is not None and driver.session is not None:
            raise
        logger.error("Mock request %s failed: %s", request.path, exc, exc_info=not isinstance(exc, MockError))
        return server_error_response(str(exc) or type(exc).__name__)


__all__ = [
    "handle_mock_request",
    "http_error_response",
    "is_sse_request",
    "resolve_request_scenario",
    "server_error_response",
]
