"""
API Middleware - mock interception, security and error handling.

Provides:
- The AI mock interceptor (claims matching paths, passes the rest through)
- Localhost-only access enforcement
- Unified error response formatting for non-mock routes
- Request logging
- Debug mode with verbose errors
"""

import time
import traceback
from typing import Callable, Optional

from aiohttp import web

from ai_stream_mock.core.config_manager import MockServerConfig
from ai_stream_mock.core.endpoint import match_endpoint
from ai_stream_mock.core.logging_utils import get_module_logger

from .mock_handler import handle_mock_request


logger = get_module_logger("APIMiddleware")

LOCALHOST_IPS = frozenset({"127.0.0.1", "::1", "::ffff:127.0.0.1"})

# Debug mode flag - set via MockServer
_debug_mode: bool = False


def set_debug_mode(enabled: bool) -> None:
    """Enable or disable debug mode for verbose error responses."""
    global _debug_mode
    _debug_mode = enabled
    logger.debug("API debug mode %s", "enabled" if enabled else "disabled")


def ai_mock_middleware(config: MockServerConfig) -> Callable:
    """Build the interceptor for ``config.endpoint``.

    Matching requests are answered by the mock pipeline regardless of method
    or router state; everything else continues down the handler chain.
    """

    @web.middleware
    async def middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
        matched = match_endpoint(request.path, config.endpoint)
        if matched is None:
            return await handler(request)
        logger.debug("Mock matched %s %s (file=%r)", request.method, request.path, matched.file_selector)
        return await handle_mock_request(request, matched, config)

    return middleware


@web.middleware
async def localhost_only_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Reject requests from any IP other than the loopback addresses."""
    peername = request.transport.get_extra_info("peername") if request.transport else None
    if peername:
        remote_ip = peername[0]
        if remote_ip not in LOCALHOST_IPS:
            logger.warning("Rejected request from non-localhost IP: %s", remote_ip)
            return create_error_response(
                "ACCESS_DENIED",
                "Mock server access is restricted to localhost only",
                status=403,
            )

    return await handler(request)


@web.middleware
async def request_logging_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """Log method, path, status and duration of every request."""
    start_time = time.perf_counter()
    status: Optional[int] = None
    try:
        response = await handler(request)
        status = response.status
        return response
    finally:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "%s %s%s -> %s (%.1f ms)",
            request.method,
            request.path,
            f"?{request.query_string}" if request.query_string else "",
            status if status is not None else "error",
            elapsed_ms,
        )


@web.middleware
async def error_handling_middleware(request: web.Request, handler: Callable) -> web.StreamResponse:
    """
    Catch and format errors from non-mock routes as JSON responses.

    Unified error response format:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable message",
            "details": { ... }  # Optional
        },
        "status": 500
    }
    """
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return create_error_response(
            e.reason.upper().replace(" ", "_") if e.reason else "HTTP_ERROR",
            e.text or str(e),
            status=e.status,
        )
    except ValueError as e:
        logger.warning("Validation error: %s", e)
        return create_error_response("VALIDATION_ERROR", str(e), status=400)
    except Exception as e:
        tb = traceback.format_exc()
        logger.error("Unexpected error: %s\n%s", e, tb)

        details = {"type": type(e).__name__, "message": str(e)}
        if _debug_mode:
            details["traceback"] = tb.split("\n")
            details["request"] = {
                "method": request.method,
                "path": request.path,
                "query": dict(request.query) if request.query else None,
            }
        return create_error_response("INTERNAL_ERROR", "An unexpected error occurred", status=500, details=details)


def create_error_response(code: str, message: str, status: int = 400, details: dict = None) -> web.Response:
    """Create standardized error response."""
    error = {"error": {"code": code, "message": message}, "status": status}
    if details:
        error["error"]["details"] = details
    return web.json_response(error, status=status)
