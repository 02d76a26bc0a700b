"""
API route modules.

- system: health check and scenario inspection

Mock endpoints are not routes: they are claimed by ``ai_mock_middleware`` so
that any configured path (literal, prefix or regex) can be intercepted.
"""

from .system import setup_system_routes


def setup_all_routes(app):
    """Register all API routes with the application."""
    setup_system_routes(app)


__all__ = ["setup_all_routes"]
