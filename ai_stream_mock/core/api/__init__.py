"""
aiohttp integration for the AI stream mock.

``ai_mock_middleware`` mounts the mock into an existing application;
``MockServer`` runs it standalone.
"""

from .middleware import ai_mock_middleware
from .server import MockServer, create_app

__all__ = ["MockServer", "ai_mock_middleware", "create_app"]
