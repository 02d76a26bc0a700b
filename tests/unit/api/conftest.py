"""Pytest fixtures for mock server API tests.

Provides helpers for building the aiohttp application against the recorded
chunk fixtures, so the full request pipeline runs without a real socket.
"""

from __future__ import annotations

from typing import Any, Optional

import pytest
from aiohttp import web

from ai_stream_mock.core.api import create_app
from ai_stream_mock.core.config_manager import MockServerConfig
from ai_stream_mock.core.endpoint import DEFAULT_ENDPOINT, EndpointPattern
from ai_stream_mock.core.scenarios import DefaultScenario

from tests.conftest import MOCK_DATA_DIR
from tests.unit.conftest import run_async  # noqa: F401 - re-exported for test modules

# Keeps SSE tests fast without touching the recorded data
FAST = "minIntervalMs=0&maxIntervalMs=0"


def make_config(
    endpoint: EndpointPattern = DEFAULT_ENDPOINT,
    default_scenario: Optional[DefaultScenario] = None,
    **overrides: Any,
) -> MockServerConfig:
    """Create a server config that reads the test fixtures."""
    return MockServerConfig(
        data_dir=MOCK_DATA_DIR,
        endpoint=endpoint,
        default_scenario=default_scenario,
        **overrides,
    )


def create_test_app(config: Optional[MockServerConfig] = None) -> web.Application:
    """Create a test application with the mock middleware installed."""
    return create_app(config or make_config())


def sse_ids(text: str) -> list:
    """Event ids in the order they appear in an SSE body."""
    return [line[4:] for line in text.splitlines() if line.startswith("id: ")]


@pytest.fixture
def mock_config() -> MockServerConfig:
    return make_config()
