"""Exception types raised by the mock pipeline."""

from __future__ import annotations


class MockError(Exception):
    """Base class for errors raised by the mock server."""


class MockDataError(MockError):
    """The requested mock data file is unsafe, missing or unreadable."""


class ScenarioConfigError(MockError, ValueError):
    """A default scenario or server configuration value is invalid."""


__all__ = ["MockError", "MockDataError", "ScenarioConfigError"]
