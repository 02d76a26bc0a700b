"""Unit test fixtures for isolated, fast test execution.

This conftest provides:
- Fake aiohttp response/transport objects that record SSE output
- A helper for running coroutines without a test-framework plugin
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, List, Optional, TypeVar

import pytest


T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FakeStreamResponse:
    """Stands in for web.StreamResponse, recording each written frame."""

    def __init__(self, fail_after: Optional[int] = None, error: Optional[Exception] = None):
        self.frames: List[str] = []
        self.fail_after = fail_after
        self.error = error or ConnectionResetError("Cannot write to closing transport")
        self.force_closed = False
        self.eof_written = False

    async def write(self, data: bytes) -> None:
        if self.fail_after is not None and len(self.frames) >= self.fail_after:
            raise self.error
        self.frames.append(data.decode("utf-8"))

    async def write_eof(self) -> None:
        self.eof_written = True

    def force_close(self) -> None:
        self.force_closed = True

    @property
    def text(self) -> str:
        return "".join(self.frames)


class FakeTransport:
    """Records whether the connection was aborted."""

    def __init__(self):
        self.aborted = False

    def abort(self) -> None:
        self.aborted = True


@pytest.fixture
def fake_response() -> FakeStreamResponse:
    return FakeStreamResponse()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()
