"""
Stream Driver - walks a chunk sequence over time as an SSE stream.

Each connection gets its own StreamSession holding the closed flag, the
heartbeat task and the set of pending step tasks. Two task lines run per
session:
- the chunk steps, strictly sequential (one pending step at a time)
- the heartbeat loop, on its own cadence

Both check ``session.closed`` before writing or scheduling. The session ends
on the first of natural completion, an injected fault, or client
cancellation, and teardown runs exactly once.

State transitions:
- IDLE -> STREAMING: response prepared, first step scheduled
- STREAMING -> COMPLETED: last chunk (and optional done record) sent
- STREAMING -> FAULTED: disconnect, error, stall or unexpected failure
- STREAMING -> CANCELLED: client closed the connection
"""

from __future__ import annotations

import asyncio
import contextlib
import random
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from aiohttp import web

from .asyncio_utils import create_logged_task, run_after
from .chunks import NormalizedChunk
from .logging_utils import LoggerLike, ensure_structured_logger, get_module_logger
from .scenarios import ScenarioConfig
from .sse import (
    SSE_HEADERS,
    format_done,
    format_error,
    format_event,
    format_heartbeat,
    format_malformed,
)


logger = get_module_logger("StreamDriver")


class StreamState(Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAULTED = "faulted"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({StreamState.COMPLETED, StreamState.FAULTED, StreamState.CANCELLED})


class StreamSession:
    """Mutable state of one streaming connection.

    Owned by the handler invocation that created it; nothing else holds a
    reference, so there is no registry to clean up.
    """

    def __init__(
        self,
        response: web.StreamResponse,
        transport: Optional[asyncio.BaseTransport] = None,
        *,
        logger: LoggerLike = None,
    ) -> None:
        self.response = response
        self.transport = transport
        self.logger = ensure_structured_logger(logger, fallback_name="StreamSession")

        self.state = StreamState.IDLE
        self.position = 0
        self.closed = False
        self.severed = False
        self.heartbeat_task: Optional[asyncio.Task] = None
        self.pending: set[asyncio.Task] = set()
        self._finished = asyncio.Event()

    # ------------------------------------------------------------------
    # Scheduling

    def schedule(self, delay_ms: float, callback: Callable[[], Awaitable[Any]]) -> Optional[asyncio.Task]:
        """Run ``callback`` after ``delay_ms`` unless the session closes first."""
        if self.closed:
            return None
        return create_logged_task(
            self._run_scheduled(delay_ms, callback),
            logger=self.logger,
            context=f"stream step @{self.position}",
            pending=self.pending,
        )

    async def _run_scheduled(self, delay_ms: float, callback: Callable[[], Awaitable[Any]]) -> None:
        await asyncio.sleep(max(delay_ms, 0) / 1000)
        # A running step is no longer pending; teardown must not cancel it
        self.pending.discard(asyncio.current_task())
        if self.closed:
            return
        try:
            await callback()
        except Exception:
            self.logger.exception("Stream step failed at chunk %d", self.position)
            self.teardown(StreamState.FAULTED)

    def start_heartbeat(self, period_ms: int) -> None:
        if self.closed or period_ms <= 0 or self.heartbeat_task is not None:
            return
        self.heartbeat_task = create_logged_task(
            self._heartbeat_loop(period_ms),
            logger=self.logger,
            context="stream heartbeat",
        )

    async def _heartbeat_loop(self, period_ms: int) -> None:
        while not self.closed:
            try:
                await run_after(period_ms, self._send_heartbeat)
            except Exception:
                self.logger.exception("Heartbeat failed at chunk %d", self.position)
                self.teardown(StreamState.FAULTED)

    async def _send_heartbeat(self) -> None:
        if not self.closed:
            await self.write(format_heartbeat())

    # ------------------------------------------------------------------
    # Output

    async def write(self, frame: str) -> bool:
        """Write one complete frame; False if the session is (now) closed."""
        if self.closed:
            return False
        try:
            await self.response.write(frame.encode("utf-8"))
        except ConnectionError as exc:
            self.logger.info("Client went away while writing: %s", exc)
            self.cancel()
            return False
        return True

    # ------------------------------------------------------------------
    # Termination

    def teardown(self, state: StreamState = StreamState.COMPLETED) -> bool:
        """Clear every timer and mark the session closed.

        Idempotent: only the first call records ``state``; later calls return
        False and do nothing.
        """
        if self.closed:
            return False
        self.closed = True
        self.state = state

        current = asyncio.current_task()
        if self.heartbeat_task is not None and self.heartbeat_task is not current:
            self.heartbeat_task.cancel()
        for task in list(self.pending):
            if task is not current:
                task.cancel()
        self.pending.clear()

        self._finished.set()
        self.logger.debug("Session closed at chunk %d (%s)", self.position, state.value)
        return True

    def cancel(self) -> bool:
        """Client-initiated close."""
        return self.teardown(StreamState.CANCELLED)

    def sever(self) -> None:
        """Tear down and drop the connection without a clean terminator."""
        self.teardown(StreamState.FAULTED)
        self.severed = True
        if self.transport is not None:
            self.transport.abort()
        else:
            self.response.force_close()

    @property
    def is_finished(self) -> bool:
        return self._finished.is_set()

    async def wait_finished(self) -> StreamState:
        await self._finished.wait()
        return self.state


class StreamDriver:
    """Sends a mutated chunk sequence according to a resolved scenario."""

    def __init__(
        self,
        chunks: Sequence[NormalizedChunk],
        config: ScenarioConfig,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.chunks: List[NormalizedChunk] = list(chunks)
        self.config = config
        self._rng = rng or random.Random()
        self.session: Optional[StreamSession] = None

    async def run(self, request: web.Request) -> web.StreamResponse:
        """Prepare the SSE response and drive it until the session ends."""
        response = web.StreamResponse(status=200, headers=SSE_HEADERS)
        await response.prepare(request)

        session = StreamSession(response, request.transport, logger=logger)
        self.session = session
        logger.info(
            "Streaming %d chunk(s) file=%s to %s",
            len(self.chunks),
            self.config.file,
            request.remote,
        )

        try:
            await self.start(session)
            await session.wait_finished()
        except asyncio.CancelledError:
            if session.cancel():
                logger.info("Client cancelled stream at chunk %d", session.position)
            raise
        except Exception:
            # Headers are already sent, so no error response is possible
            logger.exception("Stream failed at chunk %d", session.position)
            session.teardown(StreamState.FAULTED)

        if session.state == StreamState.CANCELLED:
            logger.info("Client cancelled stream at chunk %d", session.position)
        elif not session.severed:
            with contextlib.suppress(ConnectionError):
                await response.write_eof()
        logger.info("Stream ended: %s after chunk %d", session.state.value, session.position)
        return response

    async def start(self, session: StreamSession) -> None:
        session.state = StreamState.STREAMING
        session.start_heartbeat(self.config.heartbeat_ms)

        if not self.chunks:
            await self._finish(session)
            return

        session.schedule(self.config.first_chunk_delay_ms, partial(self._step, session, 0))

    def next_interval(self, chunk: NormalizedChunk) -> float:
        """Delay before ``chunk``: its own ``delayMs`` or a random interval."""
        if chunk.delay_ms is not None:
            return chunk.delay_ms
        return self._rng.randint(self.config.min_interval_ms, self.config.max_interval_ms)

    async def _step(self, session: StreamSession, index: int) -> None:
        if session.closed:
            return

        config = self.config
        chunk = self.chunks[index]
        position = index + 1
        session.position = position

        if config.disconnect_at == position:
            logger.info("Injecting disconnect at chunk %d", position)
            session.sever()
            return

        if config.error_at == position:
            logger.info("Injecting error event at chunk %d", position)
            await session.write(format_error(chunk.id, config.error_message, position))
            session.teardown(StreamState.FAULTED)
            return

        if config.malformed_at == position:
            logger.info("Injecting malformed frame at chunk %d", position)
            frame = format_malformed(chunk.id)
        else:
            frame = format_event(chunk.data, event_id=chunk.id, event=chunk.event)

        if not await session.write(frame):
            return

        if config.stall_after == position:
            logger.info("Stalling after chunk %d for %d ms", position, config.stall_ms)
            session.schedule(config.stall_ms, partial(self._end_stall, session))
            return

        if position >= len(self.chunks):
            await self._finish(session)
            return

        next_chunk = self.chunks[position]
        session.schedule(self.next_interval(next_chunk), partial(self._step, session, position))

    async def _finish(self, session: StreamSession) -> None:
        if self.config.include_done and not await session.write(format_done()):
            return
        session.teardown(StreamState.COMPLETED)

    async def _end_stall(self, session: StreamSession) -> None:
        session.teardown(StreamState.FAULTED)


__all__ = ["StreamDriver", "StreamSession", "StreamState", "TERMINAL_STATES"]
