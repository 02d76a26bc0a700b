"""Server-sent event framing."""

from __future__ import annotations

import json
import time
from typing import Any, Optional

SSE_CONTENT_TYPE = "text/event-stream"

SSE_HEADERS = {
    "Content-Type": f"{SSE_CONTENT_TYPE}; charset=utf-8",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def serialize_payload(data: Any) -> str:
    """Strings pass through verbatim; every other value is compact JSON."""
    if isinstance(data, str):
        return data
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def format_event(data: Any, *, event_id: Optional[str] = None, event: Optional[str] = None) -> str:
    """Render one blank-line-terminated SSE record."""
    lines = []
    if event_id:
        lines.append(f"id: {event_id}\n")
    if event and event != "message":
        lines.append(f"event: {event}\n")
    for line in serialize_payload(data).split("\n"):
        lines.append(f"data: {line}\n")
    lines.append("\n")
    return "".join(lines)


def format_heartbeat(timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f": ping {timestamp_ms}\n\n"


def format_malformed(event_id: str) -> str:
    """A message record whose JSON payload is missing its closing brace."""
    return f"id: {event_id}\nevent: message\ndata: {{\"malformed\": true\n\n"


def format_done() -> str:
    return format_event({"done": True}, event="done")


def format_error(event_id: str, message: str, position: int) -> str:
    return format_event({"message": message, "at": position}, event_id=event_id, event="error")


__all__ = [
    "SSE_CONTENT_TYPE",
    "SSE_HEADERS",
    "format_done",
    "format_error",
    "format_event",
    "format_heartbeat",
    "format_malformed",
    "serialize_payload",
]
