"""
Chunk normalization - turns recorded JSON into uniform stream records.

Recorded files come in three shapes:
- a JSON array of chunks
- an object wrapping the array in a ``chunks`` field
- any single JSON value, streamed as one chunk

Each array item is either an object with optional ``id``, ``event``,
``data`` and ``delayMs`` fields, or a bare value used as the payload.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

ChunkValue = Union[str, int, float, bool, Dict[str, Any], List[Any], None]

DEFAULT_EVENT = "message"


@dataclass(frozen=True)
class NormalizedChunk:
    """One recorded chunk, ready to become one protocol event."""
    id: str
    event: str = DEFAULT_EVENT
    data: ChunkValue = None
    delay_ms: Optional[Union[int, float]] = None

    def with_id(self, new_id: str) -> "NormalizedChunk":
        return NormalizedChunk(id=new_id, event=self.event, data=self.data, delay_ms=self.delay_ms)

    def to_dict(self) -> Dict[str, Any]:
        """Wire form used by the JSON inspection response."""
        result: Dict[str, Any] = {"id": self.id, "event": self.event, "data": self.data}
        if self.delay_ms is not None:
            result["delayMs"] = self.delay_ms
        return result


def _stringify_id(value: Any) -> str:
    # Render ids the way they appear in the JSON source (1 not 1.0, true not True)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _coerce_delay(value: Any) -> Optional[Union[int, float]]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _item_source(raw: Any) -> List[Any]:
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict) and "chunks" in raw:
        chunks = raw["chunks"]
        return chunks if isinstance(chunks, list) else []
    return [raw]


def normalize_chunks(raw: Any) -> List[NormalizedChunk]:
    """Normalize parsed JSON into an ordered, fully materialized chunk list.

    Never raises: malformed input degenerates to an empty or defaulted list.
    """
    normalized: List[NormalizedChunk] = []

    for index, item in enumerate(_item_source(raw)):
        position = str(index + 1)

        if isinstance(item, dict):
            raw_id = item.get("id")
            raw_event = item.get("event")
            chunk_id = _stringify_id(raw_id) if raw_id is not None else ""
            event = str(raw_event) if raw_event is not None else ""
            normalized.append(
                NormalizedChunk(
                    id=chunk_id or position,
                    event=event or DEFAULT_EVENT,
                    data=item.get("data"),
                    delay_ms=_coerce_delay(item.get("delayMs")),
                )
            )
        else:
            normalized.append(NormalizedChunk(id=position, data=item))

    return normalized


__all__ = ["ChunkValue", "DEFAULT_EVENT", "NormalizedChunk", "normalize_chunks"]
