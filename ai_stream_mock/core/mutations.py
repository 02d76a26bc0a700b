"""Structural chunk faults: resume slicing, reordering and duplication."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .chunks import NormalizedChunk
from .scenarios import ScenarioConfig

DUPLICATE_SUFFIX = "-dup"


def get_resume_index(chunks: Sequence[NormalizedChunk], last_event_id: Optional[str]) -> int:
    """Index of the first chunk after ``last_event_id``; 0 when it is unknown."""
    if not last_event_id:
        return 0
    for index, chunk in enumerate(chunks):
        if chunk.id == last_event_id:
            return index + 1
    return 0


def apply_chunk_mutations(chunks: Sequence[NormalizedChunk], config: ScenarioConfig) -> List[NormalizedChunk]:
    """Return a new chunk list with the scenario's structural faults applied.

    Order matters: resumption runs first so that the out-of-order swap and
    ``duplicateAt`` address positions in the sequence the driver will send.
    """
    result = list(chunks)

    if config.reconnect and config.last_event_id:
        result = result[get_resume_index(result, config.last_event_id):]

    if config.out_of_order and len(result) > 2:
        result[1], result[2] = result[2], result[1]

    if 0 < config.duplicate_at <= len(result):
        original = result[config.duplicate_at - 1]
        result.insert(config.duplicate_at, original.with_id(f"{original.id}{DUPLICATE_SUFFIX}"))

    return result


__all__ = ["DUPLICATE_SUFFIX", "apply_chunk_mutations", "get_resume_index"]
