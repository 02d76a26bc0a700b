"""
Endpoint Matcher - decides which requests the mock claims.

A pattern is a literal path, a compiled regular expression, or an ordered
list of either. Literal patterns also match ``<literal>/<file>`` and yield
``<file>`` as the file selector; regex matches never yield a selector, so the
file must come from the ``file`` query parameter.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Union

DEFAULT_ENDPOINT = "/api/ai/mock"
REGEX_PREFIX = "re:"

EndpointEntry = Union[str, Pattern[str]]
EndpointPattern = Union[EndpointEntry, Sequence[EndpointEntry]]


@dataclass(frozen=True)
class EndpointMatch:
    file_selector: str = ""


def match_endpoint(path: str, endpoint: EndpointPattern) -> Optional[EndpointMatch]:
    """Match ``path`` against ``endpoint``; None means pass the request through."""
    if isinstance(endpoint, (list, tuple)):
        for entry in endpoint:
            matched = match_endpoint(path, entry)
            if matched is not None:
                return matched
        return None

    if isinstance(endpoint, str):
        if path == endpoint:
            return EndpointMatch()
        prefix = f"{endpoint}/"
        if path.startswith(prefix):
            return EndpointMatch(file_selector=path[len(prefix):])
        return None

    return EndpointMatch() if endpoint.search(path) else None


def parse_endpoint_pattern(values: Union[str, Sequence[str]]) -> EndpointPattern:
    """Build a pattern from config/CLI text.

    Entries are comma separated; an entry starting with ``re:`` is compiled as
    a regular expression. A single entry is returned unwrapped.
    """
    raw_entries = [values] if isinstance(values, str) else list(values)
    entries: List[EndpointEntry] = []
    for raw in raw_entries:
        for piece in raw.split(","):
            piece = piece.strip()
            if not piece:
                continue
            if piece.startswith(REGEX_PREFIX):
                try:
                    entries.append(re.compile(piece[len(REGEX_PREFIX):]))
                except re.error as exc:
                    raise ValueError(f"Invalid endpoint regex {piece!r}: {exc}") from exc
            else:
                entries.append(piece.rstrip("/") or "/")

    if not entries:
        return DEFAULT_ENDPOINT
    return entries[0] if len(entries) == 1 else entries


def describe_endpoint(endpoint: EndpointPattern) -> List[str]:
    entries = endpoint if isinstance(endpoint, (list, tuple)) else [endpoint]
    return [entry if isinstance(entry, str) else f"{REGEX_PREFIX}{entry.pattern}" for entry in entries]


__all__ = [
    "DEFAULT_ENDPOINT",
    "EndpointMatch",
    "EndpointPattern",
    "describe_endpoint",
    "match_endpoint",
    "parse_endpoint_pattern",
]
