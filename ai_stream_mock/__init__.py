"""Simulated streaming AI completion endpoints for front-end testing."""

from __future__ import annotations

from importlib import metadata
from typing import Optional, Sequence

try:
    __version__ = metadata.version("ai-stream-mock")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Console entry point."""
    from .app.master import run
    return run(argv)


__all__ = ["__version__", "main"]
