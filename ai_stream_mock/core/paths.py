"""Centralized path constants for the mock server."""

from __future__ import annotations

# Resolved against the working directory at request time
DEFAULT_DATA_DIR = "mock/ai"

DEFAULT_CONFIG_NAME = "ai-stream-mock.conf"
