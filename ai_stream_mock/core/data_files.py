"""Mock data file lookup and loading."""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Union

import aiofiles

from .errors import MockDataError
from .logging_utils import get_module_logger


logger = get_module_logger("MockData")

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
DEFAULT_FILE_NAME = "default"


def safe_file_name(name: str) -> str:
    """Strip everything outside ``[a-zA-Z0-9._-]`` from a file selector."""
    return _UNSAFE_CHARS.sub("", name)


def resolve_data_file(data_dir: Union[str, Path], file_name: str) -> Path:
    """Resolve a file selector to an existing ``.json`` file inside ``data_dir``.

    Relative data directories resolve against the current working directory.

    Raises:
        MockDataError: the resolved path escapes ``data_dir`` or does not exist
    """
    safe_name = safe_file_name(file_name) or DEFAULT_FILE_NAME
    if not safe_name.endswith(".json"):
        safe_name = f"{safe_name}.json"

    base_dir = Path(data_dir).expanduser()
    if not base_dir.is_absolute():
        base_dir = Path.cwd() / base_dir
    base_dir = base_dir.resolve()
    candidate = (base_dir / safe_name).resolve()

    if base_dir not in candidate.parents:
        raise MockDataError("Invalid mock file path.")

    if not candidate.is_file():
        raise MockDataError(f"Mock data file not found: {candidate.name}")

    return candidate


async def read_json_file(path: Path) -> Any:
    """Read and parse a mock data file without blocking the event loop."""
    async with aiofiles.open(path, "r", encoding="utf-8") as fh:
        content = await fh.read()
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise MockDataError(f"Invalid JSON in {path.name}: {exc}") from exc


async def load_mock_data(data_dir: Union[str, Path], file_name: str) -> tuple[Path, Any]:
    """Resolve ``file_name`` under ``data_dir`` and return ``(path, parsed_json)``."""
    path = await asyncio.to_thread(resolve_data_file, data_dir, file_name)
    logger.debug("Loading mock data from %s", path)
    return path, await read_json_file(path)


__all__ = ["load_mock_data", "read_json_file", "resolve_data_file", "safe_file_name"]
