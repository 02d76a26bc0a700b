"""
Configuration loading for the mock server.

Config files are plain ``key = value`` text. Server keys (``data_dir``,
``endpoint``, ``host``, ``port``, ...) configure the server; ``scenario`` and
any scenario option name (``minIntervalMs = 0``) form the process-wide
default scenario::

    # mock.conf
    data_dir = mock/ai
    endpoint = /api/ai/mock, re:^/v1/chat/.*
    scenario = jitter
    heartbeatMs = 5000
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import aiofiles

from .endpoint import DEFAULT_ENDPOINT, EndpointPattern, describe_endpoint, parse_endpoint_pattern
from .errors import ScenarioConfigError
from .logging_utils import get_module_logger
from .paths import DEFAULT_DATA_DIR
from .scenarios import DefaultScenario


logger = get_module_logger("ConfigManager")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5178

SERVER_KEYS = frozenset({
    "data_dir",
    "endpoint",
    "host",
    "port",
    "localhost_only",
    "debug",
    "log_level",
    "log_file",
})


@dataclass
class MockServerConfig:
    """Everything the mock middleware and server need at runtime."""
    data_dir: Path = field(default_factory=lambda: Path(DEFAULT_DATA_DIR))
    endpoint: EndpointPattern = DEFAULT_ENDPOINT
    default_scenario: Optional[DefaultScenario] = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    localhost_only: bool = True
    debug: bool = False
    log_level: str = "info"
    log_file: Optional[Path] = None

    def describe(self) -> Dict[str, Any]:
        return {
            "data_dir": str(self.data_dir),
            "endpoint": describe_endpoint(self.endpoint),
            "default_scenario": self.default_scenario.to_dict() if self.default_scenario else None,
        }


class ConfigManager:

    def __init__(self):
        self.lock: Optional[asyncio.Lock] = None

    @staticmethod
    def _parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                logger.warning("Ignoring config line without '=': %s", line)
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if ' #' in value:
                value = value.split(' #')[0].strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                value = value[1:-1]

            config[key] = value

        return config

    def read_config(self, config_path: Path) -> Dict[str, str]:
        """Read a config file synchronously; missing files read as empty."""
        if not config_path.exists():
            return {}
        with open(config_path, 'r', encoding='utf-8') as fh:
            return self._parse_config_lines(fh)

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        """Async version for use inside the event loop."""
        if not await asyncio.to_thread(config_path.exists):
            return {}
        if self.lock is None:
            # Created on first use so it belongs to the running loop
            self.lock = asyncio.Lock()
        async with self.lock:
            async with aiofiles.open(config_path, 'r', encoding='utf-8') as fh:
                lines = await fh.readlines()
        return self._parse_config_lines(lines)

    def get_bool(self, config: Mapping[str, str], key: str, default: bool = False) -> bool:
        if key not in config:
            return default
        value = config[key].strip().lower()
        if value in ('true', '1', 'yes', 'on'):
            return True
        if value in ('false', '0', 'no', 'off'):
            return False
        raise ScenarioConfigError(f"Invalid boolean value for {key}: {config[key]!r}")

    def get_int(self, config: Mapping[str, str], key: str, default: int = 0) -> int:
        if key not in config:
            return default
        try:
            return int(config[key])
        except ValueError:
            raise ScenarioConfigError(f"Invalid int value for {key}: {config[key]!r}") from None

    def get_str(self, config: Mapping[str, str], key: str, default: str = "") -> str:
        return config.get(key, default)

    def build_server_config(self, values: Mapping[str, str]) -> MockServerConfig:
        """Split raw key/value pairs into server settings and the default scenario."""
        scenario_values = {key: value for key, value in values.items() if key not in SERVER_KEYS}
        default_scenario = DefaultScenario.from_mapping(scenario_values) if scenario_values else None

        try:
            endpoint = parse_endpoint_pattern(values.get("endpoint", DEFAULT_ENDPOINT))
        except ValueError as exc:
            raise ScenarioConfigError(str(exc)) from exc

        log_file = values.get("log_file")
        return MockServerConfig(
            data_dir=Path(self.get_str(values, "data_dir", DEFAULT_DATA_DIR)),
            endpoint=endpoint,
            default_scenario=default_scenario,
            host=self.get_str(values, "host", DEFAULT_HOST),
            port=self.get_int(values, "port", DEFAULT_PORT),
            localhost_only=self.get_bool(values, "localhost_only", True),
            debug=self.get_bool(values, "debug", False),
            log_level=self.get_str(values, "log_level", "info"),
            log_file=Path(log_file) if log_file else None,
        )


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager


def load_server_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> MockServerConfig:
    """Read ``config_path`` (if given), apply ``overrides`` and build the config.

    Raises:
        ScenarioConfigError: missing config file or invalid values
    """
    manager = get_config_manager()
    values: Dict[str, str] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.is_file():
            raise ScenarioConfigError(f"Config file not found: {path}")
        values.update(manager.read_config(path))
        logger.debug("Loaded %d config value(s) from %s", len(values), path)

    if overrides:
        values.update(overrides)

    return manager.build_server_config(values)


def parse_assignments(items: Iterable[str]) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` strings from the command line."""
    result: Dict[str, str] = {}
    for item in items:
        if '=' not in item:
            raise ScenarioConfigError(f"Expected KEY=VALUE, got {item!r}")
        key, value = item.split('=', 1)
        result[key.strip()] = value.strip()
    return result


__all__: List[str] = [
    "ConfigManager",
    "MockServerConfig",
    "get_config_manager",
    "load_server_config",
    "parse_assignments",
]
