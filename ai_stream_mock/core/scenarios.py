"""
Scenario Resolver - merges request parameters, the process default and a
named preset into one fully resolved ScenarioConfig.

Precedence per option, highest first:
1. the request query parameter
2. the process-wide DefaultScenario
3. the selected preset (request ``scenario``, else the default's ``scenario``)
4. the option's hard-coded fallback

Exceptions to the layering:
- ``outOfOrder`` and ``reconnect`` are the logical OR of all three layers
- ``httpErrorStatus`` and ``includeDone`` come from the request only
- ``lastEventId`` comes from the request, else the Last-Event-ID header
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .errors import ScenarioConfigError
from .logging_utils import get_module_logger


logger = get_module_logger("ScenarioResolver")

_NON_NEGATIVE_INT = re.compile(r"\s*\+?\d+\s*")


class OptionType(str, Enum):
    """Value types a scenario option may hold."""
    INTEGER = "integer"
    STRING = "string"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class ScenarioOption:
    """Definition of a single scenario option with validation metadata."""
    name: str
    attr: str
    type: OptionType
    fallback: Any
    description: str = ""
    min_value: Optional[int] = None

    def parse_param(self, raw: Optional[str]) -> Optional[Any]:
        """Parse a query-string value; None means "not supplied or rejected".

        Integers must be plain non-negative digits. Partial numbers such as
        ``"12abc"`` or ``"1.5"`` are rejected rather than truncated, so the
        next layer supplies the value.
        """
        if raw is None:
            return None
        if self.type == OptionType.INTEGER:
            if not _NON_NEGATIVE_INT.fullmatch(raw):
                logger.debug("Ignoring invalid %s=%r", self.name, raw)
                return None
            return int(raw)
        if self.type == OptionType.BOOLEAN:
            return raw == "true"
        return raw

    def validate(self, value: Any) -> Tuple[bool, Optional[str]]:
        """
        Validate a Python value against this option's constraints.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if self.type == OptionType.INTEGER:
            if not isinstance(value, int) or isinstance(value, bool):
                return False, f"Option '{self.name}' must be an integer"
            if self.min_value is not None and value < self.min_value:
                return False, f"Option '{self.name}' must be >= {self.min_value}"
        elif self.type == OptionType.BOOLEAN:
            if not isinstance(value, bool):
                return False, f"Option '{self.name}' must be a boolean"
        elif not isinstance(value, str):
            return False, f"Option '{self.name}' must be a string"
        return True, None

    def coerce(self, value: Any) -> Any:
        """Convert config-file strings to this option's type, then validate."""
        if isinstance(value, str):
            text = value.strip()
            if self.type == OptionType.INTEGER:
                try:
                    value = int(text)
                except ValueError:
                    raise ScenarioConfigError(f"Option '{self.name}' must be an integer, got {value!r}") from None
            elif self.type == OptionType.BOOLEAN:
                lowered = text.lower()
                if lowered not in ("true", "false", "1", "0", "yes", "no", "on", "off"):
                    raise ScenarioConfigError(f"Option '{self.name}' must be a boolean, got {value!r}")
                value = lowered in ("true", "1", "yes", "on")

        ok, error = self.validate(value)
        if not ok:
            raise ScenarioConfigError(error)
        return value


SCENARIO_OPTIONS: Tuple[ScenarioOption, ...] = (
    ScenarioOption("firstChunkDelayMs", "first_chunk_delay_ms", OptionType.INTEGER, 0,
                   "Delay before the first chunk", min_value=0),
    ScenarioOption("minIntervalMs", "min_interval_ms", OptionType.INTEGER, 200,
                   "Lower bound of the random inter-chunk interval", min_value=0),
    ScenarioOption("maxIntervalMs", "max_interval_ms", OptionType.INTEGER, 700,
                   "Upper bound of the random inter-chunk interval", min_value=0),
    ScenarioOption("disconnectAt", "disconnect_at", OptionType.INTEGER, -1,
                   "Sever the connection at this chunk position"),
    ScenarioOption("stallAfter", "stall_after", OptionType.INTEGER, -1,
                   "Stop sending after this chunk position"),
    ScenarioOption("stallMs", "stall_ms", OptionType.INTEGER, 30_000,
                   "How long a stalled stream hangs before ending", min_value=0),
    ScenarioOption("errorAt", "error_at", OptionType.INTEGER, -1,
                   "Emit an error event at this chunk position"),
    ScenarioOption("errorMessage", "error_message", OptionType.STRING, "mock_error",
                   "Message carried by the injected error event"),
    ScenarioOption("malformedAt", "malformed_at", OptionType.INTEGER, -1,
                   "Emit a broken data frame at this chunk position"),
    ScenarioOption("duplicateAt", "duplicate_at", OptionType.INTEGER, -1,
                   "Repeat the chunk at this position"),
    ScenarioOption("outOfOrder", "out_of_order", OptionType.BOOLEAN, False,
                   "Swap the second and third chunks"),
    ScenarioOption("heartbeatMs", "heartbeat_ms", OptionType.INTEGER, 0,
                   "Keepalive comment period, 0 disables", min_value=0),
    ScenarioOption("reconnect", "reconnect", OptionType.BOOLEAN, False,
                   "Resume after the chunk named by lastEventId"),
)

OPTIONS_BY_NAME: Mapping[str, ScenarioOption] = MappingProxyType(
    {option.name: option for option in SCENARIO_OPTIONS}
)

# Resolved from the request only, never layered
HTTP_ERROR_STATUS_OPTION = ScenarioOption(
    "httpErrorStatus", "http_error_status", OptionType.INTEGER, 0,
    "Reject the request with this status before streaming",
)

# Boolean options OR across layers instead of overriding
OR_OPTIONS = frozenset({"outOfOrder", "reconnect"})

SCENARIO_PRESETS: Mapping[str, Mapping[str, Any]] = MappingProxyType({
    "normal": MappingProxyType({}),
    "first-delay": MappingProxyType({"firstChunkDelayMs": 1800}),
    "jitter": MappingProxyType({"minIntervalMs": 80, "maxIntervalMs": 1400}),
    "disconnect": MappingProxyType({"disconnectAt": 3}),
    "timeout": MappingProxyType({"stallAfter": 2, "stallMs": 30_000}),
    "error": MappingProxyType({"errorAt": 2, "errorMessage": "mock_error"}),
    "malformed": MappingProxyType({"malformedAt": 2}),
    "duplicate": MappingProxyType({"duplicateAt": 2}),
    "out-of-order": MappingProxyType({"outOfOrder": True}),
    "reconnect": MappingProxyType({"reconnect": True}),
    "heartbeat": MappingProxyType({"heartbeatMs": 2500}),
})

DEFAULT_FILE = "default"


@dataclass
class ScenarioConfig:
    """Fully resolved options for one mock request."""
    file: str = DEFAULT_FILE
    first_chunk_delay_ms: int = 0
    min_interval_ms: int = 200
    max_interval_ms: int = 700
    disconnect_at: int = -1
    stall_after: int = -1
    stall_ms: int = 30_000
    http_error_status: int = 0
    error_at: int = -1
    error_message: str = "mock_error"
    malformed_at: int = -1
    duplicate_at: int = -1
    out_of_order: bool = False
    heartbeat_ms: int = 0
    include_done: bool = True
    reconnect: bool = False
    last_event_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render with the camelCase option names used in query strings."""
        return {_camel_case(f.name): getattr(self, f.name) for f in fields(self)}


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class DefaultScenario:
    """Process-wide default layer: a preset name plus option overrides."""
    scenario: Optional[str] = None
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.scenario is not None and self.scenario not in SCENARIO_PRESETS:
            raise ScenarioConfigError(
                f"Unknown scenario '{self.scenario}'. Available: {', '.join(SCENARIO_PRESETS)}"
            )
        for name, value in self.options.items():
            option = OPTIONS_BY_NAME.get(name)
            if option is None:
                raise ScenarioConfigError(f"Unknown default scenario option '{name}'")
            ok, error = option.validate(value)
            if not ok:
                raise ScenarioConfigError(error)
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "DefaultScenario":
        """Build from config-file or CLI values, coercing strings by option type."""
        scenario = None
        options: Dict[str, Any] = {}
        for key, value in values.items():
            if key == "scenario":
                scenario = str(value).strip() or None
                continue
            option = OPTIONS_BY_NAME.get(key)
            if option is None:
                raise ScenarioConfigError(f"Unknown default scenario option '{key}'")
            options[key] = option.coerce(value)
        return cls(scenario=scenario, options=options)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.options)
        if self.scenario:
            result["scenario"] = self.scenario
        return result


def get_preset(name: Optional[str]) -> Mapping[str, Any]:
    """Return the named preset, or an empty mapping for unknown/absent names."""
    if not name:
        return MappingProxyType({})
    preset = SCENARIO_PRESETS.get(name)
    if preset is None:
        logger.warning("Unknown scenario preset '%s', using no preset", name)
        return MappingProxyType({})
    return preset


def _first_present(name: str, layers: Iterable[Mapping[str, Any]], fallback: Any) -> Any:
    for layer in layers:
        value = layer.get(name)
        if value is not None:
            return value
    return fallback


def _parse_request_layer(params: Mapping[str, str]) -> Dict[str, Any]:
    layer: Dict[str, Any] = {}
    for option in SCENARIO_OPTIONS:
        value = option.parse_param(params.get(option.name))
        if value is not None:
            layer[option.name] = value
    return layer


def resolve_scenario(
    params: Mapping[str, str],
    last_event_id_header: Optional[str] = None,
    default: Optional[DefaultScenario] = None,
) -> ScenarioConfig:
    """Resolve one request's ScenarioConfig from its query parameters."""
    default_layer: Mapping[str, Any] = default.options if default else {}
    preset_name = params.get("scenario")
    if preset_name is None and default is not None:
        preset_name = default.scenario
    preset = get_preset(preset_name)

    request_layer = _parse_request_layer(params)
    layers = (request_layer, default_layer, preset)

    resolved: Dict[str, Any] = {}
    for option in SCENARIO_OPTIONS:
        if option.name in OR_OPTIONS:
            resolved[option.attr] = any(bool(layer.get(option.name)) for layer in layers)
        else:
            resolved[option.attr] = _first_present(option.name, layers, option.fallback)

    low, high = resolved["min_interval_ms"], resolved["max_interval_ms"]
    resolved["min_interval_ms"], resolved["max_interval_ms"] = min(low, high), max(low, high)

    http_error_status = HTTP_ERROR_STATUS_OPTION.parse_param(params.get("httpErrorStatus"))

    last_event_id = params.get("lastEventId")
    if last_event_id is None:
        last_event_id = last_event_id_header

    config = ScenarioConfig(
        file=params.get("file", DEFAULT_FILE),
        http_error_status=http_error_status or 0,
        include_done=params.get("includeDone") != "false",
        last_event_id=last_event_id,
        **resolved,
    )
    logger.debug("Resolved scenario preset=%s options=%s", preset_name, config.to_dict())
    return config


def describe_presets() -> Dict[str, Dict[str, Any]]:
    """Plain-dict copy of the preset table for the inspection route."""
    return {name: dict(values) for name, values in SCENARIO_PRESETS.items()}


__all__ = [
    "DefaultScenario",
    "OPTIONS_BY_NAME",
    "OptionType",
    "SCENARIO_OPTIONS",
    "SCENARIO_PRESETS",
    "ScenarioConfig",
    "ScenarioOption",
    "describe_presets",
    "get_preset",
    "resolve_scenario",
]
