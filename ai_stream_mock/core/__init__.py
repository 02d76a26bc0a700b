from .chunks import NormalizedChunk, normalize_chunks
from .config_manager import MockServerConfig, get_config_manager, load_server_config
from .endpoint import EndpointMatch, match_endpoint, parse_endpoint_pattern
from .errors import MockDataError, MockError, ScenarioConfigError
from .mutations import apply_chunk_mutations
from .scenarios import SCENARIO_PRESETS, DefaultScenario, ScenarioConfig, resolve_scenario
from .stream_driver import StreamDriver, StreamSession, StreamState

__all__ = [
    'DefaultScenario',
    'EndpointMatch',
    'MockDataError',
    'MockError',
    'MockServerConfig',
    'NormalizedChunk',
    'SCENARIO_PRESETS',
    'ScenarioConfig',
    'ScenarioConfigError',
    'StreamDriver',
    'StreamSession',
    'StreamState',
    'apply_chunk_mutations',
    'get_config_manager',
    'load_server_config',
    'match_endpoint',
    'normalize_chunks',
    'parse_endpoint_pattern',
    'resolve_scenario',
]
