"""Tests for config file parsing and server config construction."""

import re
from pathlib import Path

import pytest

from ai_stream_mock.core.config_manager import (
    ConfigManager,
    MockServerConfig,
    load_server_config,
    parse_assignments,
)
from ai_stream_mock.core.endpoint import DEFAULT_ENDPOINT
from ai_stream_mock.core.errors import ScenarioConfigError

from tests.unit.conftest import run_async


CONFIG_TEXT = """
# mock server settings
data_dir = fixtures/ai
endpoint = /api/chat, re:^/v1/.*
port = 6001   # inline comment
log_level = "debug"
localhost_only = off

scenario = jitter
heartbeatMs = 1500
not a setting
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "mock.conf"
    path.write_text(CONFIG_TEXT, encoding="utf-8")
    return path


class TestConfigParsing:

    def test_read_config(self, config_file: Path):
        values = ConfigManager().read_config(config_file)
        assert values["data_dir"] == "fixtures/ai"
        assert values["port"] == "6001"
        assert values["log_level"] == "debug"
        assert "not a setting" not in values
        assert len(values) == 7

    def test_read_config_async_matches_sync(self, config_file: Path):
        manager = ConfigManager()
        assert run_async(manager.read_config_async(config_file)) == manager.read_config(config_file)

    def test_missing_file_reads_empty(self, tmp_path: Path):
        manager = ConfigManager()
        assert manager.read_config(tmp_path / "nope.conf") == {}
        assert run_async(manager.read_config_async(tmp_path / "nope.conf")) == {}

    def test_typed_getters(self):
        manager = ConfigManager()
        values = {"flag": "yes", "count": "12", "name": "x"}
        assert manager.get_bool(values, "flag") is True
        assert manager.get_bool(values, "absent", True) is True
        assert manager.get_int(values, "count") == 12
        assert manager.get_str(values, "name") == "x"
        with pytest.raises(ScenarioConfigError):
            manager.get_int({"count": "many"}, "count")
        with pytest.raises(ScenarioConfigError):
            manager.get_bool({"flag": "perhaps"}, "flag")


class TestLoadServerConfig:

    def test_defaults(self):
        config = load_server_config()
        assert config == MockServerConfig()
        assert config.endpoint == DEFAULT_ENDPOINT
        assert config.port == 5178
        assert config.data_dir == Path("mock/ai")
        assert config.default_scenario is None

    def test_from_file(self, config_file: Path):
        config = load_server_config(config_file)
        assert config.data_dir == Path("fixtures/ai")
        assert config.port == 6001
        assert config.log_level == "debug"
        assert config.localhost_only is False
        assert config.endpoint[0] == "/api/chat"
        assert isinstance(config.endpoint[1], re.Pattern)
        assert config.default_scenario.scenario == "jitter"
        assert dict(config.default_scenario.options) == {"heartbeatMs": 1500}

    def test_overrides_win(self, config_file: Path):
        config = load_server_config(config_file, {"port": "7000", "heartbeatMs": "0"})
        assert config.port == 7000
        assert config.default_scenario.options["heartbeatMs"] == 0

    def test_missing_explicit_file(self, tmp_path: Path):
        with pytest.raises(ScenarioConfigError, match="Config file not found"):
            load_server_config(tmp_path / "absent.conf")

    @pytest.mark.parametrize("overrides", [
        {"port": "http"},
        {"endpoint": "re:(("},
        {"scenario": "chaos"},
        {"stallMs": "-1"},
        {"unknownOption": "1"},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ScenarioConfigError):
            load_server_config(None, overrides)

    def test_describe(self, config_file: Path):
        described = load_server_config(config_file).describe()
        assert described["endpoint"] == ["/api/chat", "re:^/v1/.*"]
        assert described["default_scenario"] == {"heartbeatMs": 1500, "scenario": "jitter"}


class TestParseAssignments:

    def test_pairs(self):
        assert parse_assignments(["minIntervalMs=0", " errorMessage = boom=1 "]) == {
            "minIntervalMs": "0",
            "errorMessage": "boom=1",
        }

    def test_missing_equals(self):
        with pytest.raises(ScenarioConfigError):
            parse_assignments(["minIntervalMs"])


class TestAsyncLock:

    def test_lock_is_created_inside_running_loop(self, config_file: Path):
        manager = ConfigManager()
        assert manager.lock is None
        first = run_async(manager.read_config_async(config_file))
        # A second event loop must be able to reuse the same manager
        second = run_async(manager.read_config_async(config_file))
        assert first == second
        assert manager.lock is not None
