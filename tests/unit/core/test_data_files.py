"""Unit tests for mock data file resolution and loading."""

import json
from pathlib import Path

import pytest

from ai_stream_mock.core.data_files import load_mock_data, resolve_data_file, safe_file_name
from ai_stream_mock.core.errors import MockDataError

from tests.unit.conftest import run_async


class TestSafeFileName:

    def test_strips_unsafe_characters(self):
        assert safe_file_name("../../etc/passwd") == "....etcpasswd"
        assert safe_file_name("chat v2.json") == "chatv2.json"
        assert safe_file_name("ok_name-1") == "ok_name-1"


class TestResolveDataFile:

    def test_appends_json_extension(self, mock_data_dir: Path):
        assert resolve_data_file(mock_data_dir, "default") == (mock_data_dir / "default.json").resolve()
        assert resolve_data_file(mock_data_dir, "default.json").name == "default.json"

    def test_empty_selector_means_default(self, mock_data_dir: Path):
        assert resolve_data_file(mock_data_dir, "").name == "default.json"
        assert resolve_data_file(mock_data_dir, "///").name == "default.json"

    def test_missing_file(self, mock_data_dir: Path):
        with pytest.raises(MockDataError, match="Mock data file not found: missing.json"):
            resolve_data_file(mock_data_dir, "missing")

    def test_traversal_cannot_escape(self, tmp_path: Path):
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (tmp_path / "secret.json").write_text("[]", encoding="utf-8")
        with pytest.raises(MockDataError):
            resolve_data_file(data_dir, "../secret")

    def test_relative_dir_resolves_against_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        (tmp_path / "mock" / "ai").mkdir(parents=True)
        (tmp_path / "mock" / "ai" / "chat.json").write_text("[]", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert resolve_data_file("mock/ai", "chat") == (tmp_path / "mock" / "ai" / "chat.json").resolve()


class TestLoadMockData:

    def test_loads_json(self, mock_data_dir: Path):
        path, raw = run_async(load_mock_data(mock_data_dir, "default"))
        assert path.name == "default.json"
        assert raw[0]["data"] == {"delta": "hello"}

    def test_invalid_json(self, mock_data_dir: Path):
        with pytest.raises(MockDataError, match="Invalid JSON in broken.json"):
            run_async(load_mock_data(mock_data_dir, "broken"))

    def test_arbitrary_single_value(self, tmp_path: Path):
        (tmp_path / "scalar.json").write_text(json.dumps("only value"), encoding="utf-8")
        _, raw = run_async(load_mock_data(tmp_path, "scalar"))
        assert raw == "only value"
