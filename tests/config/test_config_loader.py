"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- load_config() precedence: defaults < YAML < env vars < kwargs
- get_paths() and SIMILO_HOME
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from similo.config.loader import _load_yaml, get_home, get_paths, load_config
from similo.core.errors import ConfigError, ErrorCode


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_returns_empty_for_empty_file(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert _load_yaml(yaml_file) == {}

    def test_raises_parse_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("ollama:\n  model:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)

        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_raises_parse_error_for_non_mapping(self, tmp_path: Path) -> None:
        """A YAML list at the top level is rejected."""
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)

        assert "mapping" in exc_info.value.message


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)

        assert config.server.port == 11435
        assert config.server.host == "127.0.0.1"
        assert config.ollama.model == "nomic-embed-text"
        assert config.indexing.extensions == [".md", ".txt"]
        assert config.search.default_limit == 10

    def test_yaml_overrides_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "config.yaml").write_text(
            "ollama:\n  model: mxbai-embed-large\n  host: http://gpu:11434/\n"
            "indexing:\n  extensions: [rst, .MD]\n"
        )

        config = load_config(tmp_path)

        assert config.ollama.model == "mxbai-embed-large"
        assert config.ollama.host == "http://gpu:11434"
        assert config.indexing.extensions == [".rst", ".md"]

    def test_env_overrides_yaml(self, tmp_path: Path) -> None:
        (tmp_path / "config.yaml").write_text("server:\n  port: 9000\n")

        with patch.dict("os.environ", {"SIMILO__SERVER__PORT": "9100"}):
            config = load_config(tmp_path)

        assert config.server.port == 9100

    def test_kwargs_override_env(self, tmp_path: Path) -> None:
        from similo.config.models import SearchConfig

        with patch.dict("os.environ", {"SIMILO__SEARCH__DEFAULT_LIMIT": "5"}):
            config = load_config(tmp_path, search=SearchConfig(default_limit=7))

        assert config.search.default_limit == 7

    def test_invalid_value_raises_config_error(self, tmp_path: Path) -> None:
        (tmp_path / "config.yaml").write_text("server:\n  port: 70000\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path)

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert "server.port" in exc_info.value.message

    def test_relative_log_destination_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "config.yaml").write_text(
            "logging:\n  outputs:\n    - destination: logs/out.log\n"
        )

        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_explicit_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path, config_file=tmp_path / "missing.yaml")

        assert exc_info.value.code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_explicit_file_replaces_home_file(self, tmp_path: Path) -> None:
        (tmp_path / "config.yaml").write_text("server:\n  port: 9000\n")
        explicit = tmp_path / "other.yaml"
        explicit.write_text("server:\n  port: 9200\n")

        assert load_config(tmp_path, config_file=explicit).server.port == 9200


class TestPaths:
    """Tests for get_home and get_paths."""

    def test_home_from_env(self, tmp_path: Path) -> None:
        with patch.dict("os.environ", {"SIMILO_HOME": str(tmp_path / "custom")}):
            assert get_home() == tmp_path / "custom"

    def test_default_home(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            assert get_home() == Path("~/.similo").expanduser()

    def test_layout(self, tmp_path: Path) -> None:
        paths = get_paths(tmp_path)

        assert paths.config_file == tmp_path / "config.yaml"
        assert paths.db_path == tmp_path / "index.db"
        assert paths.pid_file == tmp_path / "similo.pid"
        assert paths.port_file == tmp_path / "similo.port"
        assert paths.log_file == tmp_path / "logs" / "similo.log"
