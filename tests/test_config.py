"""Tests for configuration file resolution and loading."""

from pathlib import Path

import pytest

from crane_admin.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    load_client_config,
    read_config_file,
    resolve_config_path,
)
from crane_admin.errors import ConfigInvalidError, ConfigNotFoundError, ExitCode


class TestResolveConfigPath:
    def test_explicit_path_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv(CONFIG_ENV_VAR, "/from/env.yaml")
        assert resolve_config_path(tmp_path / "a.yaml") == tmp_path / "a.yaml"

    def test_env_var(self, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, "/from/env.yaml")
        assert resolve_config_path() == Path("/from/env.yaml")

    def test_default(self):
        assert resolve_config_path() == Path(DEFAULT_CONFIG_PATH)


class TestLoadClientConfig:
    def test_loads_values(self, config_file):
        config = load_client_config(str(config_file))
        assert config.control_machine == "ctld.example.com"
        assert config.port == 10011
        assert config.use_tls is False
        assert config.timeout == 30.0
        assert config.backend_config() == {
            "backend": "http",
            "backend_config": {
                "hostname": "ctld.example.com",
                "port": 10011,
                "use_tls": False,
                "timeout": 30.0,
            },
        }

    def test_from_env(self, monkeypatch, config_file):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))
        assert load_client_config().path == config_file

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigNotFoundError) as exc_info:
            load_client_config(str(tmp_path / "missing.yaml"))
        assert exc_info.value.exit_code == ExitCode.USAGE

    def test_missing_control_machine(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("CraneCtldListenPort: 10011\n", encoding="utf-8")
        with pytest.raises(ConfigInvalidError, match="ControlMachine"):
            load_client_config(str(path))

    def test_bad_port(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("ControlMachine: ctld\nCraneCtldListenPort: high\n", encoding="utf-8")
        with pytest.raises(ConfigInvalidError):
            load_client_config(str(path))


class TestReadConfigFile:
    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("Nodes: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigInvalidError):
            read_config_file(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigInvalidError, match="mapping"):
            read_config_file(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert read_config_file(path) == {}
