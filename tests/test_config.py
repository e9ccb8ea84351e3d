"""Tests for configuration loading."""

import json

import pytest

from nmclean.config import (
    CONFIG_ENV_VAR,
    EngineConfig,
    default_config_file,
    expand_path,
    load_config,
    save_config,
)
from nmclean.errors import ConfigError
from nmclean.filters import EntryKind


class TestExpandPath:
    def test_expands_tilde(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert expand_path("~/x") == tmp_path / "x"

    def test_absolute_path_unchanged(self):
        assert str(expand_path("/absolute/path")) == "/absolute/path"


class TestDefaultConfigFile:
    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "custom.json"))
        assert default_config_file() == tmp_path / "custom.json"

    def test_home_default(self, monkeypatch, tmp_path):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert default_config_file() == tmp_path / ".nmclean" / "config.json"


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.json")
        assert config == EngineConfig()
        assert config.target_names == ["node_modules"]
        assert config.max_depth is None

    def test_reads_settings(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"max_depth": 5, "skip_hidden": False}))

        config = load_config(config_file)
        assert config.max_depth == 5
        assert config.skip_hidden is False
        assert config.size_workers == EngineConfig().size_workers

    def test_invalid_json(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_invalid_values(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"size_workers": 0}))

        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_not_an_object(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text("[1, 2]")

        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_uses_env_location(self, monkeypatch, tmp_path):
        config_file = tmp_path / "env.json"
        config_file.write_text(json.dumps({"sort_by_size": True}))
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))

        assert load_config().sort_by_size is True


class TestSaveConfig:
    def test_save_then_load(self, tmp_path):
        config_file = tmp_path / "nested" / "config.json"
        config = EngineConfig(max_depth=7, protected_paths=["~/keep"])

        written = save_config(config, config_file)
        assert written == config_file
        assert load_config(config_file) == config


class TestEngineConfig:
    def test_path_filter(self):
        config = EngineConfig(target_names=["bower_components"], skip_hidden=False)
        path_filter = config.path_filter()
        assert path_filter.classify("bower_components", True) == EntryKind.TARGET
        assert path_filter.classify(".config", True) == EntryKind.DESCEND

    def test_expanded_protected_paths(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        config = EngineConfig(protected_paths=["~/keep"])
        assert config.expanded_protected_paths() == [tmp_path / "keep"]
