"""
Tests for sbvc_cli.config and sbvc.config
"""

import json

import pytest

from sbvc.config import HistoryConfig, store_path_for
from sbvc_cli.config import (
    ENV_GRANULARITY,
    ENV_LOG_LEVEL,
    ENV_POLL_INTERVAL,
    Config,
    apply_env_overrides,
    get_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (ENV_GRANULARITY, ENV_POLL_INTERVAL, ENV_LOG_LEVEL):
        monkeypatch.delenv(name, raising=False)


class TestHistoryConfig:
    """Tests for HistoryConfig."""

    def test_default_values(self):
        """Test default engine settings."""
        config = HistoryConfig()
        assert config.granularity == "line"
        assert config.completion_slots == 8
        assert config.poll_interval == 0.05
        assert config.store_extension == ".sbvc"

    def test_round_trip(self):
        """Test to_dict/from_dict."""
        config = HistoryConfig(granularity="char", completion_slots=2, poll_interval=0.2)
        assert HistoryConfig.from_dict(config.to_dict()) == config

    def test_from_partial_dict(self):
        """Test missing keys fall back to defaults."""
        config = HistoryConfig.from_dict({"granularity": "char"})
        assert config.granularity == "char"
        assert config.completion_slots == 8

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"granularity": "word"},
            {"completion_slots": 0},
            {"poll_interval": 0},
        ],
    )
    def test_invalid_values(self, kwargs):
        """Test validation in __post_init__."""
        with pytest.raises(ValueError):
            HistoryConfig(**kwargs)


class TestStorePathFor:
    """Tests for store_path_for()."""

    def test_replaces_suffix(self, tmp_path):
        assert store_path_for(tmp_path / "notes.txt") == tmp_path / "notes.sbvc"

    def test_no_suffix(self, tmp_path):
        assert store_path_for(tmp_path / "README") == tmp_path / "README.sbvc"

    def test_custom_extension(self, tmp_path):
        assert store_path_for(tmp_path / "a.md", ".hist") == tmp_path / "a.hist"


class TestConfig:
    """Tests for Config."""

    def test_default_values(self, tmp_path):
        """Test default CLI settings."""
        config = Config(global_dir=tmp_path)
        assert config.log_level == "WARNING"
        assert config.show_dates is True
        assert config.confirm_delete is True
        assert config.config_file == tmp_path / "config.json"

    def test_string_global_dir(self, tmp_path):
        """Test global_dir is converted to Path."""
        config = Config(global_dir=str(tmp_path))
        assert config.global_dir == tmp_path

    def test_save_and_load(self, tmp_path):
        """Test saving and reloading."""
        config = Config(global_dir=tmp_path / "cfg")
        config.history = HistoryConfig(granularity="char")
        config.log_level = "DEBUG"
        config.confirm_delete = False
        config.save()

        data = json.loads(config.config_file.read_text())
        assert data["history"]["granularity"] == "char"

        loaded = Config.load(config.config_file)
        assert loaded.history.granularity == "char"
        assert loaded.log_level == "DEBUG"
        assert loaded.confirm_delete is False
        assert loaded.show_dates is True

    def test_load_missing_file(self, tmp_path):
        """Test loading a missing file gives defaults."""
        loaded = Config.load(tmp_path / "missing.json")
        assert loaded.history == HistoryConfig()


class TestGetConfig:
    """Tests for get_config() and environment overrides."""

    def test_without_file(self, tmp_path):
        config = get_config(global_dir=tmp_path)
        assert config.global_dir == tmp_path
        assert config.history == HistoryConfig()

    def test_reads_config_file(self, tmp_path):
        Config(global_dir=tmp_path, show_dates=False).save()
        config = get_config(global_dir=tmp_path)
        assert config.show_dates is False
        assert config.global_dir == tmp_path

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv(ENV_GRANULARITY, "char")
        monkeypatch.setenv(ENV_POLL_INTERVAL, "0.5")
        monkeypatch.setenv(ENV_LOG_LEVEL, "debug")

        config = get_config(global_dir=tmp_path)

        assert config.history.granularity == "char"
        assert config.history.poll_interval == 0.5
        assert config.log_level == "DEBUG"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        Config(global_dir=tmp_path, history=HistoryConfig(completion_slots=3)).save()
        monkeypatch.setenv(ENV_GRANULARITY, "char")

        config = get_config(global_dir=tmp_path)

        assert config.history.granularity == "char"
        assert config.history.completion_slots == 3

    def test_invalid_env_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv(ENV_GRANULARITY, "paragraph")
        with pytest.raises(ValueError):
            apply_env_overrides(Config(global_dir=tmp_path))
