"""Tests for configuration loading."""

from __future__ import annotations

import pytest
import toml

from btmeta.config import (
    ConfigManager,
    get_config,
    get_network_config,
    get_observability_config,
    init_config,
    reset_config,
)
from btmeta.models import LogLevel
from btmeta.utils.exceptions import ConfigurationError

pytestmark = [pytest.mark.unit, pytest.mark.config]


class TestConfigManager:
    def test_defaults(self):
        config = ConfigManager().config

        assert config.network.listen_port == 6881
        assert config.network.tracker_timeout == 15.0
        assert config.network.peer_id_prefix == "-BM0100-"
        assert config.observability.log_level == LogLevel.INFO
        assert config.observability.log_file is None
        assert not config.observability.structured_logging

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text(
            "[network]\nlisten_port = 7000\ntracker_timeout = 5.5\n"
            '[observability]\nlog_level = "DEBUG"\n',
            encoding="utf-8",
        )
        manager = ConfigManager(path)

        assert manager.config_file == path
        assert manager.config.network.listen_port == 7000
        assert manager.config.network.tracker_timeout == 5.5
        assert manager.config.observability.log_level == LogLevel.DEBUG

    def test_file_found_in_working_directory(self, tmp_path):
        (tmp_path / "btmeta.toml").write_text("[network]\nlisten_port = 7002\n", encoding="utf-8")
        manager = ConfigManager()
        assert manager.config_file == tmp_path / "btmeta.toml"
        assert manager.config.network.listen_port == 7002

    def test_file_found_in_user_config_dir(self, tmp_path):
        config_dir = tmp_path / ".config" / "btmeta"
        config_dir.mkdir(parents=True)
        (config_dir / "btmeta.toml").write_text('[network]\nuser_agent = "x/1"\n', encoding="utf-8")
        assert ConfigManager().config.network.user_agent == "x/1"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        path.write_text("[network]\nlisten_port = 7000\n", encoding="utf-8")
        monkeypatch.setenv("BTMETA_LISTEN_PORT", "7100")
        monkeypatch.setenv("BTMETA_TRACKER_TIMEOUT", "2.5")
        monkeypatch.setenv("BTMETA_STRUCTURED_LOGGING", "yes")
        monkeypatch.setenv("BTMETA_LOG_LEVEL", "ERROR")

        config = ConfigManager(path).config

        assert config.network.listen_port == 7100
        assert config.network.tracker_timeout == 2.5
        assert config.observability.structured_logging is True
        assert config.observability.log_level == LogLevel.ERROR

    def test_text_settings_stay_text(self, monkeypatch):
        monkeypatch.setenv("BTMETA_PEER_ID_PREFIX", "12345678")
        monkeypatch.setenv("BTMETA_USER_AGENT", "1.0")
        config = ConfigManager().config
        assert config.network.peer_id_prefix == "12345678"
        assert config.network.user_agent == "1.0"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            ConfigManager(tmp_path / "absent.toml")

    def test_malformed_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[network\nlisten_port = ", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Failed to load"):
            ConfigManager(path)

    @pytest.mark.parametrize(
        ("env_name", "value"),
        [
            ("BTMETA_LISTEN_PORT", "0"),
            ("BTMETA_LISTEN_PORT", "70000"),
            ("BTMETA_TRACKER_TIMEOUT", "-1"),
            ("BTMETA_LOG_LEVEL", "CHATTY"),
            ("BTMETA_PEER_ID_PREFIX", "x" * 21),
        ],
    )
    def test_invalid_values(self, monkeypatch, env_name, value):
        monkeypatch.setenv(env_name, value)
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            ConfigManager()

    def test_export_round_trips(self, monkeypatch):
        monkeypatch.setenv("BTMETA_LISTEN_PORT", "7200")
        exported = toml.loads(ConfigManager().export())
        assert exported["network"]["listen_port"] == 7200
        assert exported["observability"]["log_level"] == "INFO"
        assert "log_file" not in exported["observability"]


class TestGlobalConfig:
    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_init_config_replaces_global(self, tmp_path):
        first = get_config()
        path = tmp_path / "custom.toml"
        path.write_text("[network]\nlisten_port = 7300\n", encoding="utf-8")

        manager = init_config(path)

        assert get_config() is manager.config
        assert get_config() is not first
        assert get_network_config().listen_port == 7300
        assert get_observability_config() is manager.config.observability

    def test_reset_config_reloads(self, monkeypatch):
        assert get_network_config().listen_port == 6881
        monkeypatch.setenv("BTMETA_LISTEN_PORT", "7400")
        assert get_network_config().listen_port == 6881
        reset_config()
        assert get_network_config().listen_port == 7400
