"""Unit tests for configuration and server URL handling."""

from pathlib import Path

import pytest

from readlater.config import (
    DEFAULT_SERVER_URL,
    ServerConfig,
    ServerSettings,
    load_config,
    normalize_server_url,
)


class TestNormalizeServerUrl:
    """Tests for server URL validation."""

    def test_strips_whitespace_and_trailing_slashes(self):
        assert normalize_server_url("  http://host:8080/// ") == "http://host:8080"

    def test_keeps_path_prefix(self):
        assert normalize_server_url("https://host/reader/") == "https://host/reader"

    @pytest.mark.parametrize("url", ["", "   ", "host:8080", "ftp://host", "http://"])
    def test_rejects_invalid(self, url):
        with pytest.raises(ValueError):
            normalize_server_url(url)


class TestServerSettings:
    """Tests for the server URL reference cell."""

    def test_setter_normalizes(self):
        settings = ServerSettings()
        settings.server_url = "http://10.0.0.2:8080/"

        assert settings.server_url == "http://10.0.0.2:8080"

    def test_setter_rejects_invalid_and_keeps_old_value(self):
        settings = ServerSettings("http://a.local")

        with pytest.raises(ValueError):
            settings.server_url = "not a url"

        assert settings.server_url == "http://a.local"


class TestLoadConfig:
    """Tests for environment-based configuration."""

    def test_defaults(self, monkeypatch):
        for name in [
            "READLATER_DB_PATH", "READLATER_SERVER_URL", "READLATER_TIMEOUT",
            "READLATER_MAX_ATTEMPTS", "READLATER_SYNC_INTERVAL",
            "READLATER_LOG_LEVEL", "READLATER_LOG_FILE",
        ]:
            monkeypatch.delenv(name, raising=False)

        config = load_config()

        assert config.server_url == DEFAULT_SERVER_URL
        assert config.db_path == str(Path.home() / ".readlater" / "readlater.db")
        assert config.max_attempts == 3
        assert config.log_file is None

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("READLATER_DB_PATH", str(tmp_path / "x.db"))
        monkeypatch.setenv("READLATER_SERVER_URL", "http://pi.local:8080/")
        monkeypatch.setenv("READLATER_TIMEOUT", "5")
        monkeypatch.setenv("READLATER_MAX_ATTEMPTS", "7")
        monkeypatch.setenv("READLATER_SYNC_INTERVAL", "0")
        monkeypatch.setenv("READLATER_LOG_LEVEL", "debug")

        config = load_config()

        assert config.db_path == str(tmp_path / "x.db")
        assert config.server_url == "http://pi.local:8080"
        assert config.request_timeout == 5.0
        assert config.max_attempts == 7
        assert config.sync_interval == 0
        assert config.log_level == "DEBUG"

    def test_explicit_db_path_kept(self):
        assert ServerConfig(db_path=":memory:").db_path == ":memory:"
