"""Tests for configuration module."""

import pytest

from codesight.config import ConfigurationError, Settings, get_settings


class TestSettings:
    """Tests for Settings class."""

    def test_settings_default_values(self):
        """Test default values are set correctly."""
        settings = Settings(_env_file=None)

        assert settings.min_quality_threshold == 60.0
        assert settings.max_lookahead == 15
        assert settings.max_fallbacks == 3
        assert settings.compare_min_products == 3
        assert settings.session_time_budget_seconds == 30.0
        assert settings.max_workers >= 1
        assert settings.pipeline_config_path is None

    def test_settings_loads_from_env(self, monkeypatch):
        """Test that settings load from prefixed environment variables."""
        monkeypatch.setenv("CODESIGHT_MIN_QUALITY_THRESHOLD", "72.5")
        monkeypatch.setenv("CODESIGHT_MAX_LOOKAHEAD", "8")
        monkeypatch.setenv("CODESIGHT_MAX_WORKERS", "4")
        monkeypatch.setenv("CODESIGHT_LOG_JSON", "true")

        settings = Settings(_env_file=None)

        assert settings.min_quality_threshold == 72.5
        assert settings.max_lookahead == 8
        assert settings.max_workers == 4
        assert settings.log_json is True

    def test_unprefixed_env_ignored(self, monkeypatch):
        """Test variables without the prefix are ignored."""
        monkeypatch.setenv("MAX_LOOKAHEAD", "99")

        assert Settings(_env_file=None).max_lookahead == 15

    def test_get_settings(self, monkeypatch):
        """Test get_settings builds fresh settings."""
        monkeypatch.setenv("CODESIGHT_MAX_FALLBACKS", "1")

        assert get_settings().max_fallbacks == 1


class TestConfigurationError:
    """Tests for ConfigurationError."""

    def test_is_exception(self):
        """Test ConfigurationError can be raised and caught."""
        with pytest.raises(ConfigurationError, match="bad"):
            raise ConfigurationError("bad")
