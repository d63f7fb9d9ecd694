"""Tests for environment configuration."""

import pytest
from pydantic import ValidationError

from kb_studio.utils.config import Settings, get_settings, reset_settings


class TestSettings:
    """Test the Settings class."""

    def test_valid_config_with_required_fields(self) -> None:
        """Test that config loads successfully with required fields."""
        settings = Settings(_env_file=None)

        assert settings.APP_NAME == "kb-studio-test"
        assert settings.ENVIRONMENT == "development"
        assert settings.LOG_LEVEL == "INFO"
        assert settings.DEBUG is False
        assert settings.API_TIMEOUT == 30

    def test_missing_required_field_raises_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that missing required fields raise explicit ValidationError."""
        monkeypatch.delenv("ENVIRONMENT", raising=False)

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)

        assert "ENVIRONMENT" in str(exc_info.value)

    def test_workflow_defaults(self) -> None:
        """Test poller, autosave and session limits defaults."""
        settings = Settings(_env_file=None)

        assert settings.JOB_POLL_INTERVAL == 2.0
        assert settings.JOB_TIMEOUT == 300.0
        assert settings.AUTOSAVE_INTERVAL == 30.0
        assert settings.MAX_SAVED_SESSIONS == 10
        assert settings.BRAND_NAME == "Seed Financial"

    def test_log_level_is_normalized(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")

        assert Settings(_env_file=None).LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "VERBOSE")

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)

        assert "LOG_LEVEL" in str(exc_info.value)

    def test_invalid_environment_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "qa")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_secrets_are_masked(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that secret values never appear in the settings repr."""
        monkeypatch.setenv("LLM_API_KEY", "sk-very-secret")
        monkeypatch.setenv("PORTAL_API_TOKEN", "portal-secret")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///kb.db")

        settings = Settings(_env_file=None)

        assert "sk-very-secret" not in repr(settings)
        assert "portal-secret" not in repr(settings)
        assert settings.get_llm_api_key() == "sk-very-secret"
        assert settings.get_portal_api_token() == "portal-secret"
        assert settings.get_database_url() == "sqlite:///kb.db"

    def test_optional_secrets_default_to_none(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.get_llm_api_key() is None
        assert settings.get_custom_llm_api_key() is None
        assert settings.get_portal_api_token() is None
        assert settings.get_database_url() is None

    def test_poll_interval_must_be_positive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JOB_POLL_INTERVAL", "0")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)


class TestSettingsSingleton:
    """Test the get_settings singleton."""

    def test_get_settings_returns_same_instance(self) -> None:
        assert get_settings() is get_settings()

    def test_reset_settings_reloads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_settings()
        monkeypatch.setenv("APP_NAME", "renamed")

        reset_settings()

        second = get_settings()
        assert second is not first
        assert second.APP_NAME == "renamed"
