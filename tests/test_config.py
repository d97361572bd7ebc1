"""Tests for settings."""

from pathlib import Path

from form_engine.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("OPENMRS_REST_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.openmrs_rest_url.endswith("/ws/rest/v1")
        assert settings.submission_log_dir == Path("./data/logs")
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("OPENMRS_REST_URL", "http://emr.local/ws/rest/v1")
        monkeypatch.setenv("OPENMRS_PASSWORD", "secret")
        monkeypatch.setenv("SUBMISSION_LOG_ENABLED", "false")

        settings = Settings(_env_file=None)

        assert settings.openmrs_rest_url == "http://emr.local/ws/rest/v1"
        assert settings.has_credentials
        assert settings.submission_log_enabled is False

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
