"""Tests for gateway settings."""

from pathlib import Path

from approval_gateway.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BACKEND_URL", raising=False)
        monkeypatch.delenv("POLL_INTERVAL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.backend_url == "https://openclaw-prod.tailbc93c6.ts.net"
        assert settings.request_timeout == 15.0
        assert settings.registration_timeout == 10.0
        assert settings.poll_interval == 30.0
        assert settings.history_key == "approvals-storage"
        assert settings.device_token_key == "openclaw_device_token"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("BACKEND_URL", "http://localhost:8080/")
        monkeypatch.setenv("POLL_INTERVAL", "5")
        settings = Settings(_env_file=None)

        assert settings.api_base == "http://localhost:8080"
        assert settings.poll_interval == 5.0

    def test_state_dir_from_env(self):
        assert isinstance(get_settings().state_dir, Path)
        assert get_settings() is get_settings()
