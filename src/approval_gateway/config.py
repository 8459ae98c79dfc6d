"""Configuration and environment loading for the approval gateway."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Gateway settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Backend
    backend_url: str = "https://openclaw-prod.tailbc93c6.ts.net"
    request_timeout: float = 15.0  # Seconds for list and decision calls
    registration_timeout: float = 10.0

    # Sync
    poll_interval: float = 30.0  # Seconds between background polls

    # Local state
    state_dir: Path = Path.home() / ".approval_gateway"
    history_key: str = "approvals-storage"
    device_token_key: str = "openclaw_device_token"

    log_level: str = "INFO"

    @property
    def api_base(self) -> str:
        """Backend URL without a trailing slash."""
        return self.backend_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
