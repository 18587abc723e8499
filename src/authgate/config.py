"""Configuration for authgate.

Settings are read from ``AUTHGATE_*`` environment variables (and an optional
``.env`` file) through pydantic-settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHGATE_",
        env_file=".env",
        extra="ignore",
    )

    # Credential lifetimes, seconds
    access_token_ttl: int = Field(3600, gt=0)
    refresh_token_ttl: int = Field(30 * 24 * 3600, gt=0)
    authorization_code_ttl: int = Field(600, gt=0)

    config_dir: Path = Field(default_factory=lambda: Path.home() / ".authgate")
    persist_tokens: bool = True
    bcrypt_rounds: int = Field(12, ge=4, le=31)

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @property
    def store_path(self) -> Path:
        return self.config_dir / "oauth_store.json"

    @classmethod
    def load(cls) -> Settings:
        """Read a fresh Settings instance from the environment."""
        return cls()


@lru_cache
def get_settings() -> Settings:
    return Settings.load()

