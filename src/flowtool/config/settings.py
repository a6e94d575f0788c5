"""Application settings.

All configuration is sourced from environment variables (and optionally `.env`).
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed environment-backed settings for flowtool."""

    model_config = SettingsConfigDict(
        env_prefix="FLOWTOOL_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Directory holding one `<name>.json` file per flow
    flows_dir: Path = Field(default_factory=lambda: Path.cwd() / ".flowtool")

    autosave_delay_ms: int = Field(default=500, ge=0)

    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def autosave_delay(self) -> float:
        return self.autosave_delay_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
