"""
Configuration and settings for the Remotage API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LEAD_TTL_SECONDS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # HTTP listener
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001)

    # Frontends allowed to call the API with credentials
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "https://remotage-frontend.vercel.app",
        ]
    )

    # Lead expiry
    lead_ttl_seconds: int = Field(default=LEAD_TTL_SECONDS)
    lead_sweep_interval_seconds: float = Field(default=60.0)
    enable_lead_sweeper: bool = Field(default=True)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
