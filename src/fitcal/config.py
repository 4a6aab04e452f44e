"""Application settings and logging setup.

Settings are read from environment variables prefixed with ``FITCAL_``
(or a local ``.env`` file). Use ``get_settings()`` everywhere so the
instance is cached per process and can be swapped out in tests.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default data directory (repository root / data)
DATA_DIR = Path(__file__).parent.parent.parent / "data"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FITCAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    data_dir: Path = Field(default=DATA_DIR, description="Directory holding the SQLite file")
    db_name: str = Field(default="fitcal.db", description="SQLite database file name")
    log_level: str = Field(default="INFO", description="Root log level")

    default_user_id: str = Field(
        default="local",
        description="User id used when a request carries no X-User-Id header",
    )
    default_timezone: str = Field(default="UTC")

    max_calendar_range_days: int = Field(default=90, ge=1)
    default_start_time: str = Field(default="09:00")
    default_duration: int = Field(default=60, ge=1)
    default_color: str = Field(default="#3b82f6")
    rest_color: str = Field(default="#6b7280")
    max_generated_templates: int = Field(default=4, ge=1)

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Allowed CORS origins for the web API",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return value

    @property
    def db_path(self) -> Path:
        """Full path to the SQLite database."""
        return self.data_dir / self.db_name


@lru_cache
def get_settings() -> Settings:
    """Get the cached application settings."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the CLI and web server."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format=LOG_FORMAT,
    )
