"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """LeafWiki history backend settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/leafwiki.db"

    # Paths
    content_dir: Path = Path("./data/root")

    # History tracking
    history_suffix: str = ".md"
    history_scan_interval_seconds: float = Field(default=300.0, gt=0)
    history_scan_on_startup: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # CORS
    cors_origins: list[str] = Field(default_factory=list)

    @field_validator("history_suffix")
    @classmethod
    def _validate_history_suffix(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(".") or len(value) < 2:
            raise ValueError("history_suffix must be a file extension such as '.md'")
        return value
