"""Application settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]
# Public placeholder; multi-user mode refuses to start with it.
DEFAULT_SESSION_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables (no prefix)."""

    app_name: str = "Gestor de tareas"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    # Presence selects PostgreSQL; empty keeps everything in memory.
    database_url: str = ""
    auth_enabled: bool = False
    session_secret: str = DEFAULT_SESSION_SECRET
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
