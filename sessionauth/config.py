"""
sessionauth configuration using pydantic-settings.

All settings can be overridden via environment variables or a .env file.
``DATABASE_URL`` and ``SESSION_SECRET`` are required; without them the
application refuses to start.
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from sessionauth.errors import ConfigurationError


# Project root is one level above this file: sessionauth/config.py -> project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Runtime configuration for the sessionauth service."""

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------- Database ----------
    DATABASE_URL: str  # required, no default
    DB_CREATE_TABLES: bool = False

    # ---------- Session tokens ----------
    SESSION_SECRET: str  # required, no default
    SESSION_ALGORITHM: str = "HS256"
    SESSION_MAX_AGE_DAYS: int = 30
    SESSION_COOKIE_NAME: str = "sessionauth.session-token"
    SESSION_COOKIE_SECURE: bool = False

    # ---------- Passwords ----------
    BCRYPT_ROUNDS: int = 10

    # ---------- HTTP ----------
    ALLOWED_ORIGINS: List[str] = ["*"]
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # ---------- Logging ----------
    LOG_LEVEL: str = "INFO"

    @property
    def session_max_age_secs(self) -> int:
        """Session lifetime in whole seconds."""
        return self.SESSION_MAX_AGE_DAYS * 24 * 60 * 60


def load_settings(**overrides) -> Settings:
    """
    Build a ``Settings`` instance, raising ``ConfigurationError`` when a
    required variable is missing or empty.
    """
    try:
        settings = Settings(**overrides)
    except PydanticValidationError as exc:
        missing = sorted(
            str(err["loc"][0]) for err in exc.errors() if err.get("loc")
        )
        raise ConfigurationError(
            "Invalid or missing configuration: " + ", ".join(missing)
        ) from exc

    if not settings.DATABASE_URL.strip():
        raise ConfigurationError("Please define the DATABASE_URL environment variable")
    if not settings.SESSION_SECRET.strip():
        raise ConfigurationError("Please define the SESSION_SECRET environment variable")
    return settings


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance (read once, reused everywhere)."""
    return load_settings()
