"""
Settings for the card processor, read from the environment.

Precedence: real environment variables, then a local .env file (gitignored;
.env.example lists every key), then the defaults below. Names are matched
case-insensitively.

Usage:
    from card_processor.config import settings
    print(settings.STATEMENT_GRACE_DAYS)
"""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the card transaction processor.

    Must be provided, there is no default:
      - ADMIN_API_KEY: Shared secret for admin and directory endpoints
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Card Transaction Processor"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Storage ---
    # "sql" persists through SQLAlchemy; "memory" keeps everything in-process
    STORAGE_BACKEND: Literal["sql", "memory"] = "sql"
    # SQLite for single-node deployments; swap to a PostgreSQL URL (asyncpg) if needed
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/cards.db"

    # --- Admin access ---
    # REQUIRED: no default, the operator must set one
    ADMIN_API_KEY: str

    # --- Logging ---
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "json"

    # --- Statements ---
    STATEMENT_GRACE_DAYS: int = 25
    MINIMUM_PAYMENT_FLOOR_CENTS: int = 2500
    MINIMUM_PAYMENT_PERCENT: int = 2

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        # LOG_LEVEL=debug is as good as LOG_LEVEL=DEBUG
        return value.upper() if isinstance(value, str) else value


# Shared instance; tests set ADMIN_API_KEY before importing this module
settings = Settings()
