"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. This pattern keeps secrets out of source code: the .env file is
gitignored, and .env.example provides a safe template for developers.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from wallet_ledger.config import settings
    print(settings.SECRET_KEY)
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Wallet Ledger API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Wallet Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for local use; swap to a postgresql+asyncpg URL for production
    # (row locks taken with FOR UPDATE only take effect there)
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/wallet.db"

    # --- Authentication ---
    # REQUIRED: no default, forces the developer to set a real secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- CORS ---
    # Origins allowed to make cross-origin requests (storefront + admin panel)
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- Wallet ---
    # Label stored on deposit requests that don't name a payment method
    # ("havale" = bank transfer)
    DEFAULT_PAYMENT_METHOD: str = "havale"
    SITE_NAME: str = "Dijital Market"

    # --- Notifications ---
    # Telegram delivery is enabled only when both values are set
    TELEGRAM_BOT_TOKEN: str | None = None
    TELEGRAM_CHAT_ID: str | None = None
    NOTIFICATION_QUEUE_MAXSIZE: int = 1000
    NOTIFICATION_TIMEOUT_SECONDS: float = 5.0


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
