# checkout/core/config.py
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required in production (.env):
      - DATABASE_URL (Postgres connection string)
      - JWT_SECRET (HS256 signing secret of the auth provider)

    Checkout tuning:
      - CHECKOUT_CONFLICT_RETRIES: automatic retries of a checkout that
        lost a stock race (StockChanged / serialization failure)
      - CHECKOUT_STATEMENT_TIMEOUT_MS: per-statement timeout applied to the
        checkout transaction (PostgreSQL only)
    """

    PROJECT_NAME: str = "Checkout Core"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./checkout.db"
    DB_SSLMODE: str | None = "require"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_ISOLATION_LEVEL: str | None = "READ COMMITTED"
    DB_ECHO: bool = False

    # JWT verification (backend-side)
    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    CHECKOUT_CONFLICT_RETRIES: int = 1
    CHECKOUT_STATEMENT_TIMEOUT_MS: int | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
