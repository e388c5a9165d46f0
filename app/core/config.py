# app/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env) in production:
      - DATABASE_URL (Postgres connection string)
      - SECRET_KEY (signs session cookies and API keys)

    Optional:
      - API_KEY_FORMAT=unsigned (legacy base64 API keys, development only)
    """

    PROJECT_NAME: str = "Sourcing Marketplace API"
    API_PREFIX: str = "/api"
    ENVIRONMENT: Literal["development", "production", "test"] = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./marketplace.db"
    DATABASE_ECHO: bool = False
    DATABASE_SSLMODE: str | None = None

    # Signing (session cookies + API keys)
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALG: str = "HS256"

    # Session cookie
    SESSION_COOKIE_NAME: str = "session"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 30
    SESSION_COOKIE_SECURE: bool = False

    # x-api-key tokens
    API_KEY_FORMAT: Literal["signed", "unsigned"] = "signed"
    API_KEY_TTL_SECONDS: int = 60 * 60 * 24

    # Password hashing
    BCRYPT_ROUNDS: int = 12

    # Public listing rate limit
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_SWEEP_SECONDS: int = 300

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def unsigned_keys_only_in_development(self) -> "Settings":
        # Unsigned keys are a forgeable identity claim.
        if self.API_KEY_FORMAT == "unsigned" and self.ENVIRONMENT != "development":
            raise ValueError(
                "API_KEY_FORMAT=unsigned is only allowed when ENVIRONMENT=development"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
