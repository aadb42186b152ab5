"""Configuration management for the short-code service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortener.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3 — Override in tests**::
    settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./test.db", REDIS_URL=None)

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- BASE_URL falls back to http://localhost:{PORT} when not set.
- REDIS_URL is optional; the resolver cache is disabled without it.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortener"
    APP_ENV: str = "development"
    PORT: int = 3000
    BASE_URL: str | None = None
    LOG_LEVEL: str = "INFO"

    # SQLite for local runs, postgresql+asyncpg://... in deployments
    DATABASE_URL: str = "sqlite+aiosqlite:///./shortener.db"
    DATABASE_ECHO: bool = False

    # Redis read-through cache for resolved codes
    REDIS_URL: str | None = None
    CACHE_TTL_SECONDS: int = 3600

    # Short code allocation
    DEFAULT_SHORT_CODE_LENGTH: int = Field(4, ge=1)
    ATTEMPTS_PER_LENGTH: int = Field(3, ge=1)
    MAX_ALLOCATION_ROUNDS: int = Field(10, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @model_validator(mode="after")
    def _default_base_url(self) -> "Settings":
        if not self.BASE_URL:
            self.BASE_URL = f"http://localhost:{self.PORT}"
        return self

    @property
    def public_base_url(self) -> str:
        return (self.BASE_URL or f"http://localhost:{self.PORT}").rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
