"""Database engine and session management for the short-code service.

This module provides SQLAlchemy async engine setup, session factories, and
schema lifecycle operations. PostgreSQL (asyncpg) and SQLite (aiosqlite) are
both supported; the registry only relies on a unique constraint and an upsert.

Flow Diagram — Database Lifecycle
=================================
::
    ┌─────────────┐
    │  lifespan   │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ create_     │
    │ engine()    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init_db()    │
    │ CREATE TABLE│
    │ IF NOT EXISTS│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Registry    │
    │ opens one   │
    │ session per │
    │ operation   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close_db()   │
    │ (shutdown)   │
    └─────────────┘

How to Use
===========
**Step 1 — Build the engine and session factory**::
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

**Step 2 — Create tables on startup**::
    await init_db(engine)

**Step 3 — Cleanup on shutdown**::
    await close_db(engine)

Key Behaviours
===============
- Pool sizing is only applied to server databases; SQLite uses its default pool.
- expire_on_commit is disabled so returned rows stay readable after commit.
- Tables are created automatically on application startup.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    create_engine():  Builds the async engine from settings.
    create_session_factory():  Builds the async_sessionmaker.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortener.config import Settings

__all__ = ["Base", "close_db", "create_engine", "create_session_factory", "init_db"]


class Base(DeclarativeBase):
    pass


def create_engine(settings: Settings) -> AsyncEngine:
    options: dict = {"echo": settings.DATABASE_ECHO}
    if not settings.DATABASE_URL.startswith("sqlite"):
        options.update(pool_size=20, max_overflow=10, pool_pre_ping=True)
    return create_async_engine(settings.DATABASE_URL, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # Model modules register their tables on Base.metadata at import time.
    from shortener import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
