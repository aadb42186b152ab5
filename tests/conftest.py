"""Shared pytest fixtures for registry, allocator, resolver, and API tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine

from shortener.config import Settings
from shortener.database import close_db, create_engine, init_db
from shortener.dependencies import ServiceManager
from shortener.enums import ReservationOutcome
from shortener.errors import StoreError
from shortener.main import app
from shortener.registry import SqlRegistry


class InMemoryRegistry:
    """Registry double with the same atomic insert-if-absent semantics.

    Each coroutine body runs without awaiting, so check-and-insert is atomic
    with respect to other tasks on the event loop. Failure switches and
    ``forced_conflicts`` let tests script the store's behaviour.
    """

    def __init__(self, default_length: int = 4):
        self.records: dict[str, str] = {}
        self.length_setting: int | None = None
        self.default_length = default_length
        self.forced_conflicts = 0
        self.fail_reserve = False
        self.fail_read = False
        self.fail_write = False
        self.fail_lookup = False
        self.reserve_calls: list[str] = []
        self.length_reads = 0
        self.length_writes: list[int] = []
        self.lookup_calls: list[str] = []

    async def try_reserve(self, short_code: str, original_url: str) -> ReservationOutcome:
        self.reserve_calls.append(short_code)
        if self.fail_reserve:
            raise StoreError("disk I/O error")
        if self.forced_conflicts > 0:
            self.forced_conflicts -= 1
            return ReservationOutcome.CONFLICT
        if short_code in self.records:
            return ReservationOutcome.CONFLICT
        self.records[short_code] = original_url
        return ReservationOutcome.RESERVED

    async def read_code_length(self) -> int:
        self.length_reads += 1
        if self.fail_read:
            raise StoreError("settings table unavailable")
        return self.length_setting or self.default_length

    async def write_code_length(self, length: int) -> None:
        self.length_writes.append(length)
        if self.fail_write:
            raise StoreError("settings table is read-only")
        self.length_setting = max(self.length_setting or 0, length)

    async def lookup(self, short_code: str) -> str | None:
        self.lookup_calls.append(short_code)
        if self.fail_lookup:
            raise StoreError("connection reset")
        return self.records.get(short_code)


def scripted_codes(*codes: str):
    """Code generator returning ``codes`` in order, ignoring the requested length."""
    remaining = list(codes)

    def _generate(length: int) -> str:
        return remaining.pop(0)

    return _generate


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'shortener.db'}",
        REDIS_URL=None,
        BASE_URL="http://short.test",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def memory_registry() -> InMemoryRegistry:
    return InMemoryRegistry()


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine(settings)
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest_asyncio.fixture
async def registry(engine: AsyncEngine) -> SqlRegistry:
    return SqlRegistry.from_engine(engine)


@pytest_asyncio.fixture
async def client(settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    manager = ServiceManager()
    await manager.initialize(settings)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await manager.cleanup()
