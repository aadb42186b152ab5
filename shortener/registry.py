"""Persistent registry of short codes and the adaptive code-length setting.

The registry is the only component that touches the database. Every operation
opens its own session and releases it on every exit path, so callers never hold
a connection between allocation rounds.

Operation Overview
==================
::
    try_reserve(code, url)   INSERT INTO short_urls ...
                             ├─ committed            → RESERVED
                             ├─ unique violation     → CONFLICT
                             └─ anything else        → StoreError

    read_code_length()       SELECT value FROM settings WHERE key = 'short_code_length'
                             ├─ missing / unparsable → default length
                             └─ store fault          → StoreError

    write_code_length(n)     INSERT ... ON CONFLICT (key) DO UPDATE
                             WHERE CAST(value AS INTEGER) < n

    lookup(code)             SELECT original_url FROM short_urls WHERE short_code = ?
                             └─ None when absent

Key Behaviours
===============
- Uniqueness is decided by the database constraint, never by a prior SELECT.
- The length upsert only ever raises the stored value.
- Store faults are wrapped in StoreError and chained to the SQLAlchemy error.
"""

import logging
from typing import Protocol

from sqlalchemy import Integer, cast, insert, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shortener.database import create_session_factory
from shortener.enums import ReservationOutcome
from shortener.errors import StoreError
from shortener.models import SHORT_CODE_LENGTH_KEY, Setting, ShortUrl

__all__ = ["DEFAULT_SHORT_CODE_LENGTH", "ShortUrlRegistry", "SqlRegistry", "is_unique_violation"]

DEFAULT_SHORT_CODE_LENGTH = 4

_UNIQUE_VIOLATION_SQLSTATE = "23505"
_SQLITE_UNIQUE_ERRORS = ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY")


class ShortUrlRegistry(Protocol):
    """Storage operations consumed by the allocator and resolver."""

    async def try_reserve(self, short_code: str, original_url: str) -> ReservationOutcome: ...

    async def read_code_length(self) -> int: ...

    async def write_code_length(self, length: int) -> None: ...

    async def lookup(self, short_code: str) -> str | None: ...


def is_unique_violation(exc: IntegrityError) -> bool:
    """Tell a unique-constraint violation apart from other integrity errors."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == _UNIQUE_VIOLATION_SQLSTATE
    errorname = getattr(orig, "sqlite_errorname", None)
    if errorname:
        return errorname in _SQLITE_UNIQUE_ERRORS
    return "unique" in str(orig).lower()


class SqlRegistry:
    """SQLAlchemy-backed registry.

    Args:
        session_factory: Factory producing one AsyncSession per operation.
        dialect_name: Dialect of the bound engine, used to pick the upsert form.
        default_length: Length reported when no setting has been stored.
        logger: Logger for parse warnings.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dialect_name: str,
        default_length: int = DEFAULT_SHORT_CODE_LENGTH,
        logger: logging.Logger | None = None,
    ):
        self._session_factory = session_factory
        self._dialect_name = dialect_name
        self._default_length = default_length
        self._logger = logger or logging.getLogger("shortener")

    @classmethod
    def from_engine(
        cls,
        engine: AsyncEngine,
        default_length: int = DEFAULT_SHORT_CODE_LENGTH,
        logger: logging.Logger | None = None,
    ) -> "SqlRegistry":
        return cls(create_session_factory(engine), engine.dialect.name, default_length, logger)

    async def try_reserve(self, short_code: str, original_url: str) -> ReservationOutcome:
        async with self._session_factory() as session:
            try:
                await session.execute(
                    insert(ShortUrl).values(short_code=short_code, original_url=original_url)
                )
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if is_unique_violation(exc):
                    return ReservationOutcome.CONFLICT
                raise StoreError(f"Failed to reserve short code '{short_code}': {exc.orig}") from exc
            except (SQLAlchemyError, OSError) as exc:
                raise StoreError(f"Failed to reserve short code '{short_code}': {exc}") from exc
        return ReservationOutcome.RESERVED

    async def read_code_length(self) -> int:
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    select(Setting.value).where(Setting.key == SHORT_CODE_LENGTH_KEY)
                )
                raw = result.scalar_one_or_none()
            except (SQLAlchemyError, OSError) as exc:
                raise StoreError(f"Failed to read {SHORT_CODE_LENGTH_KEY}: {exc}") from exc

        if raw is None:
            return self._default_length
        try:
            length = int(raw)
        except ValueError:
            self._logger.warning(f"Error parsing {SHORT_CODE_LENGTH_KEY} value {raw!r}, using default")
            return self._default_length
        if length < 1:
            self._logger.warning(f"Ignoring non-positive {SHORT_CODE_LENGTH_KEY} value {length}")
            return self._default_length
        return length

    async def write_code_length(self, length: int) -> None:
        assert isinstance(length, int) and length > 0, f"length must be a positive int, got {length!r}"
        async with self._session_factory() as session:
            try:
                if self._dialect_name in ("postgresql", "sqlite"):
                    await session.execute(self._upsert_length(length))
                else:
                    await session.merge(Setting(key=SHORT_CODE_LENGTH_KEY, value=str(length)))
                await session.commit()
            except (SQLAlchemyError, OSError) as exc:
                raise StoreError(f"Failed to write {SHORT_CODE_LENGTH_KEY}={length}: {exc}") from exc
        self._logger.info(f"{SHORT_CODE_LENGTH_KEY} upserted to at least {length}")

    async def lookup(self, short_code: str) -> str | None:
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    select(ShortUrl.original_url).where(ShortUrl.short_code == short_code)
                )
                return result.scalar_one_or_none()
            except (SQLAlchemyError, OSError) as exc:
                raise StoreError(f"Failed to look up short code '{short_code}': {exc}") from exc

    async def ping(self) -> None:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))

    def _upsert_length(self, length: int):
        if self._dialect_name == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        else:
            from sqlalchemy.dialects.sqlite import insert as dialect_insert

        stmt = dialect_insert(Setting).values(key=SHORT_CODE_LENGTH_KEY, value=str(length))
        return stmt.on_conflict_do_update(
            index_elements=[Setting.key],
            set_={"value": stmt.excluded["value"]},
            where=cast(Setting.value, Integer) < cast(stmt.excluded["value"], Integer),
        )
