"""SQLAlchemy ORM models for the short-code service.

This module defines the two persisted structures: the short-code records and
the key/value settings table that carries the adaptive code length.

Data Model Layout
=================
::
    short_urls table
    ├─ id (INTEGER PRIMARY KEY AUTOINCREMENT)
    ├─ short_code (VARCHAR(64) UNIQUE, INDEXED)
    ├─ original_url (TEXT NOT NULL)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

    settings table
    ├─ key (TEXT PRIMARY KEY)          e.g. 'short_code_length'
    ├─ value (TEXT NOT NULL)           e.g. '4'
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

How to Use
===========
**Step 1 — Import**::
    from shortener.models import ShortUrl, Setting

**Step 2 — Query a record**::
    result = await session.execute(select(ShortUrl).where(ShortUrl.short_code == "aB3x"))
    record = result.scalar_one_or_none()

Key Behaviours
===============
- short_code carries the unique constraint that makes reservation atomic.
- Records are written once and never updated.
- Codes of different lengths coexist once the length setting has grown.

Classes:
    ShortUrl:  A short code bound to its original URL.
    Setting:  A named scalar setting.
"""

import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shortener.database import Base

__all__ = ["SHORT_CODE_LENGTH_KEY", "Setting", "ShortUrl"]

SHORT_CODE_LENGTH_KEY = "short_code_length"


class ShortUrl(Base):
    __tablename__ = "short_urls"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShortUrl(id={self.id}, short_code='{self.short_code}')>"


class Setting(Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Setting(key='{self.key}', value='{self.value}')>"
