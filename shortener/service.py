"""Service facade exposing the two core operations.

How to Use
===========
**Step 1 — Build from an engine**::
    engine = create_engine(settings)
    await init_db(engine)
    shortener = UrlShortener(SqlRegistry.from_engine(engine), settings=settings)

**Step 2 — Register and resolve**::
    code = await shortener.register("https://example.com")
    url = await shortener.resolve(code)

Key Behaviours
===============
- register() never returns a code already bound to another URL.
- resolve() raises NotFoundError for codes that were never issued.
"""

import logging

import redis.asyncio as redis

from shortener.allocator import CodeAllocator
from shortener.config import Settings, get_settings
from shortener.registry import ShortUrlRegistry
from shortener.resolver import Resolver

__all__ = ["UrlShortener"]


class UrlShortener:
    def __init__(
        self,
        registry: ShortUrlRegistry,
        cache: redis.Redis | None = None,
        settings: Settings | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        settings = settings or get_settings()
        self.allocator = CodeAllocator(registry, settings=settings, logger=logger)
        self.resolver = Resolver(
            registry,
            cache=cache,
            cache_ttl_seconds=settings.CACHE_TTL_SECONDS,
            logger=logger,
        )

    async def register(self, original_url: str) -> str:
        return await self.allocator.allocate(original_url)

    async def resolve(self, short_code: str) -> str:
        return await self.resolver.resolve(short_code)
