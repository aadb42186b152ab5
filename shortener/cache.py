"""Redis client construction for the resolver cache.

The cache is optional: when REDIS_URL is unset the resolver talks to the
registry directly.

Functions:
    create_cache():  Build a Redis client from settings, or None.
    close_cache():  Close a client created by create_cache().
"""

import redis.asyncio as redis

from shortener.config import Settings

__all__ = ["close_cache", "create_cache"]


def create_cache(settings: Settings) -> redis.Redis | None:
    if not settings.REDIS_URL:
        return None
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
    )


async def close_cache(client: redis.Redis | None) -> None:
    if client is not None:
        await client.aclose()
