"""End-to-end register/resolve tests over the SQL registry."""

import asyncio

import pytest
from conftest import scripted_codes

from shortener.allocator import ALPHABET
from shortener.config import Settings
from shortener.errors import NotFoundError
from shortener.registry import SqlRegistry
from shortener.service import UrlShortener


@pytest.mark.asyncio
async def test_register_and_resolve_example(registry: SqlRegistry, settings: Settings) -> None:
    shortener = UrlShortener(registry, settings=settings)

    code = await shortener.register("https://example.com")

    assert len(code) == 4
    assert all(c in ALPHABET for c in code)
    assert await shortener.resolve(code) == "https://example.com"


@pytest.mark.asyncio
async def test_resolve_never_issued_code(registry: SqlRegistry, settings: Settings) -> None:
    shortener = UrlShortener(registry, settings=settings)

    with pytest.raises(NotFoundError):
        await shortener.resolve("zzzz")


@pytest.mark.asyncio
async def test_round_trip_many(registry: SqlRegistry, settings: Settings) -> None:
    shortener = UrlShortener(registry, settings=settings)
    urls = [f"https://example.com/{i}" for i in range(20)] + ["https://example.com/0"]

    codes = [await shortener.register(url) for url in urls]

    assert len(set(codes)) == len(urls)
    for code, url in zip(codes, urls):
        assert await shortener.resolve(code) == url


@pytest.mark.asyncio
async def test_concurrent_registrations(registry: SqlRegistry, settings: Settings) -> None:
    shortener = UrlShortener(registry, settings=settings)

    codes = await asyncio.gather(*(shortener.register(f"https://example.com/{i}") for i in range(10)))

    assert len(set(codes)) == 10
    for i, code in enumerate(codes):
        assert await shortener.resolve(code) == f"https://example.com/{i}"


@pytest.mark.asyncio
async def test_saturation_grows_persisted_length(registry: SqlRegistry, settings: Settings) -> None:
    for code in ("aaaa", "bbbb", "cccc"):
        await registry.try_reserve(code, "https://taken.example")
    shortener = UrlShortener(registry, settings=settings)
    shortener.allocator._generate = scripted_codes("aaaa", "bbbb", "cccc", "ddddd")

    code = await shortener.register("https://example.com")

    assert code == "ddddd"
    assert await registry.read_code_length() == 5
    assert await shortener.resolve("aaaa") == "https://taken.example"
    assert await shortener.resolve("ddddd") == "https://example.com"
