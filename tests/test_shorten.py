"""Shorten endpoint behavior tests."""

import pytest
from conftest import InMemoryRegistry
from httpx import AsyncClient

from shortener.allocator import CodeAllocator
from shortener.config import Settings
from shortener.dependencies import get_allocator
from shortener.main import app


@pytest.mark.asyncio
async def test_shorten_url(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"original_url": "https://example.com"})
    assert response.status_code == 200
    data = response.json()
    assert len(data["short_code"]) == 4
    assert data["short_code"].isalnum()
    assert data["short_url"] == f"http://short.test/{data['short_code']}"


@pytest.mark.asyncio
async def test_shorten_is_not_deduplicated(client: AsyncClient) -> None:
    codes = set()
    for _ in range(3):
        response = await client.post("/shorten", json={"original_url": "https://example.com"})
        assert response.status_code == 200
        codes.add(response.json()["short_code"])
    assert len(codes) == 3


@pytest.mark.asyncio
async def test_shorten_stores_input_verbatim(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"original_url": "not a url at all"})
    assert response.status_code == 200
    short_code = response.json()["short_code"]

    lookup = await client.get("/lookup", params={"short_code": short_code})
    assert lookup.text == "not a url at all"


@pytest.mark.asyncio
async def test_shorten_missing_body_field(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "https://example.com"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_shorten_store_failure_is_internal_error(client: AsyncClient, settings: Settings) -> None:
    failing = InMemoryRegistry()
    failing.fail_reserve = True
    app.dependency_overrides[get_allocator] = lambda: CodeAllocator(failing, settings=settings)

    response = await client.post("/shorten", json={"original_url": "https://example.com"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


@pytest.mark.asyncio
async def test_shorten_capacity_exhausted_is_internal_error(client: AsyncClient, settings: Settings) -> None:
    saturated = InMemoryRegistry()
    saturated.forced_conflicts = 10**6
    app.dependency_overrides[get_allocator] = lambda: CodeAllocator(saturated, settings=settings)

    response = await client.post("/shorten", json={"original_url": "https://example.com"})
    assert response.status_code == 500
