"""Lookup endpoint behavior tests."""

import pytest
from conftest import InMemoryRegistry
from httpx import AsyncClient

from shortener.dependencies import get_resolver
from shortener.main import app
from shortener.resolver import Resolver


@pytest.mark.asyncio
async def test_lookup_valid_code(client: AsyncClient) -> None:
    create_resp = await client.post("/shorten", json={"original_url": "https://example.com"})
    short_code = create_resp.json()["short_code"]

    response = await client.get("/lookup", params={"short_code": short_code})
    assert response.status_code == 200
    assert response.text == "https://example.com"
    assert response.headers["content-type"].startswith("text/plain")


@pytest.mark.asyncio
async def test_lookup_unknown_code(client: AsyncClient) -> None:
    response = await client.get("/lookup", params={"short_code": "zzzz"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Short URL not found"


@pytest.mark.asyncio
async def test_lookup_requires_short_code(client: AsyncClient) -> None:
    response = await client.get("/lookup")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_lookup_store_failure_is_internal_error(client: AsyncClient) -> None:
    failing = InMemoryRegistry()
    failing.fail_lookup = True
    app.dependency_overrides[get_resolver] = lambda: Resolver(failing)

    response = await client.get("/lookup", params={"short_code": "aB3x"})
    assert response.status_code == 500
