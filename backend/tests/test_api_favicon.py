"""Integration tests for /api/favicon/{encodedUrl}."""

from unittest.mock import AsyncMock, patch
from urllib.parse import quote

import pytest
from httpx import AsyncClient


def _path(url: str) -> str:
    return f"/api/favicon/{quote(url, safe='')}"


class TestFaviconEndpoint:
    @pytest.mark.asyncio
    async def test_found(self, client: AsyncClient, upstream):
        upstream.image("https://example.com/favicon.ico", "image/x-icon")

        resp = await client.get(_path("https://example.com"))

        assert resp.status_code == 200
        assert resp.json() == {"faviconUrl": "https://example.com/favicon.ico"}

    @pytest.mark.asyncio
    async def test_not_found_is_cached(self, client: AsyncClient, upstream):
        resp = await client.get(_path("https://nofavicon.example.com"))
        assert resp.status_code == 404
        assert resp.json() == {"error": "Favicon not found"}

        requests_before = len(upstream.requests)
        resp = await client.get(_path("https://nofavicon.example.com"))
        assert resp.status_code == 404
        assert len(upstream.requests) == requests_before

    @pytest.mark.asyncio
    async def test_does_not_fetch_the_document(self, client: AsyncClient, upstream):
        await client.get(_path("https://example.com/page"))
        assert all(r.method == "HEAD" for r in upstream.requests)

    @pytest.mark.asyncio
    async def test_invalid_url(self, client: AsyncClient, upstream):
        resp = await client.get(_path("not a url"))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid URL format"}
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_unexpected_error(self, client: AsyncClient):
        with patch(
            "linkmeta.api.favicon.lookup_favicon",
            new_callable=AsyncMock,
            side_effect=RuntimeError("boom"),
        ):
            resp = await client.get(_path("https://example.com"))

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to fetch favicon"}
