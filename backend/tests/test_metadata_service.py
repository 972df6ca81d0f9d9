"""Tests for metadata assembly, the excerpt policy and record caching."""

from unittest.mock import patch

import pytest

from linkmeta.core.exceptions import UpstreamFetchError
from linkmeta.services.metadata import (
    ARTICLE_EXCERPT_THRESHOLD,
    MetadataService,
    build_fallback_record,
    scrape_website_metadata,
)

LONG_PARAGRAPH = (
    "Researchers announced on Tuesday that the new battery design retains most of its capacity "
    "after thousands of charge cycles, a result that could make grid storage considerably cheaper. "
    "The team plans to publish the full data set later this year."
)

ARTICLE_PAGE = f"""
<html><head>
  <title>Battery breakthrough | Example News</title>
  <meta property="og:title" content="Battery breakthrough">
  <meta property="og:description" content="A longer-lasting battery.">
  <meta property="og:image" content="/img/battery.jpg">
  <link rel="icon" type="image/png" href="/icon.png">
</head><body>
  <header><div class="site-logo"><img src="/static/logo.png" width="160" height="40"></div></header>
  <article>
    <span class="author-name">By Jane Doe</span>
    <p>{LONG_PARAGRAPH}</p>
  </article>
</body></html>
"""

SHORT_PAGE = """
<html><head><title>Home</title></head><body>
  <header><div class="site-logo"><img src="/static/logo.png"></div></header>
  <main><p>Welcome to our small home page.</p></main>
</body></html>
"""


class TestScrapeWebsiteMetadata:
    @pytest.mark.asyncio
    async def test_article_record(self, upstream, http_client):
        upstream.html("https://news.example.com/battery", ARTICLE_PAGE)
        upstream.image("https://news.example.com/icon.png")

        record = await scrape_website_metadata("https://news.example.com/battery", http_client)

        assert record.title == "Battery breakthrough"
        assert record.domain == "news.example.com"
        assert record.description == "A longer-lasting battery."
        assert record.image == "https://news.example.com/img/battery.jpg"
        assert record.author == ["Jane Doe"]
        assert record.type == "article"
        assert record.content_type == "article"
        assert record.excerpt == LONG_PARAGRAPH
        assert record.favicon == "https://news.example.com/icon.png"
        assert record.logo == "https://news.example.com/static/logo.png"
        assert record.cached is None

    @pytest.mark.asyncio
    async def test_short_page_stays_website_without_logo(self, upstream, http_client):
        upstream.html("https://example.com/", SHORT_PAGE)

        record = await scrape_website_metadata("https://example.com/", http_client)

        assert record.content_type == "website"
        assert record.logo is None
        assert "logo" not in record.to_json()
        assert record.favicon is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "length,expected",
        [(ARTICLE_EXCERPT_THRESHOLD, "website"), (ARTICLE_EXCERPT_THRESHOLD + 1, "article")],
    )
    async def test_article_promotion_threshold(self, upstream, http_client, length, expected):
        upstream.html("https://example.com/", SHORT_PAGE)

        with patch("linkmeta.services.metadata.extract_article_text", return_value="x" * length):
            record = await scrape_website_metadata("https://example.com/", http_client)

        assert record.content_type == expected

    @pytest.mark.asyncio
    async def test_fetch_error_propagates(self, upstream, http_client):
        upstream.html("https://example.com/", "down", status_code=503)

        with pytest.raises(UpstreamFetchError):
            await scrape_website_metadata("https://example.com/", http_client)


class TestBuildFallbackRecord:
    def test_from_path(self):
        record = build_fallback_record("https://example.com/blog/my-post")
        assert record.title == "My Post"
        assert record.domain == "example.com"
        assert record.image is None
        assert record.image_aspect_ratio == 1
        assert record.favicon == "https://example.com/favicon.ico"
        assert record.content_type == "website"

    def test_from_root(self):
        assert build_fallback_record("https://www.example.com/").title == "Example"


class TestMetadataService:
    @pytest.mark.asyncio
    async def test_second_request_is_cached(self, upstream, http_client, caches):
        upstream.html("https://example.com/", SHORT_PAGE)
        service = MetadataService(caches, http_client)

        first = await service.get_metadata("https://example.com/")
        second = await service.get_metadata("https://example.com/")

        assert first.cached is None
        assert second.cached is True
        assert second.title == first.title
        assert upstream.calls("GET", "https://example.com/") == 1

    @pytest.mark.asyncio
    async def test_cache_key_is_normalized(self, upstream, http_client, caches):
        upstream.html("https://example.com/Page", SHORT_PAGE)
        service = MetadataService(caches, http_client)

        await service.get_metadata("https://Example.com/Page")
        record = await service.get_metadata("example.com/page")

        assert record.cached is True
        assert len([r for r in upstream.requests if r.method == "GET"]) == 1

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, upstream, http_client, caches):
        upstream.html("https://example.com/", "down", status_code=503)
        service = MetadataService(caches, http_client)

        with pytest.raises(UpstreamFetchError):
            await service.get_metadata("https://example.com/")
        assert await caches.metadata.size() == 0

    @pytest.mark.asyncio
    async def test_scheme_is_inferred(self, upstream, http_client, caches):
        upstream.html("https://example.com/", SHORT_PAGE)

        record = await MetadataService(caches, http_client).get_metadata("example.com")
        assert record.title == "Home"

    @pytest.mark.asyncio
    async def test_video_urls_use_the_video_adapter(self, upstream, http_client, caches):
        record = await MetadataService(caches, http_client).get_metadata("youtu.be/abc123")

        assert record.domain == "youtube.com"
        assert record.content_type == "video"
        assert not any(r.url.host == "youtu.be" for r in upstream.requests)
