"""Metadata assembly: routing, extraction, cross-field policy and caching."""

import logging

import httpx

from linkmeta.config import settings
from linkmeta.core.cache import Caches
from linkmeta.core.metrics import cache_lookups_total, metadata_requests_total
from linkmeta.schemas.metadata import MetadataRecord
from linkmeta.services.article_text import extract_article_text
from linkmeta.services.extractors import (
    detect_content_type,
    extract_authors,
    extract_description,
    extract_image,
    extract_title,
)
from linkmeta.services.favicon import find_best_favicon
from linkmeta.services.fetcher import fetch_document, parse_html
from linkmeta.services.logo import extract_main_logo
from linkmeta.services.urls import (
    domain_of,
    is_channel_url,
    is_video_url,
    normalize_url,
    origin_of,
    title_from_url,
    with_scheme,
)
from linkmeta.services.youtube import scrape_youtube_metadata

logger = logging.getLogger(__name__)

# Excerpts longer than this turn a page into an article card
ARTICLE_EXCERPT_THRESHOLD = 200


async def scrape_website_metadata(url: str, client: httpx.AsyncClient) -> MetadataRecord:
    """Generic pipeline: fetch, parse, run every extractor, apply policy.

    UpstreamFetchError from the fetch propagates to the caller.
    """
    document = await fetch_document(url, client)
    soup = parse_html(document)

    excerpt = extract_article_text(soup)
    content_type = "website"
    if len(excerpt) > ARTICLE_EXCERPT_THRESHOLD:
        content_type = "article"

    return MetadataRecord(
        title=extract_title(soup, url),
        domain=domain_of(url),
        image=extract_image(soup, url),
        image_aspect_ratio=16 / 9,
        description=extract_description(soup),
        excerpt=excerpt or None,
        author=extract_authors(soup),
        type=detect_content_type(soup, url),
        content_type=content_type,
        favicon=await find_best_favicon(url, client, soup),
        logo=extract_main_logo(soup, url) if content_type == "article" else None,
    )


def build_fallback_record(url: str) -> MetadataRecord:
    """Last-resort record derived from the URL alone.

    ``favicon`` is the origin's /favicon.ico and is NOT validated: this is
    the only record whose favicon may not exist.
    """
    return MetadataRecord(
        title=title_from_url(url) or url or "Untitled",
        domain=domain_of(url),
        image=None,
        image_aspect_ratio=1,
        type="website",
        content_type="website",
        favicon=f"{origin_of(url)}/favicon.ico",
    )


def _pipeline_for(url: str) -> str:
    if not is_video_url(url):
        return "website"
    return "channel" if is_channel_url(url) else "video"


class MetadataService:
    """Cache-aware entry point used by the API and the CLI."""

    def __init__(self, caches: Caches, client: httpx.AsyncClient):
        self.caches = caches
        self.client = client

    async def get_metadata(self, url: str) -> MetadataRecord:
        key = normalize_url(url)
        cached = await self.caches.metadata.get(key)
        if cached is not None:
            cache_lookups_total.labels(cache="metadata", result="hit").inc()
            logger.info(f"Metadata cache hit for {key}")
            return MetadataRecord.model_validate(cached).model_copy(update={"cached": True})
        cache_lookups_total.labels(cache="metadata", result="miss").inc()

        record = await self.scrape(url)
        await self.caches.metadata.set(key, record.to_json(), settings.METADATA_CACHE_TTL)
        return record

    async def scrape(self, url: str) -> MetadataRecord:
        """Route to the video adapter or the generic pipeline. Errors propagate."""
        target = with_scheme(url)
        pipeline = _pipeline_for(target)
        try:
            if pipeline == "website":
                record = await scrape_website_metadata(target, self.client)
            else:
                record = await scrape_youtube_metadata(target, self.client)
        except Exception:
            metadata_requests_total.labels(pipeline=pipeline, status="error").inc()
            raise
        metadata_requests_total.labels(pipeline=pipeline, status="success").inc()
        return record
