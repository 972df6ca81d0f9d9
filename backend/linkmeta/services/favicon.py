"""Favicon discovery with live validation.

Candidates are tried strictly in priority order: icons the document
declares, then well-known paths on the origin. A candidate counts only if
a HEAD request succeeds with an ``image/*`` content type, so every favicon
this module returns has been seen to exist.
"""

import logging

import httpx
from bs4 import BeautifulSoup

from linkmeta.config import settings
from linkmeta.core.cache import NOT_FOUND, Cache
from linkmeta.core.metrics import cache_lookups_total, favicon_lookups_total
from linkmeta.services.urls import make_absolute_url, normalize_url, origin_of

logger = logging.getLogger(__name__)

FAVICON_SELECTORS = [
    'link[rel="apple-touch-icon"][sizes*="180"]',
    'link[rel="apple-touch-icon"][sizes*="152"]',
    'link[rel="apple-touch-icon"]',
    'link[rel="icon"][sizes*="192"][type="image/png"]',
    'link[rel="icon"][sizes*="96"][type="image/png"]',
    'link[rel="icon"][sizes*="32"][type="image/png"]',
    'link[rel="icon"][type="image/png"]',
    'link[rel="icon"][type="image/svg+xml"]',
    'link[rel="icon"]',
    'link[rel="shortcut icon"]',
]

WELL_KNOWN_FAVICON_PATHS = [
    "/apple-touch-icon-180x180.png",
    "/apple-touch-icon-152x152.png",
    "/apple-touch-icon.png",
    "/android-chrome-192x192.png",
    "/favicon-96x96.png",
    "/favicon-32x32.png",
    "/favicon.png",
    "/favicon.ico",
]


async def validate_favicon(favicon_url: str, client: httpx.AsyncClient) -> bool:
    """HEAD the candidate; valid iff 2xx and an image content type.

    Network errors and timeouts are treated as an invalid candidate.
    """
    try:
        response = await client.head(
            favicon_url,
            timeout=settings.FAVICON_TIMEOUT / 1000,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug(f"Favicon check failed for {favicon_url}: {type(e).__name__}")
        return False
    content_type = response.headers.get("content-type", "").lower()
    return response.is_success and content_type.startswith("image/")


def declared_favicon_candidates(soup: BeautifulSoup, url: str) -> list[str]:
    """Icon URLs the document declares, in priority order, without duplicates."""
    candidates: list[str] = []
    for selector in FAVICON_SELECTORS:
        el = soup.select_one(selector)
        if el is None:
            continue
        href = (el.get("href") or "").strip()
        if not href:
            continue
        absolute = make_absolute_url(href, url)
        if absolute not in candidates:
            candidates.append(absolute)
    return candidates


async def find_best_favicon(
    url: str,
    client: httpx.AsyncClient,
    soup: BeautifulSoup | None = None,
) -> str | None:
    """First validating favicon for ``url``, or None when nothing validates."""
    candidates: list[str] = []
    if soup is not None:
        candidates.extend(declared_favicon_candidates(soup, url))

    origin = origin_of(url)
    for path in WELL_KNOWN_FAVICON_PATHS:
        candidate = origin + path
        if candidate not in candidates:
            candidates.append(candidate)

    for candidate in candidates:
        if await validate_favicon(candidate, client):
            logger.debug(f"Favicon for {url}: {candidate}")
            return candidate
    return None


def favicon_cache_key(url: str) -> str:
    return f"favicon_{normalize_url(url)}"


async def lookup_favicon(url: str, cache: Cache, client: httpx.AsyncClient) -> str | None:
    """Cached favicon resolution.

    A failed resolution is cached as NOT_FOUND for the favicon TTL, so a
    known-absent favicon is answered without probing again.
    """
    key = favicon_cache_key(url)
    cached = await cache.get(key)
    if cached is not None:
        cache_lookups_total.labels(cache="favicon", result="hit").inc()
        return None if cached == NOT_FOUND else cached

    cache_lookups_total.labels(cache="favicon", result="miss").inc()
    favicon_url = await find_best_favicon(url, client)
    await cache.set(key, favicon_url or NOT_FOUND, settings.FAVICON_CACHE_TTL)
    favicon_lookups_total.labels(result="found" if favicon_url else "not_found").inc()
    return favicon_url
