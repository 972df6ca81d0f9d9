"""YouTube adapter: oEmbed for videos, page scraping for channels.

Produces the same MetadataRecord shape as the generic website pipeline.
"""

import logging

import httpx
from bs4 import BeautifulSoup

from linkmeta.config import settings
from linkmeta.core.exceptions import ExtractionFailure
from linkmeta.schemas.metadata import MetadataRecord
from linkmeta.services.extractors import (
    attr_of,
    clean_author_name,
    first_value,
    is_plausible_name,
    text_of,
)
from linkmeta.services.favicon import validate_favicon
from linkmeta.services.fetcher import fetch_document, parse_html
from linkmeta.services.urls import (
    extract_video_id,
    is_channel_url,
    is_short_video_url,
    make_absolute_url,
)

logger = logging.getLogger(__name__)

YOUTUBE_OEMBED = "https://www.youtube.com/oembed"
YOUTUBE_DOMAIN = "youtube.com"
YOUTUBE_FAVICON = "https://www.youtube.com/s/desktop/12d6b690/img/favicon_144x144.png"

CHANNEL_NAME_STRATEGIES = [
    attr_of('meta[property="og:title"]'),
    attr_of('meta[name="title"]'),
    text_of(".ytd-channel-name"),
    text_of("#channel-name"),
]

CHANNEL_AVATAR_STRATEGIES = [
    attr_of('meta[property="og:image"]'),
    attr_of('link[rel="image_src"]', "href"),
]


def thumbnail_url(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


async def _platform_favicon(client: httpx.AsyncClient) -> str | None:
    return YOUTUBE_FAVICON if await validate_favicon(YOUTUBE_FAVICON, client) else None


def extract_channel_name(soup: BeautifulSoup) -> str | None:
    return first_value(CHANNEL_NAME_STRATEGIES, soup)


def extract_channel_avatar(soup: BeautifulSoup, url: str) -> str | None:
    avatar = first_value(CHANNEL_AVATAR_STRATEGIES, soup)
    return make_absolute_url(avatar, url) if avatar else None


async def scrape_channel_metadata(url: str, client: httpx.AsyncClient) -> MetadataRecord:
    """Channel name and square avatar from the channel page. Fetch errors propagate."""
    document = await fetch_document(url, client)
    soup = parse_html(document)

    return MetadataRecord(
        title=extract_channel_name(soup) or "YouTube Channel",
        domain=YOUTUBE_DOMAIN,
        image=extract_channel_avatar(soup, url),
        image_aspect_ratio=1,  # channel avatars are square
        type="youtube-channel",
        content_type="channel",
        favicon=await _platform_favicon(client),
        description="YouTube Channel",
    )


async def _fetch_oembed(url: str, client: httpx.AsyncClient) -> dict | None:
    """oEmbed payload, or None on any non-2xx / transport / decode failure."""
    try:
        response = await client.get(
            YOUTUBE_OEMBED,
            params={"format": "json", "url": url},
            timeout=settings.FETCH_TIMEOUT / 1000,
        )
    except httpx.HTTPError as e:
        logger.warning(f"YouTube oEmbed request failed for {url}: {type(e).__name__}: {e}")
        return None
    if not response.is_success:
        logger.info(f"YouTube oEmbed returned HTTP {response.status_code} for {url}")
        return None
    try:
        data = response.json()
    except ValueError:
        logger.warning(f"YouTube oEmbed returned invalid JSON for {url}")
        return None
    return data if isinstance(data, dict) else None


async def scrape_video_metadata(url: str, client: httpx.AsyncClient) -> MetadataRecord:
    """Video record from oEmbed, degrading to a synthetic record when oEmbed fails.

    Raises ExtractionFailure only when no video ID can be found in the URL.
    """
    video_id = extract_video_id(url)
    if not video_id:
        raise ExtractionFailure(f"Could not extract video ID from {url}")

    is_short = is_short_video_url(url)
    record_type = "youtube-short" if is_short else "youtube"
    aspect_ratio = 9 / 16 if is_short else 16 / 9
    favicon = await _platform_favicon(client)

    data = await _fetch_oembed(url, client)
    if data is None:
        return MetadataRecord(
            title=f"YouTube Video: {video_id}",
            domain=YOUTUBE_DOMAIN,
            image=thumbnail_url(video_id),
            image_aspect_ratio=aspect_ratio,
            type=record_type,
            content_type="video",
            favicon=favicon,
        )

    author_name = (data.get("author_name") or "").strip()
    author = clean_author_name(author_name)
    return MetadataRecord(
        title=(data.get("title") or "").strip() or f"YouTube Video: {video_id}",
        domain=YOUTUBE_DOMAIN,
        image=data.get("thumbnail_url") or thumbnail_url(video_id),
        image_aspect_ratio=aspect_ratio,
        type=record_type,
        author=[author if is_plausible_name(author) else "YouTube"],
        content_type="video",
        favicon=favicon,
        description=f"Video by {author_name or 'Unknown'}",
    )


async def scrape_youtube_metadata(url: str, client: httpx.AsyncClient) -> MetadataRecord:
    if is_channel_url(url):
        logger.info(f"Routing {url} to the channel scraper")
        return await scrape_channel_metadata(url, client)
    logger.info(f"Routing {url} to the video scraper")
    return await scrape_video_metadata(url, client)
