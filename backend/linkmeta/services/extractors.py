"""Field extractors for link previews.

Each extractor walks a priority chain: an ordered list of strategies over
the parsed document, evaluated left to right until one yields a non-empty
value. Structured social metadata (Open Graph, Twitter Card) outranks
generic HTML, so the selector order below is significant.
"""

import logging
import re
from typing import Callable, Iterable

from bs4 import BeautifulSoup, Tag

from linkmeta.services.urls import make_absolute_url, title_from_url

logger = logging.getLogger(__name__)

Strategy = Callable[[BeautifulSoup | Tag], str | None]

MAX_AUTHORS = 3

# Main-content containers, most specific first
CONTENT_CONTAINER_SELECTORS = [
    "article",
    "main",
    '[role="main"]',
    ".post-content",
    ".entry-content",
    ".article-content",
    ".content",
]

BYLINE_SELECTORS = [
    ".author-name",
    ".byline-author",
    ".article-author",
    ".post-author",
    ".writer-name",
    ".byline .author",
    ".article-byline .author",
]

AUTHOR_META_SELECTORS = [
    'meta[name="author"]',
    'meta[property="article:author"]',
]

_AUTHOR_PREFIX_RE = re.compile(r"^By\s+", re.IGNORECASE)
_AUTHOR_SUFFIX_SPLIT_RE = re.compile(
    r"\s+is\s+|\s+works\s+|\s+writes\s+|\s+-\s+|\s+,\s+", re.IGNORECASE
)
_TRAILING_PUNCT_RE = re.compile(r"[.,;:]+$")


# ---------------------------------------------------------------------------
# Priority chain helpers
# ---------------------------------------------------------------------------


def attr_of(selector: str, attribute: str = "content") -> Strategy:
    """Strategy: an attribute of the first element matching ``selector``."""

    def strategy(soup):
        el = soup.select_one(selector)
        if el is None:
            return None
        value = el.get(attribute)
        return " ".join(value) if isinstance(value, list) else value

    return strategy


def text_of(selector: str) -> Strategy:
    """Strategy: text content of the first element matching ``selector``."""

    def strategy(soup):
        el = soup.select_one(selector)
        return el.get_text() if el is not None else None

    return strategy


def first_value(strategies: Iterable[Strategy], soup: BeautifulSoup | Tag) -> str | None:
    """Run strategies in order; return the first non-empty trimmed value."""
    for strategy in strategies:
        value = strategy(soup)
        if value and value.strip():
            return value.strip()
    return None


# ---------------------------------------------------------------------------
# Title / description / image
# ---------------------------------------------------------------------------

TITLE_STRATEGIES = [
    attr_of('meta[property="og:title"]'),
    attr_of('meta[name="twitter:title"]'),
    attr_of('meta[name="title"]'),
    text_of("title"),
    text_of("h1"),
]

DESCRIPTION_STRATEGIES = [
    attr_of('meta[property="og:description"]'),
    attr_of('meta[name="twitter:description"]'),
    attr_of('meta[name="description"]'),
    # Weak fallback: an author line still describes the page better than nothing
    attr_of('meta[name="author"]'),
    attr_of('meta[property="article:author"]'),
]

IMAGE_STRATEGIES = [
    attr_of('meta[property="og:image"]'),
    attr_of('meta[name="twitter:image"]'),
    attr_of('meta[name="twitter:image:src"]'),
]


def extract_title(soup: BeautifulSoup, url: str) -> str:
    title = first_value(TITLE_STRATEGIES, soup)
    if title:
        return " ".join(title.split())
    return title_from_url(url)


def extract_description(soup: BeautifulSoup) -> str | None:
    return first_value(DESCRIPTION_STRATEGIES, soup)


def extract_image(soup: BeautifulSoup, url: str) -> str | None:
    image = first_value(IMAGE_STRATEGIES, soup)
    return make_absolute_url(image, url) if image else None


# ---------------------------------------------------------------------------
# Authors
# ---------------------------------------------------------------------------


def clean_author_name(raw: str) -> str:
    """Reduce a byline to the bare name.

    "By Jane Doe is a senior writer" -> "Jane Doe"
    """
    cleaned = _AUTHOR_PREFIX_RE.sub("", " ".join(raw.split()))
    name = _AUTHOR_SUFFIX_SPLIT_RE.split(cleaned)[0]
    return _TRAILING_PUNCT_RE.sub("", name).strip()


def is_plausible_name(name: str) -> bool:
    return 2 < len(name) < 50


def _authors_in_container(container: Tag) -> list[str]:
    found: dict[str, None] = {}  # insertion-ordered set
    for selector in BYLINE_SELECTORS:
        for el in container.select(selector):
            raw = el.get_text() or el.get("data-author") or ""
            if not raw.strip():
                continue
            name = clean_author_name(raw)
            if is_plausible_name(name):
                found.setdefault(name, None)
    return list(found)


def extract_authors(soup: BeautifulSoup) -> list[str]:
    """Up to three author names, bylines inside the main content first.

    Meta tags are consulted only when no content container yields a byline,
    since site-wide author metas are often a publisher name or a handle.
    """
    for selector in CONTENT_CONTAINER_SELECTORS:
        container = soup.select_one(selector)
        if container is None:
            continue
        names = _authors_in_container(container)
        if names:
            logger.debug(f"Found {len(names)} byline author(s) in {selector}")
            return names[:MAX_AUTHORS]

    found: dict[str, None] = {}
    for selector in AUTHOR_META_SELECTORS:
        el = soup.select_one(selector)
        if el is None:
            continue
        raw = el.get("content") or ""
        if not raw.strip() or "http" in raw or raw.strip().startswith("@"):
            continue
        name = clean_author_name(raw)
        if is_plausible_name(name):
            found.setdefault(name, None)
    return list(found)[:MAX_AUTHORS]


# ---------------------------------------------------------------------------
# Content type
# ---------------------------------------------------------------------------


def detect_content_type(soup: BeautifulSoup, url: str) -> str:
    """Fine-grained page type: github, docs, article or website."""
    url_lower = url.lower()
    if "github.com" in url_lower:
        return "github"
    if "docs." in url_lower or "/docs" in url_lower or "documentation" in url_lower:
        return "docs"
    if soup.find("article") is not None:
        return "article"
    return "website"
