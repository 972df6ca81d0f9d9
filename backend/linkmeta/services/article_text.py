"""Body excerpt extraction.

Picks the longest text among all main-content candidates after removing
subtrees that leak metadata into the body (bylines, dates, image captions
and credits), then strips dates and caption-like lines from the result.
"""

import copy
import logging
import re

from bs4 import BeautifulSoup, Tag

from linkmeta.services.extractors import CONTENT_CONTAINER_SELECTORS

logger = logging.getLogger(__name__)

MAX_EXCERPT_LENGTH = 924

# Removed from each candidate before text extraction
NON_CONTENT_SELECTORS = [
    # Bylines and post meta
    ".author",
    ".byline",
    ".post-author",
    ".writer",
    ".article-meta",
    ".post-meta",
    ".entry-meta",
    # Dates and timestamps
    ".date",
    ".published",
    ".timestamp",
    ".publish-date",
    ".post-date",
    ".article-date",
    ".time",
    ".datetime",
    "[datetime]",
    "time",
    ".updated",
    ".modified",
    # Image captions and credits
    "figcaption",
    ".caption",
    ".image-caption",
    ".photo-caption",
    ".img-caption",
    ".figure-caption",
    ".media-caption",
    ".wp-caption-text",
    "[data-caption]",
    ".getty-caption",
    ".image-credit",
    ".photo-credit",
]

SKIP_TAGS = {"nav", "footer", "header", "aside", "script", "style"}
SKIP_CLASS_SIGNALS = [
    "nav",
    "navigation",
    "sidebar",
    "footer",
    "header",
    "menu",
    "ads",
    "advertisement",
]

MIN_PARAGRAPH_LENGTH = 20
MIN_BLOCK_LENGTH = 50
MIN_ASSEMBLED_LENGTH = 100

_DATE_PATTERNS = [
    re.compile(r"\|\s*\d{1,2}\.\d{1,2}\.\d{4}"),
    re.compile(r"\d{1,2}\.\d{1,2}\.\d{4}"),
    re.compile(r"\d{1,2}/\d{1,2}/\d{4}"),
]
_SPACE_BEFORE_NEWLINE_RE = re.compile(r"[^\S\n]+\n")
_SPACE_AFTER_NEWLINE_RE = re.compile(r"\n[^\S\n]+")
_HORIZONTAL_SPACE_RE = re.compile(r"[^\S\n]+")
_BLANK_LINE_RUN_RE = re.compile(r"\n{3,}")
_NAME_LINE_RE = re.compile(r"\n[A-Z][a-z]+ [A-Z][a-z]+\n")
_SHORT_LINE_BEFORE_BLANK_RE = re.compile(r"\n.{1,30}\n(?=\n)")


def _signals_of(el: Tag) -> str:
    classes = el.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    return f"{' '.join(classes)} {el.get('id') or ''}".lower()


def should_skip_element(el: Tag) -> bool:
    """True when the element or an ancestor below <body> looks like chrome or ads."""
    node = el
    while isinstance(node, Tag) and node.name not in ("body", "html", "[document]"):
        if node.name in SKIP_TAGS:
            return True
        signals = _signals_of(node)
        if any(signal in signals for signal in SKIP_CLASS_SIGNALS):
            return True
        node = node.parent
    return False


def _strip_non_content(el: Tag) -> Tag:
    """Deep copy of ``el`` with byline, date and caption subtrees removed."""
    clone = copy.copy(el)
    for selector in NON_CONTENT_SELECTORS:
        for node in clone.select(selector):
            node.extract()
    return clone


def extract_text_from_element(el: Tag) -> str:
    """Paragraph text, falling back to block text, then all text."""
    text = ""
    for p in el.select("p"):
        p_text = p.get_text().strip()
        if len(p_text) > MIN_PARAGRAPH_LENGTH:
            text += p_text + "\n\n"

    if len(text) < MIN_ASSEMBLED_LENGTH:
        for block in el.select("div, section, article"):
            block_text = block.get_text().strip()
            if len(block_text) > MIN_BLOCK_LENGTH:
                text += block_text + "\n\n"

    if len(text) < MIN_ASSEMBLED_LENGTH:
        text = el.get_text()

    return text.strip()


def clean_article_text(text: str) -> str:
    for pattern in _DATE_PATTERNS:
        text = pattern.sub("", text)

    text = text.replace("\r\n", "\n")
    text = _SPACE_BEFORE_NEWLINE_RE.sub("\n", text)
    text = _SPACE_AFTER_NEWLINE_RE.sub("\n", text)
    text = _HORIZONTAL_SPACE_RE.sub(" ", text)
    text = _BLANK_LINE_RUN_RE.sub("\n\n", text)

    # Standalone captions: bare "Firstname Lastname" lines, short lines before a blank line
    text = _NAME_LINE_RE.sub("\n", text)
    text = _SHORT_LINE_BEFORE_BLANK_RE.sub("\n", text)
    text = _BLANK_LINE_RUN_RE.sub("\n\n", text)
    return text.strip()


def extract_article_text(soup: BeautifulSoup) -> str:
    """Best body excerpt, at most 924 characters; empty string when none."""
    best = ""
    for selector in CONTENT_CONTAINER_SELECTORS:
        for el in soup.select(selector):
            if should_skip_element(el):
                continue
            text = clean_article_text(extract_text_from_element(_strip_non_content(el)))
            if len(text) > len(best):
                best = text

    return best[:MAX_EXCERPT_LENGTH].strip()
