"""Publisher logo extraction for article previews.

Candidates come from progressively looser selectors; each one must look
like a logo URL, have a plausible size and not be an advertisement.
"""

import logging
import re

from bs4 import BeautifulSoup, Tag

from linkmeta.services.urls import make_absolute_url

logger = logging.getLogger(__name__)

LOGO_SELECTORS = [
    # Site / brand / header logo classes
    ".site-logo img",
    "img.site-logo",
    ".brand-logo img",
    "img.brand-logo",
    ".header-logo img",
    "img.header-logo",
    ".navbar-brand img",
    ".custom-logo",
    # Header images that call themselves a logo
    'header img[alt*="logo" i]',
    'header img[class*="logo" i]',
    'header img[src*="logo" i]',
    # Generic logo containers
    ".logo img",
    "#logo img",
    "img.logo",
    # Brand marks
    'img[alt*="brand" i]',
    'img[class*="brand" i]',
]

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico", ".avif")
TRACKING_PIXEL_SIGNALS = ["pixel", "1x1", "spacer", "blank.gif", "tracking", "beacon", "transparent.gif"]
AD_NETWORK_SIGNALS = [
    "doubleclick.net",
    "googlesyndication.com",
    "googleadservices.com",
    "adservice.google",
    "amazon-adsystem.com",
    "adnxs.com",
    "taboola.com",
    "outbrain.com",
    "criteo.com",
    "adsrvr.org",
    "/ads/",
    "/adserver/",
]

MIN_LOGO_SIDE = 20
MAX_LOGO_WIDTH = 800
MAX_LOGO_HEIGHT = 400
MAX_ASPECT_RATIO = 10

_AD_TOKEN_RE = re.compile(r"^(ad|ads|advert\w*|sponsor\w*)$")
_TOKEN_SPLIT_RE = re.compile(r"[\s_-]+")


def _dimension(value) -> int | None:
    if value is None:
        return None
    match = re.match(r"\s*(\d+)", str(value))
    return int(match.group(1)) if match else None


def is_plausible_logo_url(src: str) -> bool:
    src_lower = src.lower()
    if src_lower.startswith("data:"):
        return False
    if any(signal in src_lower for signal in TRACKING_PIXEL_SIGNALS):
        return False
    path = src_lower.split("?", 1)[0].split("#", 1)[0]
    return path.endswith(IMAGE_EXTENSIONS) or "logo" in src_lower


def is_plausible_logo_size(img: Tag) -> bool:
    """Only judges declared width/height attributes; missing ones pass."""
    width = _dimension(img.get("width"))
    height = _dimension(img.get("height"))

    if width is not None and width < MIN_LOGO_SIDE:
        return False
    if height is not None and height < MIN_LOGO_SIDE:
        return False
    if width is not None and width > MAX_LOGO_WIDTH:
        return False
    if height is not None and height > MAX_LOGO_HEIGHT:
        return False
    if width and height:
        ratio = width / height
        if ratio > MAX_ASPECT_RATIO or ratio < 1 / MAX_ASPECT_RATIO:
            return False
    return True


def is_advertisement(img: Tag, src: str) -> bool:
    src_lower = src.lower()
    if any(signal in src_lower for signal in AD_NETWORK_SIGNALS):
        return True
    classes = img.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    tokens = _TOKEN_SPLIT_RE.split(f"{' '.join(classes)} {img.get('id') or ''}".lower())
    return any(_AD_TOKEN_RE.match(token) for token in tokens if token)


def extract_main_logo(soup: BeautifulSoup, url: str) -> str | None:
    for selector in LOGO_SELECTORS:
        for img in soup.select(selector):
            src = (img.get("src") or img.get("data-src") or "").strip()
            if not src:
                continue
            if not is_plausible_logo_url(src):
                continue
            if not is_plausible_logo_size(img):
                continue
            if is_advertisement(img, src):
                logger.debug(f"Rejected ad-like logo candidate {src}")
                continue
            return make_absolute_url(src, url)
    return None
