"""URL validation, classification and normalization.

Every helper accepts URLs with or without a scheme (``example.com/page``
is treated as ``https://example.com/page``) and fails closed: a string that
does not parse to an http(s) URL with a well-formed host is invalid.
"""

import ipaddress
import re
from urllib.parse import SplitResult, unquote, urljoin, urlsplit

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_HOST_LABEL_RE = re.compile(r"^(?!-)[\w-]{1,63}(?<!-)$")
_DEFAULT_PORTS = {"http": 80, "https": 443}

# Video-platform path shapes, matched case-insensitively anywhere in the URL
CHANNEL_URL_PATTERNS = [
    re.compile(r"youtube\.com/channel/", re.IGNORECASE),
    re.compile(r"youtube\.com/c/", re.IGNORECASE),
    re.compile(r"youtube\.com/user/", re.IGNORECASE),
    re.compile(r"youtube\.com/@", re.IGNORECASE),
]
VIDEO_URL_PATTERNS = [
    re.compile(r"youtube\.com/watch", re.IGNORECASE),
    re.compile(r"youtu\.be/", re.IGNORECASE),
    re.compile(r"youtube\.com/shorts/", re.IGNORECASE),
    *CHANNEL_URL_PATTERNS,
]

# Ordered: the first pattern that captures an ID wins
VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/shorts/)([^&\n?#/]+)"),
    re.compile(r"youtube\.com/embed/([^&\n?#/]+)"),
    re.compile(r"youtube\.com/v/([^&\n?#/]+)"),
]


def with_scheme(url: str) -> str:
    """Prepend https:// when the string has no scheme."""
    url = url.strip()
    if _SCHEME_RE.match(url):
        return url
    return f"https://{url}"


def _is_valid_host(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    labels = host[:-1].split(".") if host.endswith(".") else host.split(".")
    return all(_HOST_LABEL_RE.match(label) for label in labels)


def _parse(url: str) -> SplitResult:
    """Parse with scheme inference. Raises ValueError for anything unusable."""
    if not isinstance(url, str) or not url.strip():
        raise ValueError("empty URL")
    parts = urlsplit(with_scheme(url))
    if parts.scheme.lower() not in _DEFAULT_PORTS:
        raise ValueError(f"unsupported scheme: {parts.scheme}")
    host = parts.hostname
    if not host or not _is_valid_host(host):
        raise ValueError(f"invalid host in {url!r}")
    parts.port  # raises ValueError for a malformed port
    return parts


def _netloc(parts: SplitResult) -> str:
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port and port != _DEFAULT_PORTS.get(parts.scheme.lower()):
        host = f"{host}:{port}"
    userinfo, sep, _ = parts.netloc.rpartition("@")
    return f"{userinfo}@{host}" if sep else host


def is_valid_url(url: str) -> bool:
    try:
        _parse(url)
        return True
    except ValueError:
        return False


def is_video_url(url: str) -> bool:
    """True for video-platform watch, short-link, shorts and channel URLs."""
    return any(p.search(url) for p in VIDEO_URL_PATTERNS)


def is_channel_url(url: str) -> bool:
    return any(p.search(url) for p in CHANNEL_URL_PATTERNS)


def is_short_video_url(url: str) -> bool:
    return "/shorts/" in url.lower()


def extract_video_id(url: str) -> str | None:
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


def normalize_url(url: str) -> str:
    """Lower-cased canonical href used as the cache key.

    Query parameter order, trailing slashes and fragments are kept as
    parsed, so reordered query strings produce distinct keys.
    """
    try:
        parts = _parse(url)
    except ValueError:
        return url.lower()
    href = f"{parts.scheme}://{_netloc(parts)}{parts.path or '/'}"
    if parts.query:
        href += f"?{parts.query}"
    if parts.fragment:
        href += f"#{parts.fragment}"
    return href.lower()


def domain_of(url: str) -> str:
    """Hostname without ``www.``; a truncated copy of the input if unparseable."""
    try:
        host = _parse(url).hostname or ""
    except ValueError:
        return url[:22] + "..." if len(url) > 25 else url
    return re.sub(r"^www\.", "", host)


def origin_of(url: str) -> str:
    try:
        parts = _parse(url)
    except ValueError:
        return url
    return f"{parts.scheme.lower()}://{_netloc(parts)}"


def make_absolute_url(ref: str, base_url: str) -> str:
    try:
        return urljoin(with_scheme(base_url), ref.strip())
    except ValueError:
        return ref


def _title_case(text: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group().upper(), text)


def format_domain_as_title(domain: str) -> str:
    label = re.sub(r"^www\.", "", domain).split(".")[0]
    return _title_case(re.sub(r"[-_]", " ", label))


def title_from_url(url: str) -> str:
    """Human-readable title from the last path segment, or the domain for root paths."""
    try:
        parts = _parse(url)
    except ValueError:
        return domain_of(url)

    domain = re.sub(r"^www\.", "", parts.hostname or "")
    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        return format_domain_as_title(domain)

    last = unquote(segments[-1])
    last = re.sub(r"\.[^.]+$", "", last)
    cleaned = _title_case(re.sub(r"[-_]", " ", last)).strip()
    return cleaned or format_domain_as_title(domain)
