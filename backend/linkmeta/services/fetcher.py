"""Bounded document fetching.

Every outbound request goes through a shared httpx client configured with
the redirect limit; per-request timeouts and a streamed byte cap keep a
slow or huge upstream from holding a request open.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

import httpx
from bs4 import BeautifulSoup

from linkmeta.config import settings
from linkmeta.core.exceptions import UpstreamFetchError
from linkmeta.core.metrics import document_fetch_duration_seconds

logger = logging.getLogger(__name__)

DOCUMENT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

_http_client: httpx.AsyncClient | None = None
_http_loop_id: int | None = None


@dataclass
class FetchedDocument:
    url: str  # final URL after redirects
    status_code: int
    content: bytes
    encoding: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        try:
            return self.content.decode(self.encoding or "utf-8", errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")


def build_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        max_redirects=settings.FETCH_MAX_REDIRECTS,
        http2=True,
        timeout=settings.FETCH_TIMEOUT / 1000,
        headers={"User-Agent": settings.USER_AGENT},
    )


async def get_http_client() -> httpx.AsyncClient:
    """Get or create the reusable httpx client.

    Recreates the client when running in a different event loop (tests and
    the CLI each run their own loop).
    """
    global _http_client, _http_loop_id
    current_loop_id = id(asyncio.get_running_loop())
    if _http_client is None or _http_client.is_closed or _http_loop_id != current_loop_id:
        _http_client = build_http_client()
        _http_loop_id = current_loop_id
    return _http_client


async def close_http_client() -> None:
    global _http_client, _http_loop_id
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
    _http_client = None
    _http_loop_id = None


async def fetch_document(
    url: str,
    client: httpx.AsyncClient,
    timeout_ms: int | None = None,
    max_bytes: int | None = None,
    headers: dict[str, str] | None = None,
) -> FetchedDocument:
    """GET a document under time and size limits.

    Raises UpstreamFetchError for transport errors, timeouts, redirect
    overflow, non-2xx responses and bodies larger than ``max_bytes``.
    """
    timeout = (timeout_ms or settings.FETCH_TIMEOUT) / 1000
    max_bytes = max_bytes or settings.FETCH_MAX_BYTES
    request_headers = {**DOCUMENT_HEADERS, **(headers or {})}

    start = time.perf_counter()
    try:
        async with client.stream("GET", url, headers=request_headers, timeout=timeout) as response:
            if not response.is_success:
                raise UpstreamFetchError(
                    f"HTTP {response.status_code}: {response.reason_phrase}",
                    url=url,
                    upstream_status=response.status_code,
                )

            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > max_bytes:
                raise UpstreamFetchError(
                    f"Response too large ({declared} bytes > {max_bytes})", url=url
                )

            chunks: list[bytes] = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > max_bytes:
                    raise UpstreamFetchError(
                        f"Response exceeded {max_bytes} bytes", url=url
                    )
                chunks.append(chunk)

            return FetchedDocument(
                url=str(response.url),
                status_code=response.status_code,
                content=b"".join(chunks),
                encoding=response.charset_encoding,
                headers={k.lower(): v for k, v in response.headers.items()},
            )
    except httpx.TimeoutException as e:
        raise UpstreamFetchError(f"Timed out after {timeout:g}s fetching {url}", url=url) from e
    except httpx.TooManyRedirects as e:
        raise UpstreamFetchError(
            f"More than {settings.FETCH_MAX_REDIRECTS} redirects fetching {url}", url=url
        ) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise UpstreamFetchError(f"Failed to fetch {url}: {type(e).__name__}: {e}", url=url) from e
    finally:
        document_fetch_duration_seconds.observe(time.perf_counter() - start)
        logger.debug(f"Fetched {url} in {time.perf_counter() - start:.2f}s")


def parse_html(document: FetchedDocument) -> BeautifulSoup:
    """Parse a fetched document, letting bs4 sniff <meta charset> when headers don't say."""
    return BeautifulSoup(document.content, "lxml", from_encoding=document.encoding)
