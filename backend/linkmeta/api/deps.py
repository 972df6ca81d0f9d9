import logging

import httpx
from fastapi import Depends, Request, Response

from linkmeta.config import settings
from linkmeta.core.cache import Caches
from linkmeta.core.exceptions import RateLimitError
from linkmeta.services.fetcher import get_http_client
from linkmeta.services.metadata import MetadataService

logger = logging.getLogger(__name__)


def get_caches(request: Request) -> Caches:
    return request.app.state.caches


async def get_client() -> httpx.AsyncClient:
    return await get_http_client()


def get_metadata_service(
    caches: Caches = Depends(get_caches),
    client: httpx.AsyncClient = Depends(get_client),
) -> MetadataService:
    return MetadataService(caches, client)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def rate_limit(request: Request, response: Response) -> None:
    """Per-IP sliding window over every /api route."""
    if not settings.RATE_LIMIT_ENABLED:
        return

    rl = request.app.state.rate_limiter.check(_client_ip(request))
    headers = {
        "X-RateLimit-Limit": str(rl.limit),
        "X-RateLimit-Remaining": str(rl.remaining),
        "X-RateLimit-Reset": str(rl.reset),
    }
    if not rl.allowed:
        logger.warning(f"Rate limit exceeded for {_client_ip(request)} on {request.url.path}")
        raise RateLimitError("Too many requests from this IP", headers=headers)
    response.headers.update(headers)
