import logging
from urllib.parse import unquote

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from linkmeta.api.deps import get_caches, get_client
from linkmeta.core.cache import Caches
from linkmeta.core.exceptions import ValidationError
from linkmeta.schemas.metadata import ErrorResponse, FaviconResponse
from linkmeta.services.favicon import lookup_favicon
from linkmeta.services.urls import is_valid_url, with_scheme

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/favicon/{encoded_url:path}",
    response_model=FaviconResponse,
    summary="Resolve a favicon",
    description="Resolve the best reachable favicon for a percent-encoded URL. "
    "Both hits and misses are cached for 24 hours; a cached miss answers 404 "
    "without probing the site again.",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_favicon(
    encoded_url: str,
    caches: Caches = Depends(get_caches),
    client: httpx.AsyncClient = Depends(get_client),
):
    url = unquote(encoded_url)
    if not is_valid_url(url):
        raise ValidationError("Invalid URL format")

    try:
        favicon_url = await lookup_favicon(with_scheme(url), caches.favicon, client)
    except Exception as e:
        logger.error(f"Favicon lookup failed for {url}: {type(e).__name__}: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch favicon"})

    if favicon_url is None:
        return JSONResponse(status_code=404, content={"error": "Favicon not found"})
    return FaviconResponse(faviconUrl=favicon_url)
