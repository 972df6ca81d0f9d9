import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from linkmeta.api.deps import get_caches, get_metadata_service
from linkmeta.core.cache import Caches
from linkmeta.core.exceptions import ValidationError
from linkmeta.schemas.metadata import (
    ErrorResponse,
    MessageResponse,
    MetadataErrorResponse,
    MetadataRequest,
)
from linkmeta.services.metadata import MetadataService, build_fallback_record
from linkmeta.services.urls import is_valid_url, with_scheme

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/metadata",
    summary="Extract link preview metadata",
    description="Fetch the page behind a URL and return a normalized preview record. "
    "Video-platform watch, short-link and channel URLs are served by a dedicated adapter. "
    "Records are cached per normalized URL; cached responses carry `cached: true`. "
    "On failure the response is HTTP 500 with a URL-derived fallback record.",
    responses={400: {"model": ErrorResponse}, 500: {"model": MetadataErrorResponse}},
)
async def get_metadata(
    payload: MetadataRequest | None = None,
    service: MetadataService = Depends(get_metadata_service),
):
    url = payload.url if payload else None
    if not url:
        raise ValidationError("URL is required")
    if not is_valid_url(url):
        raise ValidationError("Invalid URL format")

    try:
        record = await service.get_metadata(url)
    except Exception as e:
        logger.error(f"Metadata scrape failed for {url}: {type(e).__name__}: {e}", exc_info=True)
        fallback = build_fallback_record(with_scheme(url))
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to scrape metadata", "fallback": fallback.to_json()},
        )
    return record.to_json()


@router.post(
    "/cache/clear",
    response_model=MessageResponse,
    summary="Clear caches",
    description="Drop every cached metadata record and favicon lookup.",
)
async def clear_cache(caches: Caches = Depends(get_caches)):
    await caches.clear()
    logger.info("Metadata and favicon caches cleared")
    return MessageResponse(message="Cache cleared successfully")
