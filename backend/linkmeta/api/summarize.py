import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from linkmeta.api.deps import get_client
from linkmeta.core.exceptions import ValidationError
from linkmeta.schemas.metadata import SummarizeRequest
from linkmeta.services.streaming import SSE_HEADERS
from linkmeta.services.summarizer import check_services, summary_event_stream
from linkmeta.services.urls import is_valid_url, with_scheme

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/ai-summarize",
    summary="Stream a video summary",
    description="Fetch the transcript of a video and stream an AI-generated summary as "
    'server-sent events: `{"content": ...}` per delta, then `[DONE]`. Failures after '
    'the stream has started arrive as a single `{"error": ...}` event.',
)
async def ai_summarize(
    request: Request,
    payload: SummarizeRequest | None = None,
    client: httpx.AsyncClient = Depends(get_client),
):
    url = payload.url.strip() if payload and payload.url else None
    if not url:
        raise ValidationError("URL is required")
    if not is_valid_url(url):
        raise ValidationError("Invalid URL format")

    return StreamingResponse(
        summary_event_stream(with_scheme(url), client, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get(
    "/health/services",
    summary="Summary relay dependencies",
    description="Report whether the transcript service answers and whether a completion API key is configured.",
)
async def services_health(client: httpx.AsyncClient = Depends(get_client)):
    return await check_services(client)
