"""Transcript summary relay.

Fetches a video transcript from the transcript service, prompts a chat
completion model through LiteLLM with streaming enabled, and re-frames the
deltas as server-sent events for the caller.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable

import httpx

from linkmeta.config import settings
from linkmeta.core.exceptions import RelayError
from linkmeta.core.metrics import summary_streams_total
from linkmeta.services.streaming import sse_done, sse_event

logger = logging.getLogger(__name__)

SERVICE_CHECK_TIMEOUT = 5  # seconds

SYSTEM_PROMPT = (
    "You summarize YouTube videos from their transcripts. "
    "Write a short overview paragraph followed by the key points as a bulleted list. "
    "Only use information present in the transcript. "
    "Use Markdown and answer in the language of the transcript."
)


@dataclass
class Transcript:
    text: str
    video_title: str | None = None
    video_id: str | None = None
    total_duration: float | None = None


def _format_duration(seconds: float | None) -> str | None:
    if not seconds:
        return None
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


async def fetch_transcript(url: str, client: httpx.AsyncClient) -> Transcript:
    """Ask the transcript service for a plain-text transcript of ``url``."""
    endpoint = f"{settings.TRANSCRIPT_SERVICE_URL.rstrip('/')}/transcript"
    try:
        response = await client.post(
            endpoint,
            json={"url": url, "include_timestamps": False, "grouping_strategy": "smart"},
            timeout=settings.TRANSCRIPT_TIMEOUT,
        )
    except httpx.HTTPError as e:
        logger.warning(f"Transcript service request failed for {url}: {type(e).__name__}: {e}")
        raise RelayError(f"Transcript service unavailable: {type(e).__name__}")

    if not response.is_success:
        logger.warning(f"Transcript service returned HTTP {response.status_code} for {url}")
        raise RelayError(f"Transcript service returned HTTP {response.status_code}")

    try:
        data = response.json()
    except ValueError:
        raise RelayError("Transcript service returned invalid JSON")

    text = (data.get("text") or "").strip() if isinstance(data, dict) else ""
    if not text:
        raise RelayError("No transcript available for this video")

    return Transcript(
        text=text,
        video_title=data.get("video_title"),
        video_id=data.get("video_id"),
        total_duration=data.get("total_duration"),
    )


def build_summary_messages(transcript: Transcript) -> list[dict[str, str]]:
    text = transcript.text
    if len(text) > settings.SUMMARY_MAX_TRANSCRIPT_CHARS:
        text = text[: settings.SUMMARY_MAX_TRANSCRIPT_CHARS] + "\n[transcript truncated]"

    user_prompt = ""
    if transcript.video_title:
        user_prompt += f"Title: {transcript.video_title}\n"
    duration = _format_duration(transcript.total_duration)
    if duration:
        user_prompt += f"Duration: {duration}\n"
    if user_prompt:
        user_prompt += "\n"
    user_prompt += f"Transcript:\n\n{text}"

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


async def _close_stream(stream) -> None:
    close = getattr(stream, "aclose", None)
    if close is None:
        return
    try:
        await close()
    except Exception as e:
        logger.debug(f"Closing completion stream failed: {e}")


async def stream_summary(messages: list[dict[str, str]]) -> AsyncIterator[str]:
    """Yield non-empty content deltas from a streaming chat completion."""
    if not settings.LLM_API_KEY:
        raise RelayError("Completion API key is not configured")

    import litellm

    try:
        stream = await litellm.acompletion(
            model=settings.LLM_MODEL,
            messages=messages,
            api_key=settings.LLM_API_KEY,
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
            timeout=settings.TRANSCRIPT_TIMEOUT,
            stream=True,
        )
    except Exception as e:
        logger.error(
            f"Completion request failed (model={settings.LLM_MODEL}): {type(e).__name__}: {e}",
            exc_info=True,
        )
        raise RelayError(f"Completion request failed: {type(e).__name__}")

    try:
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta
    except Exception as e:
        logger.error(
            f"Completion stream failed (model={settings.LLM_MODEL}): {type(e).__name__}: {e}",
            exc_info=True,
        )
        raise RelayError(f"Completion stream failed: {type(e).__name__}")
    finally:
        await _close_stream(stream)


async def summary_event_stream(
    url: str,
    client: httpx.AsyncClient,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncIterator[str]:
    """SSE frames for a transcript summary.

    One ``{"content": ...}`` event per delta, then ``[DONE]``. Any failure
    ends the stream with a single ``{"error": ...}`` event. Stops quietly
    when ``is_disconnected`` reports the caller has gone.
    """
    status = "completed"
    try:
        transcript = await fetch_transcript(url, client)
        logger.info(
            f"Summarizing transcript for {url} ({len(transcript.text)} chars, model={settings.LLM_MODEL})"
        )
        deltas = stream_summary(build_summary_messages(transcript))
        try:
            async for delta in deltas:
                if is_disconnected is not None and await is_disconnected():
                    status = "disconnected"
                    logger.info(f"Client disconnected during summary of {url}")
                    return
                yield sse_event({"content": delta})
        finally:
            await deltas.aclose()
        yield sse_done()
    except (asyncio.CancelledError, GeneratorExit):
        status = "disconnected"
        raise
    except RelayError as e:
        status = "error"
        yield sse_event({"error": e.message})
    except Exception as e:
        status = "error"
        logger.error(f"Summary stream failed for {url}: {type(e).__name__}: {e}", exc_info=True)
        yield sse_event({"error": "Failed to generate summary"})
    finally:
        summary_streams_total.labels(status=status).inc()


async def check_services(client: httpx.AsyncClient) -> dict:
    """Liveness of the transcript service and whether a completion key is set."""
    base = settings.TRANSCRIPT_SERVICE_URL.rstrip("/")
    try:
        response = await client.get(f"{base}/health", timeout=SERVICE_CHECK_TIMEOUT)
        transcript_status = "ok" if response.is_success else f"error: HTTP {response.status_code}"
    except httpx.HTTPError as e:
        transcript_status = f"unreachable: {type(e).__name__}"

    return {
        "transcriptService": {"url": base, "status": transcript_status},
        "llm": {"configured": bool(settings.LLM_API_KEY), "model": settings.LLM_MODEL},
    }
