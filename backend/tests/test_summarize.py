"""Tests for the transcript summary relay and its SSE endpoint."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from httpx import AsyncClient

from linkmeta.config import settings
from linkmeta.core.exceptions import RelayError
from linkmeta.services.streaming import sse_done, sse_event
from linkmeta.services.summarizer import (
    Transcript,
    build_summary_messages,
    fetch_transcript,
    stream_summary,
    summary_event_stream,
)

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
TRANSCRIPT_ENDPOINT = f"{settings.TRANSCRIPT_SERVICE_URL.rstrip('/')}/transcript"
TRANSCRIPT = {
    "text": "Hello and welcome to the show.",
    "video_title": "Pilot",
    "video_id": "dQw4w9WgXcQ",
    "total_duration": 754,
}


def parse_sse_lines(body: str) -> list:
    """``data:`` payloads of an event-stream body; JSON decoded, ``[DONE]`` kept as a string."""
    events = []
    for line in body.splitlines():
        if not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        try:
            events.append(json.loads(data))
        except json.JSONDecodeError:
            events.append(data)
    return events


async def _collect(stream) -> list[str]:
    return [frame async for frame in stream]


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeCompletionStream:
    """Async-iterable stand-in for a streaming completion response."""

    def __init__(self, chunks):
        self._chunks = list(chunks)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._chunks:
            raise StopAsyncIteration
        return self._chunks.pop(0)

    async def aclose(self):
        self.closed = True


class TestSseFraming:
    def test_json_event(self):
        assert sse_event({"content": "hi"}) == 'data: {"content": "hi"}\n\n'

    def test_done(self):
        assert sse_done() == "data: [DONE]\n\n"

    def test_parse(self):
        body = sse_event({"content": "a"}) + sse_event({"content": "b"}) + sse_done()
        assert parse_sse_lines(body) == [{"content": "a"}, {"content": "b"}, "[DONE]"]


class TestFetchTranscript:
    @pytest.mark.asyncio
    async def test_success(self, upstream, http_client):
        upstream.add("POST", TRANSCRIPT_ENDPOINT, json=TRANSCRIPT)

        transcript = await fetch_transcript(VIDEO_URL, http_client)

        assert transcript.text == TRANSCRIPT["text"]
        assert transcript.video_title == "Pilot"
        request = upstream.requests[0]
        assert request.method == "POST"
        assert b'"include_timestamps":false' in request.content.replace(b" ", b"")
        assert b'"grouping_strategy":"smart"' in request.content.replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_error_status(self, upstream, http_client):
        upstream.add("POST", TRANSCRIPT_ENDPOINT, 500, json={"detail": "boom"})

        with pytest.raises(RelayError, match="HTTP 500"):
            await fetch_transcript(VIDEO_URL, http_client)

    @pytest.mark.asyncio
    async def test_empty_transcript(self, upstream, http_client):
        upstream.add("POST", TRANSCRIPT_ENDPOINT, json={"text": "   "})

        with pytest.raises(RelayError, match="No transcript"):
            await fetch_transcript(VIDEO_URL, http_client)

    @pytest.mark.asyncio
    async def test_unreachable(self, upstream, http_client):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        upstream.add_handler("POST", TRANSCRIPT_ENDPOINT, refuse)

        with pytest.raises(RelayError, match="unavailable"):
            await fetch_transcript(VIDEO_URL, http_client)


class TestBuildSummaryMessages:
    def test_includes_title_and_duration(self):
        messages = build_summary_messages(Transcript(text="Body", video_title="Pilot", total_duration=754))

        assert messages[0]["role"] == "system"
        user = messages[1]["content"]
        assert "Title: Pilot" in user
        assert "Duration: 12:34" in user
        assert user.endswith("Body")

    def test_truncates_long_transcripts(self):
        with patch.object(settings, "SUMMARY_MAX_TRANSCRIPT_CHARS", 10):
            messages = build_summary_messages(Transcript(text="x" * 50))

        assert "x" * 11 not in messages[1]["content"]
        assert "[transcript truncated]" in messages[1]["content"]


class TestStreamSummary:
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        with patch.object(settings, "LLM_API_KEY", ""):
            with pytest.raises(RelayError, match="not configured"):
                await _collect(stream_summary([]))

    @pytest.mark.asyncio
    async def test_yields_non_empty_deltas_and_closes_stream(self):
        fake = FakeCompletionStream([_chunk("Hello"), _chunk(None), _chunk(""), _chunk(" world")])

        with (
            patch.object(settings, "LLM_API_KEY", "sk-test"),
            patch("litellm.acompletion", new_callable=AsyncMock, return_value=fake) as completion,
        ):
            deltas = await _collect(stream_summary([{"role": "user", "content": "hi"}]))

        assert deltas == ["Hello", " world"]
        assert fake.closed is True
        assert completion.await_args.kwargs["stream"] is True
        assert completion.await_args.kwargs["model"] == settings.LLM_MODEL

    @pytest.mark.asyncio
    async def test_provider_error(self):
        with (
            patch.object(settings, "LLM_API_KEY", "sk-test"),
            patch("litellm.acompletion", new_callable=AsyncMock, side_effect=RuntimeError("quota")),
        ):
            with pytest.raises(RelayError, match="Completion request failed"):
                await _collect(stream_summary([]))


class TestSummaryEventStream:
    @pytest.mark.asyncio
    async def test_content_events_then_done(self, upstream, http_client):
        upstream.add("POST", TRANSCRIPT_ENDPOINT, json=TRANSCRIPT)

        async def fake_stream(messages):
            yield "Hello"
            yield " world"

        with patch("linkmeta.services.summarizer.stream_summary", fake_stream):
            frames = await _collect(summary_event_stream(VIDEO_URL, http_client))

        assert parse_sse_lines("".join(frames)) == [{"content": "Hello"}, {"content": " world"}, "[DONE]"]

    @pytest.mark.asyncio
    async def test_transcript_failure_is_a_single_error_event(self, upstream, http_client):
        upstream.add("POST", TRANSCRIPT_ENDPOINT, 502)

        frames = await _collect(summary_event_stream(VIDEO_URL, http_client))

        assert len(frames) == 1
        assert parse_sse_lines(frames[0]) == [{"error": "Transcript service returned HTTP 502"}]

    @pytest.mark.asyncio
    async def test_completion_failure_ends_with_error(self, upstream, http_client):
        upstream.add("POST", TRANSCRIPT_ENDPOINT, json=TRANSCRIPT)

        with patch.object(settings, "LLM_API_KEY", ""):
            frames = await _collect(summary_event_stream(VIDEO_URL, http_client))

        events = parse_sse_lines("".join(frames))
        assert events == [{"error": "Completion API key is not configured"}]

    @pytest.mark.asyncio
    async def test_stops_and_closes_upstream_on_disconnect(self, upstream, http_client):
        upstream.add("POST", TRANSCRIPT_ENDPOINT, json=TRANSCRIPT)
        state = {"closed": False, "produced": 0}

        async def fake_stream(messages):
            try:
                for delta in ["a", "b", "c"]:
                    state["produced"] += 1
                    yield delta
            finally:
                state["closed"] = True

        async def disconnected():
            return True

        with patch("linkmeta.services.summarizer.stream_summary", fake_stream):
            frames = await _collect(summary_event_stream(VIDEO_URL, http_client, disconnected))

        assert frames == []
        assert state["produced"] == 1
        assert state["closed"] is True


class TestSummarizeEndpoint:
    @pytest.mark.asyncio
    async def test_invalid_url_is_json_400(self, client: AsyncClient):
        resp = await client.post("/api/ai-summarize", json={"url": "not a url"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid URL format"}

    @pytest.mark.asyncio
    async def test_missing_url(self, client: AsyncClient):
        resp = await client.post("/api/ai-summarize", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "URL is required"}

    @pytest.mark.asyncio
    async def test_streams_events(self, client: AsyncClient):
        async def fake_events(url, client, is_disconnected=None):
            yield sse_event({"content": f"Summary of {url}"})
            yield sse_done()

        with patch("linkmeta.api.summarize.summary_event_stream", fake_events):
            resp = await client.post("/api/ai-summarize", json={"url": VIDEO_URL})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        assert resp.headers["cache-control"] == "no-cache"
        assert parse_sse_lines(resp.text) == [{"content": f"Summary of {VIDEO_URL}"}, "[DONE]"]

    @pytest.mark.asyncio
    async def test_event_stream_is_not_gzipped(self, client: AsyncClient):
        async def fake_events(url, client, is_disconnected=None):
            yield sse_event({"content": "x" * 2000})
            yield sse_done()

        with patch("linkmeta.api.summarize.summary_event_stream", fake_events):
            resp = await client.post(
                "/api/ai-summarize", json={"url": VIDEO_URL}, headers={"Accept-Encoding": "gzip"}
            )

        assert resp.status_code == 200
        assert "content-encoding" not in resp.headers
        assert parse_sse_lines(resp.text)[-1] == "[DONE]"
