"""Error taxonomy and the FastAPI handlers that render it.

Every error leaves the API as ``{"error": message}`` with the status code
carried by the exception.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LinkMetaError(Exception):
    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.headers = headers
        if status_code is not None:
            self.status_code = status_code


class ValidationError(LinkMetaError):
    """Missing or malformed URL in a request."""

    status_code = 400


class UpstreamFetchError(LinkMetaError):
    """Target site or API unreachable, non-2xx, oversized or timed out."""

    status_code = 502

    def __init__(self, message: str, url: str = "", upstream_status: int | None = None):
        super().__init__(message)
        self.url = url
        self.upstream_status = upstream_status


class ExtractionFailure(LinkMetaError):
    """The document parsed but a required value (e.g. a video ID) is missing."""

    status_code = 422


class RelayError(LinkMetaError):
    """Transcript or completion hop of the summary relay failed."""

    status_code = 502


class RateLimitError(LinkMetaError):
    status_code = 429


async def _linkmeta_error_handler(request: Request, exc: LinkMetaError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code, content={"error": exc.message}, headers=exc.headers
    )


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Malformed bodies are client errors like a missing URL, not 422s
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LinkMetaError, _linkmeta_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
