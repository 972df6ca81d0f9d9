"""Logging setup shared by the API server and the CLI.

``json`` writes one object per record (timestamp, level, logger, message,
request_id, service); ``text`` writes one readable line per record.
"""

import logging
import sys
from typing import TextIO

from pythonjsonlogger.json import JsonFormatter

from linkmeta.config import settings
from linkmeta.middleware.request_id import get_request_id

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(request_id)s] %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s %(request_id)s"

# One line per outbound request or stream chunk at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "LiteLLM", "LiteLLM Router", "LiteLLM Proxy")


class RequestIDFilter(logging.Filter):
    """Attach the current request id, "-" outside a request."""

    def filter(self, record):
        record.request_id = get_request_id() or "-"
        return True


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter(TEXT_FORMAT)
    return JsonFormatter(
        JSON_FORMAT,
        rename_fields={"levelname": "level", "name": "logger", "asctime": "timestamp"},
        static_fields={"service": settings.APP_NAME.lower()},
    )


def configure_logging(
    log_format: str = "json",
    log_level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Replace the root handlers with a single request-aware handler."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.addFilter(RequestIDFilter())
    handler.setFormatter(build_formatter(log_format))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
