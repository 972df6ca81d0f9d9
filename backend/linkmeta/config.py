import logging

from pydantic_settings import BaseSettings
from typing import List

_logger = logging.getLogger(__name__)

_CHROME_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    # App
    APP_NAME: str = "LinkMeta"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    # Rate Limiting (per client IP)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MAX: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # Cache
    CACHE_BACKEND: str = "memory"  # "memory" or "redis"
    REDIS_URL: str = "redis://localhost:6379/0"
    METADATA_CACHE_TTL: int = 3600
    FAVICON_CACHE_TTL: int = 86400  # 24 hours, includes not-found sentinels

    # Fetching
    FETCH_TIMEOUT: int = 10000  # ms
    FAVICON_TIMEOUT: int = 3000  # ms
    FETCH_MAX_REDIRECTS: int = 3
    FETCH_MAX_BYTES: int = 1024 * 1024
    USER_AGENT: str = _CHROME_USER_AGENT

    # Transcript service + completion API (AI summaries)
    TRANSCRIPT_SERVICE_URL: str = "http://localhost:8000"
    TRANSCRIPT_TIMEOUT: int = 60  # seconds
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_API_KEY: str = ""
    LLM_MAX_TOKENS: int = 1024
    LLM_TEMPERATURE: float = 0.3
    SUMMARY_MAX_TRANSCRIPT_CHARS: int = 60000

    # Sentry
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2
    SENTRY_ENVIRONMENT: str = "development"

    # Logging
    LOG_FORMAT: str = "json"  # "json" for production, "text" for development
    LOG_LEVEL: str = "INFO"

    # Metrics
    METRICS_ENABLED: bool = True

    def model_post_init(self, __context) -> None:
        if self.CACHE_BACKEND not in ("memory", "redis"):
            _logger.warning(
                "Unknown CACHE_BACKEND %r; falling back to the in-memory cache.",
                self.CACHE_BACKEND,
            )
            object.__setattr__(self, "CACHE_BACKEND", "memory")
        if not self.LLM_API_KEY:
            _logger.warning(
                "LLM_API_KEY not set; /api/ai-summarize will report an error. "
                "Set LLM_API_KEY in your .env or environment to enable summaries."
            )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
