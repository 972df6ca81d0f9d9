from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# ---------------------------------------------------------------------------
# Metadata pipeline
# ---------------------------------------------------------------------------
metadata_requests_total = Counter(
    "metadata_requests_total",
    "Metadata extractions by pipeline (website, video, channel) and outcome",
    ["pipeline", "status"],
)
document_fetch_duration_seconds = Histogram(
    "document_fetch_duration_seconds",
    "Time spent fetching a single upstream document",
    buckets=[0.1, 0.25, 0.5, 1, 2, 5, 10],
)

# ---------------------------------------------------------------------------
# Caches and favicons
# ---------------------------------------------------------------------------
cache_lookups_total = Counter(
    "cache_lookups_total",
    "Cache lookups by cache (metadata, favicon) and result (hit, miss)",
    ["cache", "result"],
)
favicon_lookups_total = Counter(
    "favicon_lookups_total",
    "Favicon resolutions by result (found, not_found)",
    ["result"],
)

# ---------------------------------------------------------------------------
# AI summary relay
# ---------------------------------------------------------------------------
summary_streams_total = Counter(
    "summary_streams_total",
    "Summary event streams by outcome (completed, error, disconnected)",
    ["status"],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
