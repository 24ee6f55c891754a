"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
image_generation_attempts_total = Counter(
    "image_generation_attempts_total",
    "Total upstream image generation calls (including retries)",
    ["provider", "status"],
)

image_generation_retries_total = Counter(
    "image_generation_retries_total",
    "Total retries scheduled after a rate-limit failure",
    ["provider"],
)

image_batch_items_total = Counter(
    "image_batch_items_total",
    "Final per-item outcomes of batch generation",
    ["provider", "outcome"],  # success, <failure_type>
)

image_uploads_total = Counter(
    "image_uploads_total",
    "Total image uploads to blob storage",
    ["bucket", "status"],
)

question_generation_requests_total = Counter(
    "question_generation_requests_total",
    "Total LLM question drafting requests",
    ["status"],
)

# Histograms
image_generation_duration_seconds = Histogram(
    "image_generation_duration_seconds",
    "Single upstream image generation call duration",
    ["provider"],
    buckets=[1, 5, 10, 30, 60, 120],
)

image_batch_duration_seconds = Histogram(
    "image_batch_duration_seconds",
    "Whole batch duration including pacing delays",
    ["provider"],
    buckets=[1, 5, 10, 30, 60, 120, 300, 900, 1800],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
