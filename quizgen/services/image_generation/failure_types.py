"""
Failure normalization for image providers.
Classifies upstream failures for retry policy and observability.
"""
from enum import Enum


class FailureType(str, Enum):
    """Typed failure classes reported on every failed ImageResult."""

    RATE_LIMITED = "rate_limited"  # 429, quota, "exceeded"
    AUTH = "auth"  # 401, missing/invalid credentials
    PERMISSION = "permission"  # 403
    BAD_REQUEST = "bad_request"  # 400
    MALFORMED_RESPONSE = "malformed_response"  # payload fields missing
    NETWORK = "network"  # transport errors, download failures
    NOT_CONFIGURED = "not_configured"  # provider lacks settings
    UNKNOWN = "unknown"


# Substrings (lowercase) that mark an error text as retryable
RETRYABLE_MARKERS = ("429", "rate limit", "quota", "exceeded")


def is_retryable_error(error: str | None) -> bool:
    """
    True when the error text indicates a rate-limit / quota condition.
    Only these failures are retried by the batch generator.
    """
    if not error:
        return False
    lowered = error.lower()
    return any(marker in lowered for marker in RETRYABLE_MARKERS)


def classify_http_status(http_status: int) -> FailureType:
    """Map an upstream HTTP status to a failure type."""
    if http_status == 401:
        return FailureType.AUTH
    if http_status == 403:
        return FailureType.PERMISSION
    if http_status == 429:
        return FailureType.RATE_LIMITED
    if http_status == 400:
        return FailureType.BAD_REQUEST
    if 500 <= http_status < 600:
        return FailureType.NETWORK
    return FailureType.UNKNOWN


def classify_error_text(error: str | None) -> FailureType:
    """
    Best-effort classification of free-form error text.
    Used when a failure did not carry a typed classification.
    """
    if not error:
        return FailureType.UNKNOWN
    if is_retryable_error(error):
        return FailureType.RATE_LIMITED
    lowered = error.lower()
    if "401" in lowered or "authentication" in lowered or "api key" in lowered:
        return FailureType.AUTH
    if "403" in lowered or "permission" in lowered:
        return FailureType.PERMISSION
    if "400" in lowered or "invalid request" in lowered or "bad request" in lowered:
        return FailureType.BAD_REQUEST
    if "not configured" in lowered or "is required" in lowered:
        return FailureType.NOT_CONFIGURED
    if "invalid response" in lowered or "no image" in lowered:
        return FailureType.MALFORMED_RESPONSE
    if "download" in lowered or "connect" in lowered or "timeout" in lowered or "timed out" in lowered:
        return FailureType.NETWORK
    return FailureType.UNKNOWN
