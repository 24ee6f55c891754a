"""Tests for ImageResult / BatchOutcome invariants and failure classification."""
import pytest

from quizgen.services.image_generation.base import (
    BatchOutcome,
    ImageKind,
    ImageResult,
    InvalidArgumentError,
    ConfigurationError,
    UpstreamRateLimitError,
    parse_kind,
    parse_provider,
    ImageProvider,
)
from quizgen.services.image_generation.failure_types import (
    FailureType,
    classify_error_text,
    classify_http_status,
    is_retryable_error,
)


class TestImageResult:
    def test_ok_carries_payload(self):
        result = ImageResult.ok(b"abcd")
        assert result.success is True
        assert result.payload == b"abcd"
        assert result.error is None

    def test_ok_rejects_empty_payload(self):
        with pytest.raises(ValueError):
            ImageResult.ok(b"")

    def test_failed_has_empty_payload(self):
        result = ImageResult.failed("boom", FailureType.NETWORK)
        assert result.success is False
        assert result.payload == b""
        assert result.error == "boom"
        assert result.failure_type == FailureType.NETWORK

    @pytest.mark.parametrize("error", [None, "", "   "])
    def test_failed_never_silently_empty(self, error):
        result = ImageResult.failed(error)
        assert result.error == "Generation failed"
        assert result.failure_type == FailureType.UNKNOWN

    def test_failure_with_payload_is_invalid(self):
        with pytest.raises(ValueError):
            ImageResult(payload=b"x", success=False, error="nope")

    def test_success_with_error_is_invalid(self):
        with pytest.raises(ValueError):
            ImageResult(payload=b"x", success=True, error="nope")

    def test_from_error_keeps_type(self):
        result = ImageResult.from_error(UpstreamRateLimitError("Rate limit exceeded (429)", http_status=429))
        assert result.failure_type == FailureType.RATE_LIMITED
        assert result.error == "Rate limit exceeded (429)"


class TestBatchOutcome:
    def test_from_results_counts(self):
        results = [ImageResult.ok(b"1"), ImageResult.failed("x"), ImageResult.ok(b"2")]
        outcome = BatchOutcome.from_results(results)
        assert outcome.success_count == 2
        assert outcome.failure_count == 1
        assert outcome.results == tuple(results)

    def test_empty(self):
        outcome = BatchOutcome.empty()
        assert (outcome.results, outcome.success_count, outcome.failure_count) == ((), 0, 0)


class TestParsing:
    def test_parse_provider_case_insensitive(self):
        assert parse_provider(" Gemini ") is ImageProvider.GEMINI

    def test_parse_provider_unknown(self):
        with pytest.raises(ConfigurationError):
            parse_provider("stability")

    def test_parse_kind(self):
        assert parse_kind("answer") is ImageKind.ANSWER
        with pytest.raises(InvalidArgumentError):
            parse_kind("option")


class TestClassification:
    @pytest.mark.parametrize("text,expected", [
        ("Error code: 429 - too many", True),
        ("Rate Limit reached", True),
        ("quota exhausted", True),
        ("Resource EXCEEDED", True),
        ("Invalid request: 400", False),
        ("Authentication failed", False),
        (None, False),
        ("", False),
    ])
    def test_is_retryable_error(self, text, expected):
        assert is_retryable_error(text) is expected

    @pytest.mark.parametrize("status,expected", [
        (401, FailureType.AUTH),
        (403, FailureType.PERMISSION),
        (429, FailureType.RATE_LIMITED),
        (400, FailureType.BAD_REQUEST),
        (503, FailureType.NETWORK),
        (418, FailureType.UNKNOWN),
    ])
    def test_classify_http_status(self, status, expected):
        assert classify_http_status(status) == expected

    @pytest.mark.parametrize("text,expected", [
        ("Rate limit exceeded (429). Please wait", FailureType.RATE_LIMITED),
        ("Authentication failed. Check your Google Cloud credentials.", FailureType.AUTH),
        ("Permission denied (403).", FailureType.PERMISSION),
        ("Invalid request: missing prompt", FailureType.BAD_REQUEST),
        ("OPENAI_API_KEY not configured", FailureType.NOT_CONFIGURED),
        ("Invalid response from Imagen API: no predictions found", FailureType.MALFORMED_RESPONSE),
        ("Failed to download image: Not Found", FailureType.NETWORK),
        ("something odd", FailureType.UNKNOWN),
    ])
    def test_classify_error_text(self, text, expected):
        assert classify_error_text(text) == expected
