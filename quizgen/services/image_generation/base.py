"""
Base classes and types for image generation providers.
Used by the factory, the batch generator and all providers (openai, gemini).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from quizgen.services.image_generation.failure_types import FailureType

GENERIC_FAILURE_MESSAGE = "Generation failed"


class ImageKind(str, Enum):
    """What the image illustrates; selects prompt phrasing and storage bucket."""

    QUESTION = "question"
    ANSWER = "answer"


class ImageProvider(str, Enum):
    """Upstream image backends."""

    OPENAI = "openai"  # fast, parallel requests
    GEMINI = "gemini"  # Vertex AI Imagen, quota-bound


class ConfigurationError(Exception):
    """Raised for an unknown provider identifier."""


class InvalidArgumentError(ValueError):
    """Raised when a generation request is malformed (e.g. length mismatch)."""


class ImageGenerationError(Exception):
    """
    Raised inside providers when one generation fails.
    Never escapes generate_image: providers turn it into a failed ImageResult.
    """

    failure_type = FailureType.UNKNOWN

    def __init__(
        self,
        message: str,
        http_status: int | None = None,
        failure_type: FailureType | None = None,
    ):
        super().__init__(message)
        self.http_status = http_status
        self.failure_type = failure_type or type(self).failure_type


class ProviderNotConfiguredError(ImageGenerationError):
    failure_type = FailureType.NOT_CONFIGURED


class CredentialError(ImageGenerationError):
    failure_type = FailureType.AUTH


class UpstreamAuthError(ImageGenerationError):
    failure_type = FailureType.AUTH


class UpstreamPermissionError(ImageGenerationError):
    failure_type = FailureType.PERMISSION


class UpstreamRateLimitError(ImageGenerationError):
    failure_type = FailureType.RATE_LIMITED


class UpstreamBadRequestError(ImageGenerationError):
    failure_type = FailureType.BAD_REQUEST


class UpstreamMalformedResponseError(ImageGenerationError):
    failure_type = FailureType.MALFORMED_RESPONSE


class UpstreamNetworkError(ImageGenerationError):
    failure_type = FailureType.NETWORK


def parse_provider(value: ImageProvider | str) -> ImageProvider:
    """Coerce a provider identifier; raises ConfigurationError when unknown."""
    if isinstance(value, ImageProvider):
        return value
    try:
        return ImageProvider(str(value).strip().lower())
    except ValueError:
        available = ", ".join(p.value for p in ImageProvider)
        raise ConfigurationError(
            f"Unknown provider: {value}. Available providers: {available}"
        ) from None


def parse_kind(value: ImageKind | str) -> ImageKind:
    if isinstance(value, ImageKind):
        return value
    try:
        return ImageKind(str(value).strip().lower())
    except ValueError:
        raise InvalidArgumentError(
            f'Invalid type "{value}". Must be "question" or "answer"'
        ) from None


@dataclass(frozen=True)
class ImageResult:
    """
    Outcome of one generation request.

    success=True carries a non-empty payload and no error;
    success=False carries an empty payload and a non-empty error.
    """

    payload: bytes
    success: bool
    error: str | None = None
    failure_type: FailureType | None = None

    def __post_init__(self) -> None:
        if self.success:
            if not self.payload:
                raise ValueError("successful ImageResult requires a non-empty payload")
            if self.error is not None:
                raise ValueError("successful ImageResult must not carry an error")
        else:
            if self.payload:
                raise ValueError("failed ImageResult must have an empty payload")
            if not self.error:
                raise ValueError("failed ImageResult requires an error message")

    @classmethod
    def ok(cls, payload: bytes) -> ImageResult:
        return cls(payload=bytes(payload), success=True)

    @classmethod
    def failed(
        cls,
        error: str | None,
        failure_type: FailureType | None = None,
    ) -> ImageResult:
        message = (error or "").strip() or GENERIC_FAILURE_MESSAGE
        return cls(
            payload=b"",
            success=False,
            error=message,
            failure_type=failure_type or FailureType.UNKNOWN,
        )

    @classmethod
    def from_error(cls, exc: ImageGenerationError) -> ImageResult:
        return cls.failed(str(exc), exc.failure_type)


@dataclass(frozen=True)
class BatchOutcome:
    """Ordered per-request results plus aggregate counts."""

    results: tuple[ImageResult, ...] = field(default_factory=tuple)
    success_count: int = 0
    failure_count: int = 0

    @classmethod
    def from_results(cls, results: Sequence[ImageResult]) -> BatchOutcome:
        results = tuple(results)
        success_count = sum(1 for r in results if r.success)
        return cls(
            results=results,
            success_count=success_count,
            failure_count=len(results) - success_count,
        )

    @classmethod
    def empty(cls) -> BatchOutcome:
        return cls()


class ImageGenerationService(ABC):
    """One upstream image backend: turns a prompt into one ImageResult."""

    provider: ImageProvider

    def __init__(self, config: dict) -> None:
        self.config = config

    @abstractmethod
    def is_available(self) -> bool:
        """Check if provider is configured and available."""
        pass

    @abstractmethod
    async def generate_image(self, prompt: str, kind: ImageKind) -> ImageResult:
        """
        Generate a single image.
        Must not raise for upstream failures; they are returned as failed results.
        """
        pass
