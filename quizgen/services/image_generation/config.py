"""
Per-provider concurrency, pacing and retry tunables.
Built once from settings; change behaviour via environment, not calling code.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from quizgen.core.config import Settings, settings
from quizgen.services.image_generation.base import (
    ConfigurationError,
    ImageProvider,
)


@dataclass(frozen=True)
class ProviderConfig:
    max_concurrent_requests: int
    delay_between_batches_ms: int
    retry_delay_ms: int
    max_retries: int

    def __post_init__(self) -> None:
        if self.max_concurrent_requests < 1:
            raise ValueError("max_concurrent_requests must be at least 1")
        if min(self.delay_between_batches_ms, self.retry_delay_ms, self.max_retries) < 0:
            raise ValueError("delays and max_retries must not be negative")


def build_provider_configs(source: Settings) -> Mapping[ImageProvider, ProviderConfig]:
    """Read-only table of tunables keyed by provider."""
    return MappingProxyType({
        ImageProvider.OPENAI: ProviderConfig(
            max_concurrent_requests=source.openai_max_concurrent_requests,
            delay_between_batches_ms=source.openai_delay_between_batches_ms,
            retry_delay_ms=source.openai_retry_delay_ms,
            max_retries=source.openai_max_retries,
        ),
        ImageProvider.GEMINI: ProviderConfig(
            max_concurrent_requests=source.gemini_max_concurrent_requests,
            delay_between_batches_ms=source.gemini_delay_between_batches_ms,
            retry_delay_ms=source.gemini_retry_delay_ms,
            max_retries=source.gemini_max_retries,
        ),
    })


IMAGE_GENERATION_CONFIG = build_provider_configs(settings)


def get_provider_config(provider: ImageProvider | str) -> ProviderConfig:
    """Look up tunables for a provider; raises ConfigurationError if unknown."""
    try:
        key = ImageProvider(provider)
    except ValueError:
        raise ConfigurationError(f"No image generation config for provider: {provider}") from None
    config = IMAGE_GENERATION_CONFIG.get(key)
    if config is None:
        raise ConfigurationError(f"No image generation config for provider: {provider}")
    return config
