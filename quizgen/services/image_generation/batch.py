"""
Batch image generation: windowed concurrency, per-item retry on rate limits,
pacing between windows, ordered aggregation.

Items inside a window run concurrently; window N+1 starts only after every
item of window N (including its retries) has finished. Results keep input
order regardless of completion order.
"""
import asyncio
import logging
import math
import time
from typing import Callable, Optional, Sequence

from quizgen.services.image_generation.base import (
    BatchOutcome,
    ConfigurationError,
    ImageGenerationService,
    ImageKind,
    ImageProvider,
    ImageResult,
    parse_provider,
)
from quizgen.services.image_generation.config import ProviderConfig, get_provider_config
from quizgen.services.image_generation.factory import create_service
from quizgen.services.image_generation.failure_types import (
    FailureType,
    classify_error_text,
    is_retryable_error,
)
from quizgen.utils.metrics import (
    image_batch_duration_seconds,
    image_batch_items_total,
    image_generation_attempts_total,
    image_generation_duration_seconds,
    image_generation_retries_total,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class BatchGenerator:
    """Runs one batch against one provider service using its ProviderConfig."""

    def __init__(self, service: ImageGenerationService, config: ProviderConfig) -> None:
        self.service = service
        self.config = config
        self.provider_label = getattr(service.provider, "value", str(service.provider))

    async def run(
        self,
        prompts: Sequence[str],
        kinds: Sequence[ImageKind],
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        """Expects equal-length inputs; validation lives in the router."""
        total = len(prompts)
        if total == 0:
            return BatchOutcome.empty()

        window_size = self.config.max_concurrent_requests
        windows = math.ceil(total / window_size)
        logger.info(
            "image_batch_started",
            extra={"provider": self.provider_label, "total": total, "windows": windows},
        )

        t0 = time.perf_counter()
        results: list[ImageResult] = []
        for window, start in enumerate(range(0, total, window_size), start=1):
            end = min(start + window_size, total)
            window_results = await asyncio.gather(*(
                self._generate_with_retry(index, prompts[index], kinds[index])
                for index in range(start, end)
            ))
            results.extend(window_results)

            logger.info(
                "image_batch_window_completed",
                extra={
                    "provider": self.provider_label,
                    "window": window,
                    "windows": windows,
                    "completed": len(results),
                    "total": total,
                },
            )
            if on_progress is not None:
                on_progress(len(results), total)

            if end < total:
                await asyncio.sleep(self.config.delay_between_batches_ms / 1000)

        outcome = BatchOutcome.from_results(results)
        image_batch_duration_seconds.labels(provider=self.provider_label).observe(
            time.perf_counter() - t0
        )
        logger.info(
            "image_batch_completed",
            extra={
                "provider": self.provider_label,
                "total": total,
                "success_count": outcome.success_count,
                "failure_count": outcome.failure_count,
            },
        )
        return outcome

    async def _generate_with_retry(self, index: int, prompt: str, kind: ImageKind) -> ImageResult:
        """
        Call the service, retrying only rate-limit / quota failures.
        At most 1 + max_retries calls; fixed retry_delay_ms between them.
        """
        max_attempts = 1 + self.config.max_retries
        result: ImageResult | None = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                logger.info(
                    "image_generation_retry_scheduled",
                    extra={
                        "provider": self.provider_label,
                        "index": index,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "delay_ms": self.config.retry_delay_ms,
                    },
                )
                image_generation_retries_total.labels(provider=self.provider_label).inc()
                await asyncio.sleep(self.config.retry_delay_ms / 1000)

            started = time.perf_counter()
            result = await self.service.generate_image(prompt, kind)
            image_generation_duration_seconds.labels(provider=self.provider_label).observe(
                time.perf_counter() - started
            )
            image_generation_attempts_total.labels(
                provider=self.provider_label,
                status="success" if result.success else "failure",
            ).inc()

            if result.success:
                image_batch_items_total.labels(provider=self.provider_label, outcome="success").inc()
                return result

            if not is_retryable_error(result.error):
                break

        error = result.error if result is not None else None
        failure_type = result.failure_type if result is not None else None
        if failure_type in (None, FailureType.UNKNOWN):
            failure_type = classify_error_text(error)
        image_batch_items_total.labels(
            provider=self.provider_label, outcome=failure_type.value
        ).inc()
        logger.warning(
            "image_generation_item_failed",
            extra={
                "provider": self.provider_label,
                "index": index,
                "kind": kind.value,
                "attempt": attempt,
                "failure_type": failure_type.value,
                "error": error,
            },
        )
        return ImageResult.failed(error, failure_type)


async def generate_images_batch(
    provider: ImageProvider,
    prompts: Sequence[str],
    kinds: Sequence[ImageKind],
    on_progress: Optional[ProgressCallback] = None,
    service: Optional[ImageGenerationService] = None,
) -> BatchOutcome:
    """Resolve config and service for provider, then run the batch."""
    key = parse_provider(provider)
    config = get_provider_config(key)
    if service is None:
        service = create_service(key)
    elif service.provider != key:
        raise ConfigurationError(
            f"Service for {getattr(service.provider, 'value', service.provider)} cannot run a {key.value} batch"
        )
    return await BatchGenerator(service, config).run(prompts, kinds, on_progress)
