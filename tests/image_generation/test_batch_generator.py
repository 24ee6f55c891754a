"""Tests for BatchGenerator: windowing, per-item retry, pacing, ordering, counts."""
import asyncio
import time

import pytest

from quizgen.services.image_generation.base import (
    ImageGenerationService,
    ImageKind,
    ImageProvider,
    ImageResult,
)
from quizgen.services.image_generation.batch import BatchGenerator
from quizgen.services.image_generation.config import ProviderConfig
from quizgen.services.image_generation.failure_types import FailureType


class FakeImageService(ImageGenerationService):
    """Records calls and concurrency; outcome per prompt is scripted."""

    provider = ImageProvider.OPENAI

    def __init__(self, outcomes=None, latency=0.0, latencies=None):
        super().__init__({})
        self.outcomes = outcomes or {}
        self.latency = latency
        self.latencies = latencies or {}
        self.calls: list[str] = []
        self.call_times: dict[str, list[float]] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    def is_available(self) -> bool:
        return True

    async def generate_image(self, prompt, kind):
        self.calls.append(prompt)
        self.call_times.setdefault(prompt, []).append(time.perf_counter())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.latencies.get(prompt, self.latency))
        finally:
            self.in_flight -= 1
        outcome = self.outcomes.get(prompt)
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if outcome else None
        if outcome is None:
            return ImageResult.ok(f"img:{prompt}:{kind.value}".encode())
        return ImageResult.failed(outcome)


def _config(concurrency=4, batch_delay_ms=0, retry_delay_ms=0, max_retries=1):
    return ProviderConfig(
        max_concurrent_requests=concurrency,
        delay_between_batches_ms=batch_delay_ms,
        retry_delay_ms=retry_delay_ms,
        max_retries=max_retries,
    )


def _run(service, config, prompts, kinds, on_progress=None):
    return asyncio.run(BatchGenerator(service, config).run(prompts, kinds, on_progress))


class TestScenarios:
    def test_all_success(self):
        service = FakeImageService()
        outcome = _run(
            service,
            _config(),
            ["a", "b", "c"],
            [ImageKind.QUESTION, ImageKind.ANSWER, ImageKind.ANSWER],
        )

        assert outcome.success_count == 3
        assert outcome.failure_count == 0
        assert [r.success for r in outcome.results] == [True, True, True]
        assert outcome.results[0].payload == b"img:a:question"
        assert outcome.results[2].payload == b"img:c:answer"

    def test_mixed_outcome_non_retryable_failure(self):
        service = FakeImageService(outcomes={"p2": "400 bad request"})
        prompts = ["p0", "p1", "p2", "p3", "p4"]
        outcome = _run(service, _config(), prompts, [ImageKind.QUESTION] * 5)

        assert outcome.success_count == 4
        assert outcome.failure_count == 1
        assert outcome.results[2].success is False
        assert len(outcome.results[2].payload) == 0
        assert outcome.results[2].error == "400 bad request"
        assert service.calls.count("p2") == 1

    def test_exhausted_retries(self):
        service = FakeImageService(outcomes={"x": "Rate limit exceeded (429)"})
        outcome = _run(service, _config(max_retries=1), ["x"], [ImageKind.QUESTION])

        assert service.calls == ["x", "x"]
        assert outcome.failure_count == 1
        assert outcome.results[0].error == "Rate limit exceeded (429)"
        assert outcome.results[0].failure_type == FailureType.RATE_LIMITED

    def test_empty_input_returns_empty_outcome(self):
        service = FakeImageService()
        outcome = _run(service, _config(), [], [])

        assert outcome.results == ()
        assert outcome.success_count == 0
        assert outcome.failure_count == 0
        assert service.calls == []


class TestRetryPolicy:
    def test_non_retryable_called_once(self):
        service = FakeImageService(outcomes={"a": "400 bad request", "b": "400 bad request"})
        _run(service, _config(max_retries=3), ["a", "b"], [ImageKind.ANSWER] * 2)
        assert service.calls.count("a") == 1
        assert service.calls.count("b") == 1

    @pytest.mark.parametrize("error", [
        "429 rate limited",
        "RATE LIMIT hit",
        "Quota exhausted for project",
        "Resource has been exceeded",
    ])
    def test_retryable_called_one_plus_max_retries(self, error):
        service = FakeImageService(outcomes={"a": error})
        outcome = _run(service, _config(max_retries=2), ["a"], [ImageKind.QUESTION])
        assert service.calls.count("a") == 3
        assert outcome.results[0].success is False

    def test_zero_max_retries_means_single_call(self):
        service = FakeImageService(outcomes={"a": "429"})
        _run(service, _config(max_retries=0), ["a"], [ImageKind.QUESTION])
        assert service.calls == ["a"]

    def test_success_after_rate_limit(self):
        service = FakeImageService(outcomes={"a": ["429 too many", None]})
        outcome = _run(service, _config(max_retries=1), ["a"], [ImageKind.QUESTION])
        assert service.calls == ["a", "a"]
        assert outcome.success_count == 1
        assert outcome.results[0].payload == b"img:a:question"

    def test_retry_stops_on_non_retryable_after_rate_limit(self):
        service = FakeImageService(outcomes={"a": ["quota exceeded", "403 permission denied"]})
        outcome = _run(service, _config(max_retries=5), ["a"], [ImageKind.QUESTION])
        assert service.calls == ["a", "a"]
        assert outcome.results[0].error == "403 permission denied"

    def test_retry_waits_retry_delay(self):
        service = FakeImageService(outcomes={"a": "429"})
        _run(service, _config(retry_delay_ms=50, max_retries=1), ["a"], [ImageKind.QUESTION])
        first, second = service.call_times["a"]
        assert second - first >= 0.045

    def test_retry_is_per_item(self):
        service = FakeImageService(outcomes={"b": ["429", None]})
        _run(service, _config(concurrency=3), ["a", "b", "c"], [ImageKind.QUESTION] * 3)
        assert service.calls.count("a") == 1
        assert service.calls.count("b") == 2
        assert service.calls.count("c") == 1


class TestConcurrencyAndOrdering:
    def test_concurrency_bound(self):
        service = FakeImageService(latency=0.01)
        prompts = [f"p{i}" for i in range(7)]
        _run(service, _config(concurrency=2), prompts, [ImageKind.QUESTION] * 7)
        assert service.max_in_flight == 2

    def test_serial_provider_never_overlaps(self):
        service = FakeImageService(latency=0.005)
        _run(service, _config(concurrency=1), ["a", "b", "c"], [ImageKind.ANSWER] * 3)
        assert service.max_in_flight == 1
        assert service.calls == ["a", "b", "c"]

    def test_window_items_run_concurrently(self):
        service = FakeImageService(latency=0.05)
        t0 = time.perf_counter()
        _run(service, _config(concurrency=4), ["a", "b", "c", "d"], [ImageKind.QUESTION] * 4)
        assert service.max_in_flight == 4
        assert time.perf_counter() - t0 < 0.15

    def test_results_follow_input_order_not_completion_order(self):
        latencies = {"slow": 0.05, "mid": 0.02, "fast": 0.0}
        service = FakeImageService(latencies=latencies, outcomes={"mid": "400 nope"})
        outcome = _run(
            service,
            _config(concurrency=3),
            ["slow", "mid", "fast"],
            [ImageKind.QUESTION, ImageKind.ANSWER, ImageKind.QUESTION],
        )
        assert outcome.results[0].payload == b"img:slow:question"
        assert outcome.results[1].success is False
        assert outcome.results[2].payload == b"img:fast:question"

    def test_next_window_waits_for_previous_retries(self):
        service = FakeImageService(outcomes={"a": ["429", None]})
        _run(
            service,
            _config(concurrency=2, retry_delay_ms=30, max_retries=1),
            ["a", "b", "c"],
            [ImageKind.QUESTION] * 3,
        )
        assert service.call_times["c"][0] >= service.call_times["a"][1]


class TestPacingAndProgress:
    def test_inter_batch_delay_between_windows(self):
        service = FakeImageService()
        prompts = ["a", "b", "c", "d", "e", "f"]
        _run(service, _config(concurrency=2, batch_delay_ms=50), prompts, [ImageKind.QUESTION] * 6)
        elapsed = service.call_times["e"][0] - service.call_times["a"][0]
        assert elapsed >= 2 * 0.05 * 0.9

    def test_no_delay_after_last_window(self):
        service = FakeImageService()
        t0 = time.perf_counter()
        _run(service, _config(concurrency=4, batch_delay_ms=300), ["a", "b"], [ImageKind.QUESTION] * 2)
        assert time.perf_counter() - t0 < 0.25

    def test_progress_reported_after_each_window(self):
        service = FakeImageService()
        progress = []
        _run(
            service,
            _config(concurrency=2),
            ["a", "b", "c", "d", "e"],
            [ImageKind.QUESTION] * 5,
            on_progress=lambda done, total: progress.append((done, total)),
        )
        assert progress == [(2, 5), (4, 5), (5, 5)]


class TestCountInvariant:
    def test_counts_add_up(self):
        outcomes = {"p1": "400", "p3": "429", "p5": "boom"}
        service = FakeImageService(outcomes=outcomes)
        prompts = [f"p{i}" for i in range(6)]
        outcome = _run(service, _config(concurrency=4, max_retries=0), prompts, [ImageKind.ANSWER] * 6)

        assert outcome.success_count + outcome.failure_count == len(outcome.results) == 6
        assert outcome.success_count == sum(1 for r in outcome.results if r.success)
        assert outcome.failure_count == 3
        for result in outcome.results:
            if result.success:
                assert result.payload and result.error is None
            else:
                assert result.payload == b"" and result.error
