"""Unit tests for the conversion retry policy."""

import pytest

from mathdoc.core.exceptions import ConversionError, ConversionErrorKind
from mathdoc.pipeline.resilience import RetryConfig, with_retry

NON_RETRYABLE = [
    kind
    for kind in ConversionErrorKind
    if kind not in {ConversionErrorKind.NETWORK_ERROR, ConversionErrorKind.PROCESSING_ERROR}
]
RETRYABLE = [ConversionErrorKind.NETWORK_ERROR, ConversionErrorKind.PROCESSING_ERROR]


class FlakyOperation:
    """Fails with the given kinds in order, then succeeds."""

    def __init__(self, *kinds: ConversionErrorKind, result: str = "ok"):
        self.kinds = list(kinds)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.kinds:
            raise ConversionError(self.kinds.pop(0), f"failure {self.calls}")
        return self.result


class TestRetryBasics:
    @pytest.mark.asyncio
    async def test_immediate_success_no_retry(self, recording_sleep):
        operation = FlakyOperation()

        result = await with_retry(operation, RetryConfig(), sleep=recording_sleep)

        assert result == "ok"
        assert operation.calls == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", NON_RETRYABLE)
    async def test_non_retryable_kind_invoked_once(self, kind, recording_sleep):
        operation = FlakyOperation(kind)

        with pytest.raises(ConversionError) as exc_info:
            await with_retry(operation, RetryConfig(max_attempts=3), sleep=recording_sleep)

        assert exc_info.value.kind is kind
        assert operation.calls == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", RETRYABLE)
    async def test_retryable_kind_exhausts_to_timeout(self, kind, recording_sleep):
        operation = FlakyOperation(kind, kind, kind)

        with pytest.raises(ConversionError) as exc_info:
            await with_retry(
                operation,
                RetryConfig(max_attempts=3, base_delay_seconds=2.0),
                sleep=recording_sleep,
            )

        assert exc_info.value.kind is ConversionErrorKind.TIMEOUT
        assert exc_info.value.details.kind is kind
        assert operation.calls == 3

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, recording_sleep):
        operation = FlakyOperation(ConversionErrorKind.NETWORK_ERROR, result="markup")

        result = await with_retry(operation, RetryConfig(), sleep=recording_sleep)

        assert result == "markup"
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_non_retryable_after_retryable_propagates(self, recording_sleep):
        operation = FlakyOperation(
            ConversionErrorKind.PROCESSING_ERROR,
            ConversionErrorKind.RATE_LIMIT_EXCEEDED,
        )

        with pytest.raises(ConversionError) as exc_info:
            await with_retry(operation, RetryConfig(max_attempts=5), sleep=recording_sleep)

        assert exc_info.value.kind is ConversionErrorKind.RATE_LIMIT_EXCEEDED
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_untyped_errors_are_not_retried(self, recording_sleep):
        calls = 0

        async def broken():
            nonlocal calls
            calls += 1
            raise KeyError("pdf_id")

        with pytest.raises(KeyError):
            await with_retry(broken, RetryConfig(), sleep=recording_sleep)

        assert calls == 1


class TestRetryTiming:
    @pytest.mark.asyncio
    async def test_linear_backoff_delays(self, recording_sleep):
        kind = ConversionErrorKind.NETWORK_ERROR
        operation = FlakyOperation(kind, kind, kind, kind)

        with pytest.raises(ConversionError):
            await with_retry(
                operation,
                RetryConfig(max_attempts=4, base_delay_seconds=2.0),
                sleep=recording_sleep,
            )

        assert recording_sleep.delays == [2.0, 4.0, 6.0]

    @pytest.mark.asyncio
    async def test_delays_strictly_increase(self, recording_sleep):
        kind = ConversionErrorKind.PROCESSING_ERROR
        operation = FlakyOperation(*([kind] * 6))

        with pytest.raises(ConversionError):
            await with_retry(
                operation,
                RetryConfig(max_attempts=6, base_delay_seconds=0.5),
                sleep=recording_sleep,
            )

        delays = recording_sleep.delays
        assert len(delays) == 5
        assert all(a < b for a, b in zip(delays, delays[1:]))

    def test_delay_before_first_attempt_is_zero(self):
        assert RetryConfig(base_delay_seconds=3.0).delay_before(1) == 0.0
        assert RetryConfig(base_delay_seconds=3.0).delay_before(3) == 6.0

    @pytest.mark.asyncio
    async def test_single_attempt_config(self, recording_sleep):
        operation = FlakyOperation(ConversionErrorKind.NETWORK_ERROR)

        with pytest.raises(ConversionError) as exc_info:
            await with_retry(operation, RetryConfig(max_attempts=1), sleep=recording_sleep)

        assert exc_info.value.kind is ConversionErrorKind.TIMEOUT
        assert operation.calls == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            await with_retry(FlakyOperation(), RetryConfig(max_attempts=0))
