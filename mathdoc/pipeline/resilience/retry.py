"""Bounded retry with linear backoff for conversion calls.

Only transient failure kinds (network and remote processing errors) are
retried; every other ``ConversionError`` propagates on first occurrence.
The delay function is injected so backoff timing can be tested without
waiting on the wall clock.

Example:
    >>> from mathdoc.pipeline.resilience.retry import with_retry, RetryConfig
    >>> markup = await with_retry(
    ...     lambda: client.recognize_image(url),
    ...     RetryConfig(max_attempts=3, base_delay_seconds=2.0),
    ... )
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from mathdoc.core.config import MAX_RETRY_ATTEMPTS, RETRY_BASE_DELAY_SECONDS
from mathdoc.core.exceptions import ConversionError, ConversionErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class RetryConfig:
    """Configuration for retry logic.

    Attributes:
        max_attempts: Maximum number of attempts (including initial)
        base_delay_seconds: Delay unit; attempt n waits base * (n - 1)
    """

    max_attempts: int = MAX_RETRY_ATTEMPTS
    base_delay_seconds: float = RETRY_BASE_DELAY_SECONDS

    def delay_before(self, attempt: int) -> float:
        """Delay before the given 1-based attempt."""
        return self.base_delay_seconds * (attempt - 1)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    *,
    sleep: SleepFunc = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or stops being retryable.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        config: Retry configuration
        sleep: Awaitable delay function

    Returns:
        Result of the first successful attempt

    Raises:
        ConversionError: The first non-retryable error unchanged, or
            ``timeout`` once every attempt failed with a retryable kind
    """
    config = config or RetryConfig()
    if config.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Optional[ConversionError] = None

    for attempt in range(1, config.max_attempts + 1):
        if attempt > 1:
            delay = config.delay_before(attempt)
            logger.warning(
                "Retry attempt %d/%d in %.2fs after %s",
                attempt,
                config.max_attempts,
                delay,
                last_error.kind.value if last_error else "unknown",
                extra={"retry_attempt": attempt, "error_code": last_error.error_code if last_error else None},
            )
            await sleep(delay)

        try:
            return await operation()
        except ConversionError as e:
            if not e.retryable:
                raise
            last_error = e

    logger.error(
        "All %d attempts failed",
        config.max_attempts,
        extra={"error_code": last_error.error_code if last_error else None},
    )
    raise ConversionError(
        ConversionErrorKind.TIMEOUT,
        "Maximum retry attempts reached",
        details=last_error,
    )
