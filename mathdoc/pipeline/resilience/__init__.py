"""Resilience utilities for external service calls.

- Retry Logic: bounded linear backoff for transient conversion failures
"""

from mathdoc.pipeline.resilience.retry import RetryConfig, with_retry

__all__ = [
    "RetryConfig",
    "with_retry",
]
