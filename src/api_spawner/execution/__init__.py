"""api-spawner execution core - retry, adaptive rate limiting, and bulk runs."""

from api_spawner.execution.failures import (
    FailureInfo,
    FailureKind,
    Retryable,
    RetryReason,
    Terminal,
    classify_failure,
    failure_info_from_exception,
    is_retryable,
)
from api_spawner.execution.rate_limiter import (
    AdaptiveRateLimiter,
    OperationKind,
    RateLimitStats,
    RetryOverrides,
)
from api_spawner.execution.retry import (
    BulkProgress,
    RetryAttempt,
    RetryManager,
    RetryOptions,
    RetryResult,
    compute_backoff_delay,
)

__all__ = [
    "AdaptiveRateLimiter",
    "BulkProgress",
    "FailureInfo",
    "FailureKind",
    "OperationKind",
    "RateLimitStats",
    "RetryAttempt",
    "RetryManager",
    "RetryOptions",
    "RetryOverrides",
    "RetryReason",
    "RetryResult",
    "Retryable",
    "Terminal",
    "classify_failure",
    "compute_backoff_delay",
    "failure_info_from_exception",
    "is_retryable",
]
