"""Adaptive rate limiting for AWS API Gateway operations.

AdaptiveRateLimiter remembers, per ``account:region:operation`` key,
when the last 429 arrived and how long AWS asked us to wait. Retry
options built from it start from that learned delay while the pain is
recent and recover gradually (never below half the configured base)
once the key has been quiet for a while.

The limiter is a plain object: construct one per bulk command and pass
it to whatever orchestrates the run. History lives only in memory and
must be cleared with reset_history() between unrelated bulk runs.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from api_spawner.execution.failures import (
    AWS_RATE_LIMIT_HEADERS,
    failure_info_from_exception,
    retry_after_seconds,
)
from api_spawner.execution.retry import RetryAttempt, RetryOptions

logger = logging.getLogger(__name__)

# Events newer than this keep the learned delay in force
RECENT_WINDOW_MS = 60_000
# Quiet period over which the base delay recovers to its floor
RECOVERY_HORIZON_MS = 300_000
MAX_REDUCTION = 0.5
SAFETY_BUFFER = 1.2

DELETE_DEFAULT_MAX_RETRIES = 10
DELETE_DEFAULT_BASE_DELAY_MS = 3000.0
DELETE_DEFAULT_MAX_DELAY_MS = 120_000.0


class OperationKind(str, Enum):
    """API Gateway operation classes tracked separately."""

    create = "create"
    delete = "delete"
    list = "list"


# Fixed pacing between successive operations (not retry delays)
OPERATION_DELAYS_MS: dict[str, float] = {
    OperationKind.delete.value: 2000.0,
    OperationKind.create.value: 1000.0,
    OperationKind.list.value: 500.0,
}
DEFAULT_OPERATION_DELAY_MS = 1000.0


@dataclass(frozen=True)
class RateLimitHistoryEntry:
    last_rate_limit_at: float
    suggested_delay_ms: float


@dataclass(frozen=True)
class RateLimitStats:
    total_rate_limits: int
    average_delay_ms: float


@dataclass(frozen=True)
class RetryOverrides:
    """Caller-supplied bounds; None means "use the operation default"."""

    max_retries: int | None = None
    base_delay_ms: float | None = None
    max_delay_ms: float | None = None


def _or_default(value: float | None, default: float) -> float:
    return value if value is not None else default


def _kind_value(kind: OperationKind | str) -> str:
    return kind.value if isinstance(kind, OperationKind) else str(kind)


class AdaptiveRateLimiter:
    """Learns per-key throttling behaviour and produces tuned RetryOptions."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._history: dict[str, RateLimitHistoryEntry] = {}

    @staticmethod
    def rate_limit_key(account: str, region: str, kind: OperationKind | str) -> str:
        return f"{account}:{region}:{_kind_value(kind)}"

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def history(self, key: str) -> RateLimitHistoryEntry | None:
        return self._history.get(key)

    def record_rate_limit(self, key: str, retry_after_s: float) -> None:
        """Remember a 429 for ``key``; the suggestion carries a 20% buffer."""
        suggested = retry_after_s * 1000.0 * SAFETY_BUFFER
        self._history[key] = RateLimitHistoryEntry(
            last_rate_limit_at=self._now_ms(),
            suggested_delay_ms=suggested,
        )
        logger.info("rate limited on %s, suggested delay now %.0fms", key, suggested)

    def calculate_adaptive_delay(self, key: str, base_delay_ms: float) -> float:
        """Base retry delay for ``key`` given its rate-limit history.

        Recent events (under a minute old) keep the learned delay, never
        below ``base_delay_ms``. Older events decay linearly over five
        minutes down to a floor of half the base.
        """
        entry = self._history.get(key)
        if entry is None:
            return base_delay_ms

        elapsed = self._now_ms() - entry.last_rate_limit_at
        if elapsed < RECENT_WINDOW_MS:
            return max(entry.suggested_delay_ms, base_delay_ms)

        reduction = min(elapsed / RECOVERY_HORIZON_MS, MAX_REDUCTION)
        return max(base_delay_ms * (1 - reduction), base_delay_ms * MAX_REDUCTION)

    def _recorder(self, key: str) -> Callable[[RetryAttempt], None]:
        def on_retry(attempt: RetryAttempt) -> None:
            info = failure_info_from_exception(attempt.error)
            if info.status_code != 429:
                return
            seconds = retry_after_seconds(info, AWS_RATE_LIMIT_HEADERS)
            if seconds is not None:
                self.record_rate_limit(key, seconds)

        return on_retry

    def get_delete_retry_options(
        self,
        account: str,
        region: str,
        overrides: RetryOverrides | None = None,
    ) -> RetryOptions:
        """Conservative retry options for DeleteRestApi in one account/region."""
        overrides = overrides or RetryOverrides()
        key = self.rate_limit_key(account, region, OperationKind.delete)
        base = _or_default(overrides.base_delay_ms, DELETE_DEFAULT_BASE_DELAY_MS)

        return RetryOptions(
            max_retries=(
                overrides.max_retries
                if overrides.max_retries is not None
                else DELETE_DEFAULT_MAX_RETRIES
            ),
            base_delay_ms=self.calculate_adaptive_delay(key, base),
            max_delay_ms=_or_default(overrides.max_delay_ms, DELETE_DEFAULT_MAX_DELAY_MS),
            jitter=True,
            on_retry=self._recorder(key),
        )

    def get_retry_options(
        self,
        account: str,
        region: str,
        kind: OperationKind | str,
        overrides: RetryOverrides | None = None,
    ) -> RetryOptions:
        """Adaptive retry options for any operation kind.

        Delete delegates to get_delete_retry_options; other kinds start
        from the RetryOptions defaults.
        """
        if _kind_value(kind) == OperationKind.delete.value:
            return self.get_delete_retry_options(account, region, overrides)

        overrides = overrides or RetryOverrides()
        defaults = RetryOptions()
        key = self.rate_limit_key(account, region, kind)
        base = _or_default(overrides.base_delay_ms, defaults.base_delay_ms)

        return RetryOptions(
            max_retries=(
                overrides.max_retries
                if overrides.max_retries is not None
                else defaults.max_retries
            ),
            base_delay_ms=self.calculate_adaptive_delay(key, base),
            max_delay_ms=_or_default(overrides.max_delay_ms, defaults.max_delay_ms),
            jitter=True,
            on_retry=self._recorder(key),
        )

    @staticmethod
    def get_operation_delay(kind: OperationKind | str) -> float:
        """Fixed pacing delay (ms) between successive operations of ``kind``."""
        return OPERATION_DELAYS_MS.get(_kind_value(kind), DEFAULT_OPERATION_DELAY_MS)

    def reset_history(self) -> None:
        self._history.clear()

    def get_stats(self) -> RateLimitStats:
        """Snapshot of keys with recorded 429s and their mean suggested delay."""
        total = len(self._history)
        if total == 0:
            return RateLimitStats(total_rate_limits=0, average_delay_ms=0.0)
        delay_sum = sum(e.suggested_delay_ms for e in self._history.values())
        return RateLimitStats(total_rate_limits=total, average_delay_ms=delay_sum / total)
