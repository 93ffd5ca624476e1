"""Transient error retry with exponential backoff and jitter.

RetryManager runs a zero-argument coroutine factory until it succeeds,
fails with a terminal error, or exhausts its retry budget. Delays come
from the server's Retry-After hint when a 429 carries one, otherwise
from capped exponential backoff with a 10% jitter ceiling.

All delays are in milliseconds. The manager keeps no state between
calls; sleep and random sources are injected so tests never wait.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Generic, Literal, TypeVar

from api_spawner.execution.failures import (
    Retryable,
    RetryReason,
    classify_failure,
    extract_retry_after_ms,
    failure_info_from_exception,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_RATIO = 0.1

DelaySource = Literal["retry-after", "backoff"]


@dataclass(frozen=True)
class RetryAttempt:
    """Record of one retry decision: which attempt failed and how long we wait."""

    attempt: int
    error: BaseException
    delay_ms: float
    delay_source: DelaySource
    reason: RetryReason


RetryObserver = Callable[[RetryAttempt], None]


@dataclass(frozen=True)
class RetryOptions:
    """Retry budget and delay bounds for a single operation."""

    max_retries: int = 5
    base_delay_ms: float = 1000.0
    max_delay_ms: float = 30000.0
    jitter: bool = True
    on_retry: RetryObserver | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("RetryOptions.max_retries must be >= 0")
        if self.base_delay_ms < 0:
            raise ValueError("RetryOptions.base_delay_ms must be >= 0")
        if self.max_delay_ms < 0:
            raise ValueError("RetryOptions.max_delay_ms must be >= 0")

    def merged(self, **overrides: Any) -> RetryOptions:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    def with_observer(self, observer: RetryObserver) -> RetryOptions:
        """Return a copy that notifies the existing observer, then ``observer``."""
        existing = self.on_retry
        if existing is None:
            return replace(self, on_retry=observer)

        def chained(attempt: RetryAttempt) -> None:
            existing(attempt)
            observer(attempt)

        return replace(self, on_retry=chained)


@dataclass
class RetryResult(Generic[T]):
    """Outcome of RetryManager.retry.

    Exactly one of ``result`` / ``error`` is meaningful, selected by
    ``success``. ``error`` is the original exception, never wrapped.
    """

    success: bool
    attempts: int
    total_delay_ms: float
    result: T | None = None
    error: BaseException | None = None
    retries: list[RetryAttempt] = field(default_factory=list)


@dataclass(frozen=True)
class BulkProgress(Generic[T]):
    """Emitted by retry_bulk each time one operation settles."""

    completed: int
    total: int
    index: int
    result: RetryResult[T]

    @property
    def value(self) -> T | None:
        return self.result.result if self.result.success else None


def compute_backoff_delay(
    attempt: int,
    base_delay_ms: float,
    max_delay_ms: float,
    jitter: bool,
    rand: Callable[[], float] = random.random,
) -> float:
    """Capped exponential backoff: min(base * 2^(attempt-1), max) + up to 10% jitter."""
    delay = min(base_delay_ms * (2 ** max(0, attempt - 1)), max_delay_ms)
    if jitter and delay > 0:
        delay += rand() * JITTER_RATIO * delay
    return delay


async def _sleep_ms(delay_ms: float) -> None:
    await asyncio.sleep(delay_ms / 1000.0)


class RetryManager:
    """Executes async operations with bounded, classified retries."""

    def __init__(
        self,
        sleep: Callable[[float], Awaitable[None]] = _sleep_ms,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self._sleep = sleep
        self._rand = rand

    async def retry(
        self,
        operation: Callable[[], Awaitable[T]],
        options: RetryOptions | None = None,
    ) -> RetryResult[T]:
        """Run ``operation`` until success, a terminal error, or budget exhaustion.

        Args:
            operation: Callable that creates a new awaitable each call.
            options: Retry budget and delays; defaults to RetryOptions().

        Returns:
            RetryResult with the value or the last error, the number of
            invocations actually made, and the total time slept.
        """
        opts = options or RetryOptions()
        total_delay = 0.0
        retries: list[RetryAttempt] = []
        last_error: BaseException | None = None
        attempts = 0

        for attempt in range(1, opts.max_retries + 2):
            attempts = attempt
            try:
                value = await operation()
            except Exception as exc:
                last_error = exc
            else:
                return RetryResult(
                    success=True,
                    attempts=attempt,
                    total_delay_ms=total_delay,
                    result=value,
                    retries=retries,
                )

            if attempt > opts.max_retries:
                logger.debug("giving up after %d attempt(s): %s", attempt, last_error)
                break

            info = failure_info_from_exception(last_error)
            classification = classify_failure(info)
            if not isinstance(classification, Retryable):
                logger.debug("terminal failure on attempt %d: %s", attempt, last_error)
                break

            delay = extract_retry_after_ms(info)
            source: DelaySource = "retry-after"
            if delay is None:
                delay = compute_backoff_delay(
                    attempt, opts.base_delay_ms, opts.max_delay_ms, opts.jitter, self._rand,
                )
                source = "backoff"

            record = RetryAttempt(
                attempt=attempt,
                error=last_error,
                delay_ms=delay,
                delay_source=source,
                reason=classification.reason,
            )
            retries.append(record)
            total_delay += delay

            logger.info(
                "attempt %d/%d failed (%s), retrying in %.0fms (%s)",
                attempt,
                opts.max_retries + 1,
                classification.reason.value,
                delay,
                source,
            )
            if opts.on_retry is not None:
                opts.on_retry(record)

            await self._sleep(delay)

        return RetryResult(
            success=False,
            attempts=attempts,
            total_delay_ms=total_delay,
            error=last_error,
            retries=retries,
        )

    async def retry_bulk(
        self,
        operations: Sequence[Callable[[], Awaitable[T]]],
        options: RetryOptions | None = None,
        *,
        concurrency: int = 1,
        on_progress: Callable[[BulkProgress[T]], None] | None = None,
        pause_between_batches_ms: float = 0.0,
        options_for: Callable[[int], RetryOptions] | None = None,
    ) -> list[RetryResult[T]]:
        """Retry many operations in sequential batches of ``concurrency``.

        Operations inside a batch run concurrently; the next batch starts
        only once every operation of the current batch has settled.
        Results keep submission order regardless of completion order.

        Args:
            operations: Coroutine factories to run.
            options: Shared retry options.
            concurrency: Batch size (values below 1 are treated as 1).
            on_progress: Called after each individual operation settles.
            pause_between_batches_ms: Pacing sleep between batches.
            options_for: Per-index options, overriding ``options``.
        """
        batch_size = max(1, concurrency)
        total = len(operations)
        results: list[RetryResult[T]] = []
        completed = 0

        async def run_one(index: int) -> RetryResult[T]:
            nonlocal completed
            opts = options_for(index) if options_for is not None else options
            result = await self.retry(operations[index], opts)
            completed += 1
            if on_progress is not None:
                on_progress(BulkProgress(completed=completed, total=total, index=index, result=result))
            return result

        for start in range(0, total, batch_size):
            indices = range(start, min(start + batch_size, total))
            batch_results = await asyncio.gather(*(run_one(i) for i in indices))
            results.extend(batch_results)

            if pause_between_batches_ms > 0 and start + batch_size < total:
                await self._sleep(pause_between_batches_ms)

        return results
