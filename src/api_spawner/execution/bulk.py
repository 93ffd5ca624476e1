"""BulkRunner: bulk create/delete execution over the retry core.

Turns a list of planned targets (or APIs to delete) into coroutine
factories and runs them through RetryManager.retry_bulk. Sequential
mode runs one operation per batch; parallel mode runs ``batch_size``
at a time. Batches are paced with the rate limiter's fixed operation
delay, and every operation gets retry options tuned by the limiter for
its account/region.

Progress is reported as typed events (ItemRetrying, ItemCompleted) to a
single optional sink, so the CLI can drive a progress bar and tests can
simply collect them in a list.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from api_spawner.aws.gateway import ApiGatewayManager
from api_spawner.execution.rate_limiter import (
    AdaptiveRateLimiter,
    OperationKind,
    RetryOverrides,
)
from api_spawner.execution.retry import (
    BulkProgress,
    RetryAttempt,
    RetryManager,
    RetryOptions,
    RetryResult,
)
from api_spawner.models.bulk import BulkItemOutcome, BulkSummary, RateLimitSummary
from api_spawner.models.gateway import ApiGatewayInfo, CreateApiRequest, CreateTarget
from api_spawner.planning import gateway_name

logger = logging.getLogger(__name__)

DEFAULT_DELETE_BATCH_SIZE = 2


@dataclass(frozen=True)
class ItemRetrying:
    """An item failed transiently and will be retried after ``attempt.delay_ms``."""

    index: int
    label: str
    attempt: RetryAttempt
    max_attempts: int


@dataclass(frozen=True)
class ItemCompleted:
    """An item settled (success or exhausted failure)."""

    completed: int
    total: int
    outcome: BulkItemOutcome


BulkEvent = ItemRetrying | ItemCompleted


@dataclass(frozen=True)
class _WorkItem:
    label: str
    account: str
    region: str
    operation: Callable[[], Awaitable[Any]]


class BulkRunner:
    """Runs bulk create/delete work with adaptive retries and pacing."""

    def __init__(
        self,
        manager: ApiGatewayManager,
        rate_limiter: AdaptiveRateLimiter,
        retry_manager: RetryManager | None = None,
        *,
        parallel: bool = False,
        batch_size: int | None = None,
        overrides: RetryOverrides | None = None,
        pace: bool = True,
        on_event: Callable[[BulkEvent], None] | None = None,
    ) -> None:
        self._manager = manager
        self._rate_limiter = rate_limiter
        self._retry_manager = retry_manager or RetryManager()
        self._parallel = parallel
        self._batch_size = batch_size
        self._overrides = overrides
        self._pace = pace
        self._on_event = on_event

    def _emit(self, event: BulkEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    def _concurrency(self, kind: OperationKind, total: int) -> int:
        if not self._parallel:
            return 1
        if self._batch_size is not None:
            return max(1, self._batch_size)
        if kind is OperationKind.delete:
            return DEFAULT_DELETE_BATCH_SIZE
        return max(1, total)

    async def create_all(
        self,
        targets: Sequence[CreateTarget],
        base_name: str,
        description: str | None = None,
    ) -> BulkSummary:
        """Create one API per target. Names follow gateway_name()."""
        items = []
        for target in targets:
            request = CreateApiRequest(
                name=gateway_name(base_name, target),
                region=target.region,
                account=target.account_id,
                description=description or None,
            )
            items.append(
                _WorkItem(
                    label=request.name,
                    account=target.account_id,
                    region=target.region,
                    operation=lambda request=request: self._manager.create_api_gateway(request),
                )
            )
        return await self._run(OperationKind.create, items)

    async def delete_all(self, apis: Sequence[ApiGatewayInfo]) -> BulkSummary:
        """Delete each API in its own account/region."""
        items = [
            _WorkItem(
                label=api.name,
                account=api.account,
                region=api.region,
                operation=lambda api=api: self._manager.delete_api_gateway_direct(api),
            )
            for api in apis
        ]
        return await self._run(OperationKind.delete, items)

    def _options_for(self, kind: OperationKind, items: Sequence[_WorkItem]) -> Callable[[int], RetryOptions]:
        def options_for(index: int) -> RetryOptions:
            item = items[index]
            if kind is OperationKind.delete:
                options = self._rate_limiter.get_delete_retry_options(
                    item.account, item.region, self._overrides,
                )
            else:
                options = self._rate_limiter.get_retry_options(
                    item.account, item.region, kind, self._overrides,
                )
            max_attempts = options.max_retries + 1

            def on_retry(attempt: RetryAttempt) -> None:
                self._emit(ItemRetrying(index, item.label, attempt, max_attempts))

            return options.with_observer(on_retry)

        return options_for

    @staticmethod
    def _outcome(item: _WorkItem, result: RetryResult[Any]) -> BulkItemOutcome:
        api = result.result if isinstance(result.result, ApiGatewayInfo) else None
        error = result.error
        return BulkItemOutcome(
            label=item.label,
            account=item.account,
            region=item.region,
            success=result.success,
            api=api,
            error_message=None if error is None else (str(error) or type(error).__name__),
            error_type=None if error is None else type(error).__name__,
            attempts=result.attempts,
            total_delay_ms=result.total_delay_ms,
        )

    async def _run(self, kind: OperationKind, items: Sequence[_WorkItem]) -> BulkSummary:
        total = len(items)
        concurrency = self._concurrency(kind, total)
        pause = self._rate_limiter.get_operation_delay(kind) if self._pace else 0.0
        logger.info(
            "bulk %s of %d item(s), concurrency=%d, pause=%.0fms",
            kind.value, total, concurrency, pause,
        )

        def on_progress(progress: BulkProgress[Any]) -> None:
            outcome = self._outcome(items[progress.index], progress.result)
            if not outcome.success:
                logger.warning("%s %s failed: %s", kind.value, outcome.label, outcome.error_message)
            self._emit(ItemCompleted(progress.completed, progress.total, outcome))

        results = await self._retry_manager.retry_bulk(
            [item.operation for item in items],
            concurrency=concurrency,
            on_progress=on_progress,
            pause_between_batches_ms=pause,
            options_for=self._options_for(kind, items),
        )

        stats = self._rate_limiter.get_stats()
        summary = BulkSummary(
            operation=kind.value,
            parallel=self._parallel,
            outcomes=[self._outcome(item, result) for item, result in zip(items, results)],
            rate_limits=RateLimitSummary(
                total_rate_limits=stats.total_rate_limits,
                average_delay_ms=stats.average_delay_ms,
            ),
        )
        # History is scoped to a single bulk run
        self._rate_limiter.reset_history()
        return summary
