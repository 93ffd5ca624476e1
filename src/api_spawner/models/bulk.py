"""Bulk run result models.

These models capture the per-item outcome of a bulk create or delete
run and the aggregate summary rendered by the CLI (or emitted as JSON).
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from api_spawner.models.gateway import ApiGatewayInfo


class BulkItemOutcome(BaseModel):
    """Result of one item in a bulk run."""

    model_config = {"extra": "forbid"}

    label: str
    account: str
    region: str
    success: bool
    api: ApiGatewayInfo | None = None
    error_message: str | None = None
    error_type: str | None = None
    attempts: int = 1
    total_delay_ms: float = 0.0


class RateLimitSummary(BaseModel):
    model_config = {"extra": "forbid"}

    total_rate_limits: int = 0
    average_delay_ms: float = 0.0


class BulkSummary(BaseModel):
    """Aggregate result of a bulk create or delete run."""

    model_config = {"extra": "forbid"}

    operation: str
    parallel: bool
    outcomes: list[BulkItemOutcome] = Field(default_factory=list)
    rate_limits: RateLimitSummary = Field(default_factory=RateLimitSummary)

    @property
    def succeeded(self) -> list[BulkItemOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> list[BulkItemOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def total_retries(self) -> int:
        return sum(max(0, o.attempts - 1) for o in self.outcomes)
