"""Tests for api_spawner.cli.output - Rich rendering layer."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from io import StringIO

from rich.console import Console

from api_spawner.cli.output import (
    BulkProgressReporter,
    create_progress,
    format_retry_status,
    output_json,
    render_accounts,
    render_api_groups,
    render_bulk_summary,
)
from api_spawner.execution.bulk import ItemCompleted, ItemRetrying
from api_spawner.execution.failures import RetryReason
from api_spawner.execution.retry import RetryAttempt
from api_spawner.models.bulk import BulkItemOutcome, BulkSummary, RateLimitSummary
from api_spawner.models.config import AccountConfig, AppConfig
from api_spawner.models.gateway import ApiGatewayInfo


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _console() -> tuple[Console, StringIO]:
    buf = StringIO()
    return Console(file=buf, width=160, force_terminal=False), buf


def _api(name: str, region: str = "us-east-1") -> ApiGatewayInfo:
    return ApiGatewayInfo(
        id=f"{name}-id",
        name=name,
        url=f"https://{name}-id.execute-api.{region}.amazonaws.com/stage",
        created_date=datetime(2024, 3, 9, tzinfo=timezone.utc),
        account="111111111111",
        region=region,
    )


def _retrying(source: str, delay_ms: float) -> ItemRetrying:
    attempt = RetryAttempt(
        attempt=2, error=Exception("x"), delay_ms=delay_ms, delay_source=source, reason=RetryReason.rate_limited,
    )
    return ItemRetrying(index=0, label="bulk-1", attempt=attempt, max_attempts=11)


def _summary(failed: bool = False, rate_limits: int = 0) -> BulkSummary:
    outcomes = [
        BulkItemOutcome(label="bulk-1", account="111111111111", region="us-east-1", success=True, api=_api("bulk-1")),
    ]
    if failed:
        outcomes.append(
            BulkItemOutcome(
                label="bulk-2", account="111111111111", region="us-east-1", success=False,
                error_message="Access denied", error_type="ClientError", attempts=3,
            )
        )
    return BulkSummary(
        operation="delete",
        parallel=False,
        outcomes=outcomes,
        rate_limits=RateLimitSummary(total_rate_limits=rate_limits, average_delay_ms=3600.0 if rate_limits else 0.0),
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestRetryStatus:
    """Test retry status lines."""

    def test_retry_after_source(self):
        assert format_retry_status(_retrying("retry-after", 5000)) == (
            "Retrying bulk-1 (attempt 2/11) - Retry-After: 5s"
        )

    def test_backoff_source(self):
        assert format_retry_status(_retrying("backoff", 2400)).endswith("Backoff: 2s")


class TestProgress:
    """Test progress handling outside a terminal."""

    def test_no_progress_bar_when_not_terminal(self):
        console, _ = _console()
        assert create_progress(console) is None

    def test_reporter_prints_plain_lines(self):
        console, buf = _console()
        outcome = BulkItemOutcome(label="bulk-1", account="a", region="r", success=True)
        with BulkProgressReporter(console, "Deleting", 1, "Deleted") as reporter:
            reporter(_retrying("backoff", 1000))
            reporter(ItemCompleted(completed=1, total=1, outcome=outcome))
        output = buf.getvalue()
        assert "Retrying bulk-1" in output
        assert "Deleted bulk-1 (1/1)" in output


class TestRenderers:
    """Test listings, tables and summaries."""

    def test_api_groups(self):
        console, buf = _console()
        render_api_groups([_api("a"), _api("b", "eu-west-1")], console)
        output = buf.getvalue()
        assert "111111111111 (us-east-1)" in output
        assert "111111111111 (eu-west-1)" in output
        assert "Created: 2024-03-09" in output

    def test_accounts_table(self):
        console, buf = _console()
        config = AppConfig(
            accounts={"prod": AccountConfig(account_id="123456789012", role_arn="arn:aws:iam::123456789012:role/r")},
        )
        render_accounts(config, console)
        output = buf.getvalue()
        assert "prod" in output
        assert "123456789012" in output

    def test_summary_success_only(self):
        console, buf = _console()
        render_bulk_summary(_summary(), console)
        output = buf.getvalue()
        assert "Successfully deleted 1" in output
        assert "1 deleted, 0 failed" in output
        assert "Rate limits" not in output

    def test_summary_with_failures_and_rate_limits(self):
        console, buf = _console()
        render_bulk_summary(_summary(failed=True, rate_limits=2), console)
        output = buf.getvalue()
        assert "Failed: 1" in output
        assert "Access denied" in output
        assert "Rate limits hit" in output
        assert "4s" in output


class TestOutputJson:
    """Test JSON output to stdout."""

    def test_model(self, capsys):
        output_json(_summary())
        data = json.loads(capsys.readouterr().out)
        assert data["operation"] == "delete"
        assert data["outcomes"][0]["api"]["id"] == "bulk-1-id"

    def test_list_of_models(self, capsys):
        output_json([_api("a"), _api("b")])
        data = json.loads(capsys.readouterr().out)
        assert [d["name"] for d in data] == ["a", "b"]
        assert data[0]["created_date"].startswith("2024-03-09")
