"""API Gateway data models.

ApiGatewayInfo describes one REST API as listed or created; the
request/target models describe work handed to the AWS layer.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


def api_url(api_id: str, region: str) -> str:
    return f"https://{api_id}.execute-api.{region}.amazonaws.com/stage"


class ApiGatewayInfo(BaseModel):
    """A REST API in a specific account and region."""

    model_config = {"extra": "forbid"}

    id: str
    name: str
    description: str | None = None
    url: str
    created_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    account: str
    region: str


class CreateApiRequest(BaseModel):
    """Parameters for creating a single REST API."""

    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1)
    region: str
    account: str
    description: str | None = None


class TargetAccount(BaseModel):
    """An account resolved for a bulk run, either configured or discovered."""

    model_config = {"extra": "forbid"}

    account_id: str
    role_arn: str
    external_id: str | None = None


class CreateTarget(BaseModel):
    """One planned API creation in a bulk-create run."""

    model_config = {"extra": "forbid"}

    account_id: str
    role_arn: str
    region: str
    external_id: str | None = None
    gateway_index: int = Field(ge=0)
