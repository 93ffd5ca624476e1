"""Application configuration models for api-spawner.

Captures config.yml fields: configured AWS accounts (alias -> role to
assume), default account/region, and retry defaults for bulk runs.
YAML keys are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_SESSION_NAME = "api-spawner-session"

_ACCOUNT_ID_RE = re.compile(r"^\d{12}$")


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AccountConfig(_CamelModel):
    """An AWS account reachable through STS AssumeRole."""

    account_id: str
    role_arn: str
    external_id: str | None = None
    session_name: str = DEFAULT_SESSION_NAME

    @field_validator("account_id")
    @classmethod
    def _check_account_id(cls, value: str) -> str:
        value = value.strip()
        if not _ACCOUNT_ID_RE.match(value):
            raise ValueError("Account ID must be 12 digits")
        return value

    @field_validator("role_arn")
    @classmethod
    def _check_role_arn(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith("arn:aws:iam::"):
            raise ValueError("Invalid Role ARN format")
        return value

    @field_validator("external_id")
    @classmethod
    def _blank_external_id(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class RetrySettings(_CamelModel):
    """Default retry bounds for bulk commands (CLI flags override these)."""

    max_retries: int = Field(default=5, ge=0, le=20)
    base_delay_ms: float = Field(default=1000.0, ge=0)
    max_delay_ms: float = Field(default=30000.0, ge=0)
    delete_batch_size: int = Field(default=2, ge=1)


class AppConfig(_CamelModel):
    """Top-level configuration loaded from ~/.api-spawner/config.yml."""

    accounts: dict[str, AccountConfig] = Field(default_factory=dict)
    default_region: str | None = None
    default_account: str | None = None
    retry: RetrySettings = Field(default_factory=RetrySettings)

    def to_yaml_dict(self) -> dict:
        """Plain dict for YAML serialization, with camelCase keys and no nulls."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
