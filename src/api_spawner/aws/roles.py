"""Discovery of assumable IAM roles in the caller's account.

Used by the bulk commands' discovery mode: list IAM roles whose name
contains a pattern, keep the ones whose trust policy allows
sts:AssumeRole, and optionally probe that the current credentials can
actually assume them.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any
from urllib.parse import unquote

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from api_spawner.aws.sessions import STS_REGION, assume_role_params
from api_spawner.errors import InvalidResponseError

logger = logging.getLogger(__name__)

PROBE_SESSION_NAME = "api-spawner-test-session"

_ROLE_ARN_RE = re.compile(r"arn:aws:iam::(\d+):role")


class DiscoveredRole(BaseModel):
    """An IAM role that the trust policy says can be assumed."""

    model_config = {"extra": "forbid"}

    role_arn: str
    role_name: str
    account_id: str
    description: str | None = None
    path: str = "/"


def extract_account_id(arn: str) -> str:
    """Account ID embedded in an IAM role ARN, or "" if the ARN is not a role."""
    match = _ROLE_ARN_RE.search(arn)
    return match.group(1) if match else ""


def _actions(statement: dict[str, Any]) -> list[str]:
    action = statement.get("Action")
    if isinstance(action, str):
        return [action]
    if isinstance(action, list):
        return [a for a in action if isinstance(a, str)]
    return []


def is_role_assumable(policy_document: Any) -> bool:
    """True if any trust-policy statement Allows sts:AssumeRole.

    Accepts the parsed dict boto3 returns, or a JSON string (optionally
    URL-encoded, as the raw IAM API returns it).
    """
    if not policy_document:
        return False

    policy = policy_document
    if isinstance(policy, str):
        try:
            policy = json.loads(unquote(policy))
        except ValueError:
            return False

    statements = policy.get("Statement") if isinstance(policy, dict) else None
    if isinstance(statements, dict):
        statements = [statements]
    if not isinstance(statements, list):
        return False

    return any(
        isinstance(s, dict)
        and s.get("Effect") == "Allow"
        and "sts:AssumeRole" in _actions(s)
        for s in statements
    )


class RoleDiscoveryService:
    """Find and probe assumable roles using the ambient AWS credentials."""

    def __init__(self, session: boto3.Session | None = None) -> None:
        self._session = session or boto3.Session()
        self._iam = self._session.client("iam", region_name=STS_REGION)
        self._sts = self._session.client("sts", region_name=STS_REGION)

    async def current_account_id(self) -> str:
        response = await asyncio.to_thread(self._sts.get_caller_identity)
        account = response.get("Account")
        if not account:
            raise InvalidResponseError("Could not determine current AWS account ID")
        return account

    def _discover_sync(self, pattern: str | None, max_roles: int) -> list[DiscoveredRole]:
        roles: list[DiscoveredRole] = []
        paginator = self._iam.get_paginator("list_roles")

        for page in paginator.paginate():
            for role in page.get("Roles", []):
                name = role.get("RoleName")
                arn = role.get("Arn")
                if not name or not arn:
                    continue
                if pattern and pattern not in name:
                    continue

                try:
                    details = self._iam.get_role(RoleName=name)
                except ClientError as exc:
                    logger.warning("could not get details for role %s: %s", name, exc)
                    continue

                document = details.get("Role", {}).get("AssumeRolePolicyDocument")
                if not is_role_assumable(document):
                    continue

                roles.append(
                    DiscoveredRole(
                        role_arn=arn,
                        role_name=name,
                        account_id=extract_account_id(arn),
                        description=role.get("Description"),
                        path=role.get("Path") or "/",
                    )
                )
                if len(roles) >= max_roles:
                    return roles
        return roles

    async def discover_roles(
        self,
        pattern: str | None = None,
        max_roles: int = 50,
    ) -> list[DiscoveredRole]:
        """List assumable roles whose name contains ``pattern``."""
        return await asyncio.to_thread(self._discover_sync, pattern, max_roles)

    async def can_assume_role(self, role_arn: str, external_id: str | None = None) -> bool:
        """Probe AssumeRole with the current credentials."""
        params = assume_role_params(role_arn, PROBE_SESSION_NAME, external_id)
        try:
            await asyncio.to_thread(lambda: self._sts.assume_role(**params))
        except (ClientError, BotoCoreError) as exc:
            logger.debug("cannot assume %s: %s", role_arn, exc)
            return False
        return True
