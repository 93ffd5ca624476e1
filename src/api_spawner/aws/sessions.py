"""STS role assumption for cross-account access.

Turns an account entry (role ARN, optional external ID, session name)
into a boto3 Session backed by temporary credentials.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import boto3

from api_spawner.errors import RoleAssumptionError

logger = logging.getLogger(__name__)

STS_REGION = "us-east-1"


class AssumableAccount(Protocol):
    role_arn: str
    external_id: str | None


def assume_role_params(
    role_arn: str,
    session_name: str,
    external_id: str | None = None,
) -> dict[str, Any]:
    params: dict[str, Any] = {"RoleArn": role_arn, "RoleSessionName": session_name}
    if external_id:
        params["ExternalId"] = external_id
    return params


def assume_role_session(
    account: AssumableAccount,
    session_name: str,
    sts_client: Any | None = None,
) -> boto3.Session:
    """Assume the account's role and return a Session with temporary credentials.

    Args:
        account: Anything exposing ``role_arn`` and ``external_id``.
        session_name: RoleSessionName recorded in CloudTrail.
        sts_client: Optional pre-built STS client (default: us-east-1 client
            from the ambient credential chain).

    Raises:
        RoleAssumptionError: If STS returns no credentials.
        botocore.exceptions.ClientError: On STS API errors.
    """
    sts = sts_client or boto3.client("sts", region_name=STS_REGION)
    response = sts.assume_role(
        **assume_role_params(account.role_arn, session_name, account.external_id)
    )

    credentials = response.get("Credentials")
    if not credentials:
        raise RoleAssumptionError(
            f"Failed to assume role {account.role_arn} - no credentials returned"
        )

    logger.debug("assumed %s as %s", account.role_arn, session_name)
    return boto3.Session(
        aws_access_key_id=credentials["AccessKeyId"],
        aws_secret_access_key=credentials["SecretAccessKey"],
        aws_session_token=credentials["SessionToken"],
    )
