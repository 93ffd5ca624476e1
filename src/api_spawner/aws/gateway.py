"""ApiGatewayManager: create, list, and delete REST APIs across accounts.

Each configured account is reached through STS AssumeRole; the
resulting Session is cached for the manager's lifetime. boto3 is
blocking, so every AWS call runs in a worker thread via
asyncio.to_thread and the event loop stays free for other operations.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from api_spawner.aws.sessions import assume_role_session
from api_spawner.errors import (
    AccountNotFoundError,
    ApiGatewayNotFoundError,
    ApiSpawnerError,
    InvalidResponseError,
)
from api_spawner.models.config import AccountConfig, AppConfig
from api_spawner.models.gateway import ApiGatewayInfo, CreateApiRequest, TargetAccount, api_url
from api_spawner.planning import DEFAULT_REGION_CODES

if TYPE_CHECKING:
    from api_spawner.execution.rate_limiter import AdaptiveRateLimiter
    from api_spawner.execution.retry import RetryManager

logger = logging.getLogger(__name__)

SessionFactory = Callable[[AccountConfig], boto3.Session]


def _default_session_factory(account: AccountConfig) -> boto3.Session:
    return assume_role_session(account, account.session_name)


def _info_from_item(item: dict[str, Any], account: str, region: str) -> ApiGatewayInfo:
    return ApiGatewayInfo(
        id=item["id"],
        name=item["name"],
        description=item.get("description"),
        url=api_url(item["id"], region),
        created_date=item.get("createdDate") or datetime.now(timezone.utc),
        account=account,
        region=region,
    )


class ApiGatewayManager:
    """AWS API Gateway operations scoped to the accounts in an AppConfig.

    Accounts are addressed by their key in ``config.accounts`` (an alias
    for configured accounts, the account ID for bulk-run targets).
    """

    def __init__(
        self,
        config: AppConfig,
        session_factory: SessionFactory | None = None,
        retry_manager: RetryManager | None = None,
        rate_limiter: AdaptiveRateLimiter | None = None,
    ) -> None:
        self._config = config
        self._session_factory = session_factory or _default_session_factory
        self._retry_manager = retry_manager
        self._rate_limiter = rate_limiter
        self._sessions: dict[str, boto3.Session] = {}

    @classmethod
    def for_targets(
        cls,
        targets: Iterable[TargetAccount],
        session_name: str,
        **kwargs: Any,
    ) -> ApiGatewayManager:
        """Build a manager keyed by account ID for a bulk run."""
        accounts = {
            t.account_id: AccountConfig(
                account_id=t.account_id,
                role_arn=t.role_arn,
                external_id=t.external_id,
                session_name=session_name,
            )
            for t in targets
        }
        return cls(AppConfig(accounts=accounts), **kwargs)

    @property
    def accounts(self) -> list[str]:
        return list(self._config.accounts)

    def _session(self, account: str) -> boto3.Session:
        session = self._sessions.get(account)
        if session is not None:
            return session
        account_config = self._config.accounts.get(account)
        if account_config is None:
            raise AccountNotFoundError(account)
        session = self._session_factory(account_config)
        self._sessions[account] = session
        return session

    def _client(self, account: str, region: str) -> Any:
        return self._session(account).client("apigateway", region_name=region)

    async def create_api_gateway(self, request: CreateApiRequest) -> ApiGatewayInfo:
        """Create a REST API and return its description.

        Raises:
            InvalidResponseError: If AWS omits the new API's id or name.
            botocore.exceptions.ClientError: On AWS API errors.
        """

        def _create() -> dict[str, Any]:
            client = self._client(request.account, request.region)
            params: dict[str, Any] = {"name": request.name}
            if request.description:
                params["description"] = request.description
            return client.create_rest_api(**params)

        response = await asyncio.to_thread(_create)
        if not response.get("id") or not response.get("name"):
            raise InvalidResponseError("Failed to create API Gateway - invalid response")

        logger.info("created %s (%s) in %s/%s", response["name"], response["id"], request.account, request.region)
        return _info_from_item(response, request.account, request.region)

    def _list_region_sync(self, account: str, region: str) -> list[ApiGatewayInfo]:
        client = self._client(account, region)
        paginator = client.get_paginator("get_rest_apis")
        apis: list[ApiGatewayInfo] = []
        for page in paginator.paginate():
            for item in page.get("items", []):
                if item.get("id") and item.get("name"):
                    apis.append(_info_from_item(item, account, region))
        return apis

    async def _list_region(self, account: str, region: str) -> list[ApiGatewayInfo]:
        def operation():
            return asyncio.to_thread(self._list_region_sync, account, region)

        if self._retry_manager is None or self._rate_limiter is None:
            return await operation()

        options = self._rate_limiter.get_retry_options(account, region, "list")
        result = await self._retry_manager.retry(operation, options)
        if not result.success:
            assert result.error is not None
            raise result.error
        return result.result or []

    async def list_api_gateways(
        self,
        account: str | None = None,
        regions: Iterable[str] | None = None,
    ) -> list[ApiGatewayInfo]:
        """List REST APIs across accounts and regions.

        Failures for one account (credentials) or one region (API call)
        are logged and skipped so a single bad target does not hide the
        rest of the inventory.
        """
        accounts = [account] if account else self.accounts
        region_list = list(regions) if regions else list(DEFAULT_REGION_CODES)
        all_apis: list[ApiGatewayInfo] = []

        for acct in accounts:
            try:
                await asyncio.to_thread(self._session, acct)
            except (ClientError, BotoCoreError, ApiSpawnerError) as exc:
                logger.warning("failed to get credentials for account %s: %s", acct, exc)
                continue

            for region in region_list:
                try:
                    all_apis.extend(await self._list_region(acct, region))
                except (ClientError, BotoCoreError) as exc:
                    logger.warning("failed to list APIs in %s/%s: %s", acct, region, exc)

        return all_apis

    async def delete_api_gateway_direct(self, api: ApiGatewayInfo) -> None:
        """Delete an API whose account and region are already known."""

        def _delete() -> None:
            self._client(api.account, api.region).delete_rest_api(restApiId=api.id)

        await asyncio.to_thread(_delete)
        logger.info("deleted %s (%s) in %s/%s", api.name, api.id, api.account, api.region)

    async def delete_api_gateway(self, api_id: str) -> ApiGatewayInfo:
        """Find an API by ID across all accounts/regions and delete it.

        Raises:
            ApiGatewayNotFoundError: If no account/region has that API.
        """
        apis = await self.list_api_gateways()
        api = next((a for a in apis if a.id == api_id), None)
        if api is None:
            raise ApiGatewayNotFoundError(api_id)
        await self.delete_api_gateway_direct(api)
        return api
