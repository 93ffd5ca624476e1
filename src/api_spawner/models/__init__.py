"""api-spawner data models - re-exports all public model classes."""

from api_spawner.models.bulk import BulkItemOutcome, BulkSummary, RateLimitSummary
from api_spawner.models.config import AccountConfig, AppConfig, RetrySettings
from api_spawner.models.gateway import ApiGatewayInfo, CreateApiRequest, CreateTarget, TargetAccount

__all__ = [
    "AccountConfig",
    "ApiGatewayInfo",
    "AppConfig",
    "BulkItemOutcome",
    "BulkSummary",
    "CreateApiRequest",
    "CreateTarget",
    "RateLimitSummary",
    "RetrySettings",
    "TargetAccount",
]
