"""AWS bindings - STS sessions, API Gateway manager, and IAM role discovery."""

from api_spawner.aws.gateway import ApiGatewayManager
from api_spawner.aws.roles import DiscoveredRole, RoleDiscoveryService
from api_spawner.aws.sessions import assume_role_session

__all__ = [
    "ApiGatewayManager",
    "DiscoveredRole",
    "RoleDiscoveryService",
    "assume_role_session",
]
