"""Exception hierarchy for api-spawner.

AWS SDK errors are not wrapped: they flow through the retry core
untouched so callers can inspect status codes and error codes.
These types cover failures owned by this package.
"""

from __future__ import annotations


class ApiSpawnerError(Exception):
    """Base class for errors raised by api-spawner itself."""


class ConfigError(ApiSpawnerError):
    """Raised when the configuration file cannot be read or validated."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


class AccountNotFoundError(ApiSpawnerError):
    """Raised when an account alias is not present in the configuration."""

    def __init__(self, alias: str) -> None:
        self.alias = alias
        super().__init__(f'Account "{alias}" not found in configuration')


class RoleAssumptionError(ApiSpawnerError):
    """Raised when STS AssumeRole returns no usable credentials."""


class ApiGatewayNotFoundError(ApiSpawnerError):
    """Raised when an API Gateway ID cannot be located in any account/region."""

    def __init__(self, api_id: str) -> None:
        self.api_id = api_id
        super().__init__(f'API Gateway with ID "{api_id}" not found')


class InvalidResponseError(ApiSpawnerError):
    """Raised when an AWS response lacks fields the caller depends on."""
