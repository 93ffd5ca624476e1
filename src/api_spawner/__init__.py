"""api-spawner: create, list, and delete AWS API Gateways across accounts and regions."""

__version__ = "1.0.0"
