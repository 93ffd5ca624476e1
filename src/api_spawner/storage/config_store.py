"""YAML file storage for the api-spawner configuration.

Stores AppConfig at ~/.api-spawner/config.yml (or under the directory
named by API_SPAWNER_HOME). Writes are atomic (write to .tmp, then
rename) so an interrupted save never leaves a truncated file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from api_spawner.errors import AccountNotFoundError, ConfigError
from api_spawner.models.config import AccountConfig, AppConfig

logger = logging.getLogger(__name__)

HOME_ENV = "API_SPAWNER_HOME"
CONFIG_DIRNAME = ".api-spawner"
CONFIG_FILENAME = "config.yml"


def default_config_dir() -> Path:
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIRNAME


class ConfigStore:
    """Load and persist AppConfig as YAML.

    File layout:
        ~/.api-spawner/
            config.yml
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        self.config_dir = config_dir or default_config_dir()
        self.config_path = self.config_dir / CONFIG_FILENAME

    def load(self) -> AppConfig:
        """Load AppConfig. Returns defaults if the file does not exist.

        Raises:
            ConfigError: If the file is not valid YAML or fails validation.
        """
        if not self.config_path.exists():
            return AppConfig()

        try:
            raw = yaml.safe_load(self.config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(str(self.config_path), f"invalid YAML: {exc}") from exc

        if raw is None:
            return AppConfig()
        if not isinstance(raw, dict):
            raise ConfigError(str(self.config_path), "top level must be a mapping")

        try:
            return AppConfig.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(str(self.config_path), str(exc)) from exc

    def save(self, config: AppConfig) -> Path:
        """Write config atomically and return the file path."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        content = yaml.safe_dump(
            config.to_yaml_dict(),
            indent=2,
            width=80,
            sort_keys=False,
        )
        tmp_path = self.config_path.with_suffix(".yml.tmp")
        tmp_path.write_text(content, encoding="utf-8")
        tmp_path.replace(self.config_path)
        logger.debug("saved configuration to %s", self.config_path)
        return self.config_path

    def get_account(self, alias: str) -> AccountConfig:
        config = self.load()
        try:
            return config.accounts[alias]
        except KeyError:
            raise AccountNotFoundError(alias) from None

    def list_accounts(self) -> list[str]:
        return list(self.load().accounts)

    def upsert_account(self, alias: str, account: AccountConfig) -> AppConfig:
        """Add or replace an account under ``alias`` and save."""
        config = self.load()
        config.accounts[alias] = account
        self.save(config)
        return config

    def remove_account(self, alias: str) -> bool:
        """Remove ``alias`` if present. Returns True when something was removed."""
        config = self.load()
        if alias not in config.accounts:
            return False
        del config.accounts[alias]
        self.save(config)
        return True
