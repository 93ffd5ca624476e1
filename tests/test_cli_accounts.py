"""Tests for the api-spawner configure, list-accounts and version commands."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from api_spawner import __version__
from api_spawner.cli.main import app
from api_spawner.models.config import AccountConfig
from api_spawner.storage.config_store import HOME_ENV, ConfigStore

runner = CliRunner()

ROLE_ARN = "arn:aws:iam::123456789012:role/ApiGatewayRole"


@pytest.fixture
def store(tmp_path, monkeypatch) -> ConfigStore:
    monkeypatch.setenv(HOME_ENV, str(tmp_path))
    return ConfigStore(tmp_path)


class TestConfigureCommand:
    """Tests for api-spawner configure."""

    def test_configure_with_flags(self, store):
        result = runner.invoke(
            app,
            [
                "configure", "--alias", "prod", "--account-id", "123456789012",
                "--role-arn", ROLE_ARN, "--external-id", "ext-1", "--session-name", "s1",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "configured successfully" in result.output
        account = store.get_account("prod")
        assert account.external_id == "ext-1"
        assert account.session_name == "s1"

    def test_configure_reprompts_invalid_account_id(self, store):
        result = runner.invoke(
            app,
            ["configure", "--alias", "prod", "--account-id", "42", "--role-arn", ROLE_ARN],
            input="\n\n123456789012\n",
        )
        assert result.exit_code == 0, result.output
        assert "12 digits" in result.output
        assert store.get_account("prod").account_id == "123456789012"

    def test_configure_interactive(self, store):
        result = runner.invoke(
            app,
            ["configure"],
            input=f"dev\n210987654321\n{ROLE_ARN}\n\n\nn\n",
        )
        assert result.exit_code == 0, result.output
        assert store.list_accounts() == ["dev"]
        assert store.get_account("dev").session_name == "api-spawner-session"

    def test_remove(self, store):
        store.upsert_account("prod", AccountConfig(account_id="123456789012", role_arn=ROLE_ARN))
        result = runner.invoke(app, ["configure", "--remove", "prod"])
        assert result.exit_code == 0
        assert "removed" in result.output
        assert store.list_accounts() == []

    def test_broken_config_exits_one(self, store):
        store.config_path.write_text("accounts: [oops\n")
        result = runner.invoke(app, ["configure", "--remove", "prod"])
        assert result.exit_code == 1
        assert "Configuration error" in result.output


class TestListAccountsCommand:
    """Tests for api-spawner list-accounts."""

    def test_no_accounts(self, store):
        result = runner.invoke(app, ["list-accounts"])
        assert result.exit_code == 0
        assert "No configured accounts" in result.output

    def test_lists_accounts(self, store):
        store.upsert_account("prod", AccountConfig(account_id="123456789012", role_arn=ROLE_ARN))
        result = runner.invoke(app, ["list-accounts"])
        assert result.exit_code == 0
        assert "prod" in result.output
        assert "Total: 1 account(s)" in result.output


class TestVersion:
    """Tests for version reporting."""

    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"api-spawner {__version__}" in result.output

    def test_version_command_reads_build_env(self, monkeypatch):
        monkeypatch.setenv("GIT_COMMIT", "abc1234")
        monkeypatch.setenv("BUILD_TIME", "2024-06-01T00:00:00Z")
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "abc1234" in result.output
        assert "production" in result.output

    def test_version_command_development(self, monkeypatch):
        monkeypatch.delenv("GIT_COMMIT", raising=False)
        result = runner.invoke(app, ["version"])
        assert "development" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "bulk-delete" in result.output
