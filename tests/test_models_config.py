"""Tests for api_spawner.models.config - account and app configuration models."""

import pytest
from pydantic import ValidationError

from api_spawner.models.config import AccountConfig, AppConfig, RetrySettings

ROLE_ARN = "arn:aws:iam::123456789012:role/ApiGatewayRole"


class TestAccountConfig:
    """Tests for AccountConfig validation."""

    def test_valid_account(self):
        account = AccountConfig(account_id="123456789012", role_arn=ROLE_ARN)
        assert account.session_name == "api-spawner-session"
        assert account.external_id is None

    def test_account_id_must_be_12_digits(self):
        with pytest.raises(ValidationError, match="12 digits"):
            AccountConfig(account_id="12345", role_arn=ROLE_ARN)

    def test_account_id_rejects_letters(self):
        with pytest.raises(ValidationError):
            AccountConfig(account_id="12345678901a", role_arn=ROLE_ARN)

    def test_role_arn_prefix(self):
        with pytest.raises(ValidationError, match="Role ARN"):
            AccountConfig(account_id="123456789012", role_arn="arn:aws:s3:::bucket")

    def test_blank_external_id_becomes_none(self):
        account = AccountConfig(account_id="123456789012", role_arn=ROLE_ARN, external_id="  ")
        assert account.external_id is None

    def test_camel_case_aliases(self):
        account = AccountConfig.model_validate(
            {"accountId": "123456789012", "roleArn": ROLE_ARN, "externalId": "ext", "sessionName": "s"}
        )
        assert account.external_id == "ext"
        assert account.session_name == "s"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            AccountConfig.model_validate({"accountId": "123456789012", "roleArn": ROLE_ARN, "region": "x"})


class TestAppConfig:
    """Tests for AppConfig defaults and serialization."""

    def test_defaults(self):
        config = AppConfig()
        assert config.accounts == {}
        assert config.default_region is None
        assert config.retry == RetrySettings()
        assert config.retry.delete_batch_size == 2

    def test_to_yaml_dict_uses_camel_case(self):
        config = AppConfig(
            accounts={"prod": AccountConfig(account_id="123456789012", role_arn=ROLE_ARN)},
            default_region="us-east-1",
        )
        data = config.to_yaml_dict()
        assert data["defaultRegion"] == "us-east-1"
        assert data["accounts"]["prod"]["accountId"] == "123456789012"
        assert "externalId" not in data["accounts"]["prod"]
        assert "defaultAccount" not in data

    def test_retry_bounds(self):
        with pytest.raises(ValidationError):
            RetrySettings(max_retries=50)
        with pytest.raises(ValidationError):
            RetrySettings(delete_batch_size=0)
