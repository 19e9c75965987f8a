"""Unit tests for credential resolution."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from issue_intake.infrastructure.secrets import Credentials, SecretsProvider


def _secrets_client(values: dict) -> MagicMock:
    client = MagicMock()

    def get_secret_value(SecretId):
        if SecretId not in values:
            raise ClientError({"Error": {"Code": "ResourceNotFoundException"}}, "GetSecretValue")
        return {"SecretString": values[SecretId]}

    client.get_secret_value.side_effect = get_secret_value
    return client


class TestSecretsProvider:
    """Test suite for Secrets Manager lookup with env fallback."""

    @pytest.mark.unit
    def test_prefers_secrets_manager(self):
        client = _secrets_client({"OPENAI_API_KEY": "sk-secret\n", "LINEAR_API_KEY": "lin-secret"})

        with patch("issue_intake.infrastructure.secrets.settings") as settings:
            settings.openai_secret_id = "OPENAI_API_KEY"
            settings.linear_secret_id = "LINEAR_API_KEY"
            settings.openai_api_key = "sk-env"
            settings.linear_api_key = "lin-env"
            credentials = SecretsProvider(client=client, enabled=True).get_credentials()

        assert credentials == Credentials(model_api_key="sk-secret", tracker_api_key="lin-secret")
        assert credentials.complete

    @pytest.mark.unit
    def test_falls_back_to_environment(self):
        client = _secrets_client({"LINEAR_API_KEY": "lin-secret"})

        with patch("issue_intake.infrastructure.secrets.settings") as settings:
            settings.openai_secret_id = "OPENAI_API_KEY"
            settings.linear_secret_id = "LINEAR_API_KEY"
            settings.openai_api_key = "sk-env"
            settings.linear_api_key = None
            credentials = SecretsProvider(client=client, enabled=True).get_credentials()

        assert credentials.model_api_key == "sk-env"
        assert credentials.tracker_api_key == "lin-secret"

    @pytest.mark.unit
    def test_disabled_never_calls_aws(self):
        client = MagicMock()
        provider = SecretsProvider(client=client, enabled=False)

        assert provider.get_secret_value("OPENAI_API_KEY") is None
        client.get_secret_value.assert_not_called()

    @pytest.mark.unit
    def test_successful_lookups_are_cached(self):
        client = _secrets_client({"A": "1"})
        provider = SecretsProvider(client=client, enabled=True)

        assert provider.get_secret_value("A") == "1"
        assert provider.get_secret_value("A") == "1"
        assert client.get_secret_value.call_count == 1

    @pytest.mark.unit
    def test_failed_lookups_are_retried(self):
        client = _secrets_client({})
        provider = SecretsProvider(client=client, enabled=True)

        assert provider.get_secret_value("B") is None
        assert provider.get_secret_value("B") is None
        assert client.get_secret_value.call_count == 2

    @pytest.mark.unit
    def test_incomplete_credentials(self):
        assert not Credentials(model_api_key="sk").complete
