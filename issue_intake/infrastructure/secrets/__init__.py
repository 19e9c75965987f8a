"""
Secrets Infrastructure
======================

Resolves API credentials from AWS Secrets Manager, falling back to
environment settings when the secret store is unreachable (e.g. local
development without AWS credentials).

Credentials are resolved once at startup into an immutable ``Credentials``
object that is handed to each client constructor.
"""

from dataclasses import dataclass
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from issue_intake.config import settings
from issue_intake.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Credentials:
    """API credentials for the model provider and the issue tracker."""
    model_api_key: Optional[str] = None
    tracker_api_key: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.model_api_key and self.tracker_api_key)


class SecretsProvider:
    """
    Secrets Manager lookup with a per-process cache.

    Successful lookups are cached by secret id and never invalidated;
    failed lookups are not cached.
    """

    def __init__(self, client=None, enabled: Optional[bool] = None, region: Optional[str] = None):
        self._client = client
        self._enabled = settings.use_secrets_manager if enabled is None else enabled
        self._region = region or settings.aws_region
        self._cache: Dict[str, Optional[str]] = {}

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client("secretsmanager", region_name=self._region)
        return self._client

    def get_secret_value(self, secret_id: str) -> Optional[str]:
        """Return the secret string, or None when it cannot be read."""
        if secret_id in self._cache:
            return self._cache[secret_id]
        if not self._enabled:
            return None

        try:
            response = self._get_client().get_secret_value(SecretId=secret_id)
        except (ClientError, BotoCoreError) as e:
            logger.info(
                "Secret lookup failed, falling back to environment",
                extra={"lookup_id": secret_id, "error_type": type(e).__name__}
            )
            return None

        value = response.get("SecretString")
        value = value.strip() if value else None
        self._cache[secret_id] = value
        return value

    def get_credentials(self) -> Credentials:
        """Resolve model and tracker keys, preferring Secrets Manager over env."""
        credentials = Credentials(
            model_api_key=self.get_secret_value(settings.openai_secret_id) or settings.openai_api_key,
            tracker_api_key=self.get_secret_value(settings.linear_secret_id) or settings.linear_api_key,
        )
        logger.info(
            "Credentials resolved",
            extra={
                "model_key_present": bool(credentials.model_api_key),
                "tracker_key_present": bool(credentials.tracker_api_key)
            }
        )
        return credentials
