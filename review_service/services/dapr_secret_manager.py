"""
Dapr Secret Management Utility

Reads secrets from a Dapr secret store when DAPR_ENABLED is set and falls back
to the loaded settings (environment variables / .env) otherwise.
"""

import os
from typing import Any, Dict, Optional

from dapr.clients import DaprClient

from review_service.core.config import Config, config as default_config
from review_service.core.logger import logger


class DaprSecretManager:
    """Simple secret manager that tries Dapr first, falls back to env vars."""

    def __init__(self, settings: Config = None):
        self.settings = settings or default_config
        self.dapr_enabled = self.settings.dapr_enabled
        self.secret_store_name = self.settings.dapr_secret_store

    def get_secret(self, secret_name: str) -> Optional[str]:
        """Get a secret, trying Dapr first, then environment variables."""
        if not self.dapr_enabled:
            return os.getenv(secret_name)

        try:
            with DaprClient() as client:
                response = client.get_secret(
                    store_name=self.secret_store_name,
                    key=secret_name
                )
                secret = response.secret
                if hasattr(secret, 'get'):
                    value = secret.get(secret_name)
                    if value is not None:
                        return str(value)
                    if secret:
                        return str(next(iter(secret.values())))
                elif secret:
                    return str(secret)
                return None
        except Exception as e:
            logger.warning(
                f"Failed to get secret '{secret_name}' from Dapr",
                error=e,
                metadata={"secretStore": self.secret_store_name},
            )

        return os.getenv(secret_name)


def get_database_config(settings: Config = None) -> Dict[str, Any]:
    """MongoDB connection settings, with secrets overriding the loaded config."""
    settings = settings or default_config
    secrets = DaprSecretManager(settings)

    return {
        'uri': secrets.get_secret('MONGODB_URI') or settings.mongodb_uri,
        'host': secrets.get_secret('MONGODB_HOST') or settings.mongodb_host,
        'port': int(secrets.get_secret('MONGODB_PORT') or settings.mongodb_port),
        'username': secrets.get_secret('MONGODB_USERNAME') or settings.mongodb_username,
        'password': secrets.get_secret('MONGODB_PASSWORD') or settings.mongodb_password,
        'database': secrets.get_secret('MONGODB_DATABASE') or settings.mongodb_database,
        'auth_source': secrets.get_secret('MONGODB_AUTH_SOURCE') or settings.mongodb_auth_source,
    }


def get_translation_config(settings: Config = None) -> Dict[str, Any]:
    settings = settings or default_config
    secrets = DaprSecretManager(settings)

    return {
        'api_key': secrets.get_secret('GOOGLE_TRANSLATE_API_KEY') or settings.google_translate_api_key,
        'endpoint': settings.google_translate_endpoint,
        'timeout': settings.translation_timeout,
    }
