"""Secret access for the draft pipeline functions.

Two secrets are read at runtime:

    OPENAI_API_KEY          scope enhancement LLM
    ONEBUILD_EXTERNAL_KEY   1build regional pricing gateway

Deployed functions read them from Google Cloud Secret Manager; the Firebase
emulator reads them from the environment (or a local .env). A Secret Manager
failure falls back to the environment so a missing binding degrades to an
unconfigured provider rather than a crash.
"""

import os
import logging
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

OPENAI_API_KEY_SECRET = "OPENAI_API_KEY"
ONEBUILD_API_KEY_SECRET = "ONEBUILD_EXTERNAL_KEY"


def is_emulator_mode() -> bool:
    """True when running under the Functions or Firestore emulator."""
    return (
        os.environ.get("FUNCTIONS_EMULATOR") == "true"
        or os.environ.get("FIRESTORE_EMULATOR_HOST") is not None
    )


def _project_id() -> Optional[str]:
    return os.environ.get("GCLOUD_PROJECT") or os.environ.get("GOOGLE_CLOUD_PROJECT")


def _read_secret_manager(secret_id: str) -> str:
    from google.cloud import secretmanager

    client = secretmanager.SecretManagerServiceClient()
    version = f"projects/{_project_id()}/secrets/{secret_id}/versions/latest"
    response = client.access_secret_version(request={"name": version})
    return response.payload.data.decode("UTF-8")


def get_secret(secret_id: str) -> Optional[str]:
    """Read a secret by name.

    Args:
        secret_id: Secret name, e.g. ``ONEBUILD_EXTERNAL_KEY``.

    Returns:
        The secret value, or None when it is not available anywhere.
    """
    if is_emulator_mode():
        value = os.environ.get(secret_id)
        if not value:
            logger.warning("Secret %s is not set in the emulator environment", secret_id)
        return value

    try:
        return _read_secret_manager(secret_id)
    except Exception as e:
        logger.warning("Secret Manager lookup for %s failed, using environment: %s", secret_id, e)
        return os.environ.get(secret_id)


@lru_cache(maxsize=1)
def get_openai_api_key() -> Optional[str]:
    return get_secret(OPENAI_API_KEY_SECRET)


@lru_cache(maxsize=1)
def get_onebuild_api_key() -> Optional[str]:
    return get_secret(ONEBUILD_API_KEY_SECRET)


def clear_secret_cache() -> None:
    """Forget cached secret values (rotation, tests)."""
    get_openai_api_key.cache_clear()
    get_onebuild_api_key.cache_clear()
