"""Draft pipeline configuration.

This package contains:
- settings: Environment variables and configuration
- secrets: Secret access (Secret Manager, env in the emulator)
- errors: Custom exceptions and error codes
"""

from config.settings import settings
from config.errors import DraftPipelineError
from config.secrets import get_secret, get_openai_api_key, get_onebuild_api_key

__all__ = [
    "settings",
    "DraftPipelineError",
    "get_secret",
    "get_openai_api_key",
    "get_onebuild_api_key",
]
