"""Draft pipeline settings.

Non-secret configuration comes from the environment (a local .env is loaded
for the emulator). API keys live in config.secrets.
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() == "true"


@dataclass
class Settings:
    """Settings read once per function instance."""

    # Pricing
    pricebook_version: str = field(default_factory=lambda: os.getenv("PRICEBOOK_VERSION", "v1"))
    pricing_cache_ttl_hours: int = field(default_factory=lambda: _env_int("PRICING_CACHE_TTL_HOURS", 168))
    pricing_live_timeout_ms: int = field(default_factory=lambda: _env_int("PRICING_LIVE_TIMEOUT_MS", 1200))
    onebuild_api_url: str = field(
        default_factory=lambda: os.getenv("ONEBUILD_API_URL", "https://gateway-external.1build.com/")
    )

    # Scope enhancement model
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o"))
    llm_temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.1")))

    use_firebase_emulators: bool = field(default_factory=lambda: _env_flag("USE_FIREBASE_EMULATORS"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    _openai_api_key: Optional[str] = field(default=None, repr=False)

    @property
    def openai_api_key(self) -> Optional[str]:
        """OpenAI key, resolved lazily through config.secrets."""
        if self._openai_api_key is None:
            from config.secrets import get_openai_api_key
            self._openai_api_key = get_openai_api_key()
        return self._openai_api_key

    def validate(self) -> None:
        """Check pricing bounds and, outside the emulator, the OpenAI key.

        Raises:
            ValueError: On the first invalid setting.
        """
        if self.pricing_cache_ttl_hours <= 0:
            raise ValueError("PRICING_CACHE_TTL_HOURS must be positive")
        if self.pricing_live_timeout_ms <= 0:
            raise ValueError("PRICING_LIVE_TIMEOUT_MS must be positive")
        if not self.use_firebase_emulators and not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required outside the emulator")


settings = Settings()
