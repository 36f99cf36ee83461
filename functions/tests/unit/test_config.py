"""Unit tests for settings, secrets and logging configuration."""

import pytest
import structlog
from unittest.mock import patch

from config import secrets
from config.settings import Settings
from utils.draft_logger import configure_logging


@pytest.fixture
def production_env(monkeypatch):
    monkeypatch.delenv("FUNCTIONS_EMULATOR", raising=False)
    monkeypatch.delenv("FIRESTORE_EMULATOR_HOST", raising=False)
    secrets.clear_secret_cache()
    yield
    secrets.clear_secret_cache()


@pytest.fixture
def emulator_env(monkeypatch):
    monkeypatch.setenv("FUNCTIONS_EMULATOR", "true")
    secrets.clear_secret_cache()
    yield
    secrets.clear_secret_cache()


class TestSettingsValidate:
    """Tests for Settings.validate."""

    def test_defaults_valid_in_emulator(self):
        Settings(use_firebase_emulators=True, _openai_api_key="sk-test").validate()

    @pytest.mark.parametrize("ttl", [0, -1])
    def test_non_positive_ttl(self, ttl):
        with pytest.raises(ValueError, match="PRICING_CACHE_TTL_HOURS"):
            Settings(pricing_cache_ttl_hours=ttl, _openai_api_key="sk-test").validate()

    def test_non_positive_timeout(self):
        with pytest.raises(ValueError, match="PRICING_LIVE_TIMEOUT_MS"):
            Settings(pricing_live_timeout_ms=0, _openai_api_key="sk-test").validate()

    def test_missing_key_outside_emulator(self):
        with patch("config.secrets.get_openai_api_key", return_value=None):
            with pytest.raises(ValueError, match="OPENAI_API_KEY"):
                Settings(use_firebase_emulators=False).validate()

    def test_missing_key_allowed_in_emulator(self):
        with patch("config.secrets.get_openai_api_key", return_value=None):
            Settings(use_firebase_emulators=True).validate()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("PRICING_CACHE_TTL_HOURS", "24")
        monkeypatch.setenv("PRICING_LIVE_TIMEOUT_MS", "900")
        monkeypatch.setenv("USE_FIREBASE_EMULATORS", "TRUE")

        config = Settings()

        assert config.pricing_cache_ttl_hours == 24
        assert config.pricing_live_timeout_ms == 900
        assert config.use_firebase_emulators is True


class TestSecrets:
    """Tests for secret resolution."""

    def test_emulator_reads_environment(self, emulator_env, monkeypatch):
        monkeypatch.setenv("ONEBUILD_EXTERNAL_KEY", "ob-local")

        assert secrets.is_emulator_mode()
        assert secrets.get_onebuild_api_key() == "ob-local"

    def test_emulator_missing_secret(self, emulator_env, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        assert secrets.get_secret("OPENAI_API_KEY") is None

    def test_secret_manager_used_in_production(self, production_env):
        with patch("config.secrets._read_secret_manager", return_value="sk-live") as mock_read:
            assert secrets.get_openai_api_key() == "sk-live"

        mock_read.assert_called_once_with("OPENAI_API_KEY")

    def test_secret_manager_failure_falls_back_to_env(self, production_env, monkeypatch):
        monkeypatch.setenv("ONEBUILD_EXTERNAL_KEY", "ob-env")

        with patch("config.secrets._read_secret_manager", side_effect=RuntimeError("denied")):
            assert secrets.get_secret("ONEBUILD_EXTERNAL_KEY") == "ob-env"

    def test_values_cached_until_cleared(self, production_env):
        with patch("config.secrets._read_secret_manager", side_effect=["first", "second"]):
            assert secrets.get_onebuild_api_key() == "first"
            assert secrets.get_onebuild_api_key() == "first"

            secrets.clear_secret_cache()

            assert secrets.get_onebuild_api_key() == "second"


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_filters_below_level(self, capsys):
        configure_logging("warning")
        log = structlog.get_logger()

        log.info("cache_warmed")
        log.warning("cache_stale")

        out = capsys.readouterr().out
        assert "cache_warmed" not in out
        assert "cache_stale" in out

    def test_unknown_level_defaults_to_info(self, capsys):
        configure_logging("chatty")

        structlog.get_logger().info("draft_started")

        assert "draft_started" in capsys.readouterr().out
