"""
Tests for environment configuration
"""

import pytest
from pydantic import SecretStr, ValidationError

from core.config import Settings, get_settings

pytestmark = [pytest.mark.critical]


class TestEnvironmentConfiguration:
    """Test environment variable configuration and validation"""

    def test_default_settings(self, monkeypatch):
        """Defaults hold when no environment variables are set"""
        for name in ("ENVIRONMENT", "LINKBAY_API_KEY", "LINKBAY_API_URL", "STRIPE_WEBHOOK_SECRET", "LOG_FORMAT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)
        assert settings.environment == "development"
        assert settings.linkbay_api_url == "https://api.linkbay.com"
        assert settings.rate_limit_max_requests == 100
        assert settings.rate_limit_window_seconds == 900
        assert settings.rate_limit_max_entries == 10000
        assert settings.core_api_max_retries == 3
        assert settings.csrf_enabled is False
        assert settings.plugin_error_policy == "continue"
        assert settings.plugin_hook_timeout_seconds is None
        assert settings.default_currency == "EUR"

    def test_environment_is_validated(self):
        """Unknown environments are rejected"""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="qa")

    def test_production_requires_core_api_key(self, monkeypatch):
        """Production cannot start without the Core API key"""
        monkeypatch.delenv("LINKBAY_API_KEY", raising=False)

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None, environment="production")

        assert "LINKBAY_API_KEY is required in production" in str(exc_info.value)

        settings = Settings(_env_file=None, environment="production", linkbay_api_key="live-key")
        assert settings.is_production

    def test_plugin_error_policy_is_normalised(self):
        assert Settings(_env_file=None, plugin_error_policy="ABORT").plugin_error_policy == "abort"

        with pytest.raises(ValidationError):
            Settings(_env_file=None, plugin_error_policy="ignore")

    def test_trailing_slash_stripped_from_core_url(self):
        settings = Settings(_env_file=None, linkbay_api_url="https://core.example.com/v1/")
        assert settings.linkbay_api_url == "https://core.example.com/v1"

    def test_environment_variables_are_read(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "5")
        monkeypatch.setenv("CSRF_ENABLED", "true")

        settings = get_settings()
        assert settings.rate_limit_max_requests == 5
        assert settings.csrf_enabled is True


class TestSecrets:
    """Secret handling"""

    def test_get_secret_unwraps_secret_str(self):
        settings = Settings(_env_file=None, linkbay_api_key="abc123")
        assert isinstance(settings.linkbay_api_key, SecretStr)
        assert settings.get_secret("linkbay_api_key") == "abc123"

    def test_get_secret_returns_none_when_unset(self, monkeypatch):
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
        assert Settings(_env_file=None).get_secret("stripe_secret_key") is None

    def test_model_dump_masks_secrets(self):
        settings = Settings(_env_file=None, linkbay_api_key="supersecret", stripe_secret_key="sk_live_abcdef")
        data = settings.model_dump()

        assert data["linkbay_api_key"] == "supe*******"
        assert data["stripe_secret_key"].startswith("sk_l")
        assert "abcdef" not in data["stripe_secret_key"]

    def test_service_status(self, monkeypatch):
        monkeypatch.delenv("PAYPAL_CLIENT_ID", raising=False)
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)

        settings = Settings(_env_file=None, linkbay_api_key="key", stripe_secret_key="sk_test_1")
        assert settings.service_status() == {
            "linkbay": "configured",
            "stripe": "configured",
            "paypal": "not_configured",
        }
