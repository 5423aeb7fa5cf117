"""
Configuration management using Pydantic Settings
Handles environment variables and validation
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import ConfigDict, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # Application
    app_name: str = "FastCheckout"
    app_version: str = "0.1.0"
    cors_origins: List[str] = Field(default=["http://localhost:3000"])

    # Core API (LinkBay Core)
    linkbay_api_url: str = Field(default="https://api.linkbay.com")
    linkbay_api_key: Optional[SecretStr] = Field(default=None)
    core_api_max_retries: int = Field(default=3, ge=1)
    core_api_retry_base_delay: float = Field(default=1.0, ge=0.0)

    # Performance
    request_timeout: float = Field(default=10.0)

    # Payment processors (platform level; tenants carry their own credentials)
    stripe_secret_key: Optional[SecretStr] = Field(default=None)
    stripe_webhook_secret: Optional[SecretStr] = Field(default=None)
    paypal_client_id: Optional[str] = Field(default=None)

    # Checkout
    default_currency: str = Field(default="EUR", min_length=3, max_length=3)

    # Rate limiting (fixed window, process local)
    rate_limit_max_requests: int = Field(default=100, ge=1)
    rate_limit_window_seconds: float = Field(default=15 * 60, gt=0)
    rate_limit_max_entries: int = Field(default=10000, ge=1)

    # Request protection
    csrf_enabled: bool = Field(default=False)

    # Plugins
    plugins_enabled: bool = Field(default=True)
    plugin_error_policy: str = Field(default="continue", description="continue or abort")
    plugin_hook_timeout_seconds: Optional[float] = Field(default=None, gt=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text

    # Monitoring
    prometheus_enabled: bool = Field(default=True)
    sentry_dsn: Optional[str] = Field(default=None)
    sentry_trace_rate: float = Field(default=0.2, ge=0.0, le=1.0)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    @field_validator("plugin_error_policy")
    @classmethod
    def validate_plugin_error_policy(cls, v):
        v = v.lower()
        if v not in ("continue", "abort"):
            raise ValueError("Plugin error policy must be 'continue' or 'abort'")
        return v

    @field_validator("linkbay_api_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Validate production-specific settings after all fields are set"""
        if self.environment == "production" and not self.linkbay_api_key:
            raise ValueError("LINKBAY_API_KEY is required in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    def get_secret(self, name: str) -> Optional[str]:
        """Return the plain value of a secret setting, or None when unset"""
        value = getattr(self, name)
        if value is None:
            return None
        if isinstance(value, SecretStr):
            return value.get_secret_value()
        return value

    def service_status(self) -> dict:
        """Configuration status of the external services"""
        return {
            "linkbay": "configured" if self.linkbay_api_key else "not_configured",
            "stripe": "configured" if self.stripe_secret_key else "not_configured",
            "paypal": "configured" if self.paypal_client_id else "not_configured",
        }

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    def model_dump(self, **kwargs):
        """Override to mask sensitive fields when serializing"""
        data = super().model_dump(**kwargs)

        sensitive_fields = [
            "linkbay_api_key",
            "stripe_secret_key",
            "stripe_webhook_secret",
            "sentry_dsn",
        ]

        for field in sensitive_fields:
            if field in data and data[field]:
                if hasattr(data[field], "get_secret_value"):
                    value = data[field].get_secret_value()
                else:
                    value = str(data[field])

                # Keep first 4 chars for identification
                if len(value) > 4:
                    data[field] = value[:4] + "*" * (len(value) - 4)
                else:
                    data[field] = "*" * len(value)

        return data


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
