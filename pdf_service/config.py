"""
PDF Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class ConverterSettings(BaseSettings):
    """
    URL-to-PDF converter configuration with validation.

    All settings can be overridden via environment variables.
    Validation happens at startup to fail fast on misconfiguration.
    """

    # === Environment ===
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # === Server ===
    host: str = Field(default="0.0.0.0", description="Interface uvicorn binds to")
    port: int = Field(default=8001, ge=1, le=65535, description="Port uvicorn listens on")

    # === Logging ===
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="simple", description="Log format: simple or json")

    # === Browser ===
    browser_headless: bool = Field(
        default=True,
        description="Launch Chromium in headless mode"
    )
    warm_browser_on_startup: bool = Field(
        default=True,
        description="Launch the shared browser when the service starts"
    )

    # === Conversion Limits ===
    default_timeout_ms: int = Field(
        default=60000,
        ge=1000,
        le=300000,
        description="Navigation/operation timeout per URL in milliseconds (1000-300000)"
    )
    max_urls_per_request: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum URLs accepted in one conversion request (1-50)"
    )
    max_concurrent_requests: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum concurrent conversion requests (1-20)"
    )
    batch_throttle_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Pause between items of one batch in seconds (0-10)"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {"simple", "json"}:
            raise ValueError("log_format must be 'simple' or 'json'")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return v_upper

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration is suitable for production.

        Returns list of warning messages.
        """
        issues = []

        if self.is_production:
            if not self.browser_headless:
                issues.append("WARNING: Headful browser configured in production")
            if self.log_level == "DEBUG":
                issues.append("WARNING: DEBUG logging enabled in production")

        return issues

    class Config:
        env_prefix = ""  # No prefix, use exact env var names
        case_sensitive = False  # DEFAULT_TIMEOUT_MS = default_timeout_ms
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> ConverterSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for performance.
    Use this function to access configuration throughout the app.
    """
    return ConverterSettings()


def validate_config_on_startup() -> None:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    logger = logging.getLogger(__name__)

    try:
        settings = get_settings()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")

    for issue in settings.validate_production_config():
        logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  default_timeout_ms={settings.default_timeout_ms}")
    logger.info(f"  max_urls_per_request={settings.max_urls_per_request}")
    logger.info(f"  max_concurrent_requests={settings.max_concurrent_requests}")
    logger.info(f"  browser_headless={settings.browser_headless}")
