"""
Application configuration.

A single immutable Settings value is built once at process start (from the
environment and an optional .env file) and handed to every component. Nothing
below the app factory reads os.environ directly.

Uses Pydantic Settings for centralized, testable validation.
"""
import logging
from enum import Enum
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class AuthScheme(str, Enum):
    """Callback authentication schemes understood by the auth validator."""
    NONE = "none"
    BEARER = "bearer"
    API_TOKEN = "api-token"
    KEY_SECRET = "key-secret"
    CUSTOM = "custom"


class Settings(BaseSettings):
    """Validated, immutable service configuration."""

    # Record store / blob store (Supabase, service-role credential)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_SCHEMA: str = "public"
    APPOINTMENTS_TABLE: str = "appointments"
    RESULTS_TABLE: str = "exam_results"
    RESULTS_BUCKET: str = "exam-results"
    STORAGE_TIMEOUT_SECONDS: float = 15.0

    # External exam platform
    EXAM_PLATFORM_BASE_URL: str = ""
    EXAM_PLATFORM_API_TOKEN: str = ""
    EXAM_PLATFORM_TOKEN_HEADER: str = "x-api-token"
    EXAM_PLATFORM_TIMEOUT_SECONDS: float = 20.0
    EXAM_PLATFORM_INCLUDE_HTML: bool = True

    # Inbound callback authentication. Kept as a plain string so an unknown
    # value reaches the validator and is rejected there.
    CALLBACK_AUTH_SCHEME: str = AuthScheme.BEARER.value
    CALLBACK_BEARER_TOKEN: str = ""
    CALLBACK_API_TOKEN_HEADER: str = "x-api-token"
    CALLBACK_API_TOKEN: str = ""
    CALLBACK_KEY_HEADER: str = "key"
    CALLBACK_SECRET_HEADER: str = "secret"
    CALLBACK_KEY: str = ""
    CALLBACK_SECRET: str = ""
    CALLBACK_CUSTOM_HEADER: str = ""
    CALLBACK_CUSTOM_VALUE: str = ""

    LOG_LEVEL: str = "INFO"

    @field_validator("CALLBACK_AUTH_SCHEME")
    @classmethod
    def normalize_scheme(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("EXAM_PLATFORM_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("STORAGE_TIMEOUT_SECONDS", "EXAM_PLATFORM_TIMEOUT_SECONDS")
    @classmethod
    def validate_positive_timeout(cls, v: float, info) -> float:
        """Every blocking call must carry a bounded timeout."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be greater than zero")
        return v

    @property
    def auth_scheme(self) -> Optional[AuthScheme]:
        """The configured scheme, or None when the value is not recognized."""
        try:
            return AuthScheme(self.CALLBACK_AUTH_SCHEME)
        except ValueError:
            return None

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",  # Allow extra env vars without validation errors
        "frozen": True,
    }


def validate_settings(settings: Settings) -> bool:
    """
    Check settings that can be empty in tests but not in a deployment.

    Note: Never log actual secret values, only variable names.
    """
    missing = [
        name for name in (
            "SUPABASE_URL",
            "SUPABASE_SERVICE_ROLE_KEY",
            "EXAM_PLATFORM_BASE_URL",
            "EXAM_PLATFORM_API_TOKEN",
        )
        if not getattr(settings, name)
    ]
    if missing:
        logger.error(f"Missing required configuration: {', '.join(missing)}")
        return False
    if settings.auth_scheme is None:
        logger.error(f"Unknown CALLBACK_AUTH_SCHEME '{settings.CALLBACK_AUTH_SCHEME}' - all callbacks will be rejected")
        return False
    logger.info("Environment validation passed")
    return True


# Singleton settings instance, built once at process start
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
