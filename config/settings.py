"""
Configuration management for the session cache service.

This module provides centralized configuration loading and validation using Pydantic settings.
Settings are read once at startup from environment variables or .env files and then passed
explicitly to the session handler and the demo application.

The Momento-specific variables keep the names used by existing Momento session deployments
(MOMENTO_SESSION_CACHE, MOMENTO_SESSION_TTL, MOMENTO_AUTH_TOKEN).
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional, List, Tuple

from pydantic import AliasChoices, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Supported deployment environments."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class CacheBackend(str, Enum):
    """Cache services the session handler can talk to."""
    MOMENTO = "momento"
    REDIS = "redis"
    MEMORY = "memory"


DEFAULT_SESSION_CACHE_NAME = "php-sessions"
DEFAULT_SESSION_TTL_SECONDS = 300


def _detect_environment() -> Environment:
    """
    Detect the current environment from the ENVIRONMENT variable.

    Returns:
        Environment: The detected environment, defaults to DEVELOPMENT if not set.
    """
    env_value = os.environ.get("ENVIRONMENT", "development").lower().strip()
    try:
        return Environment(env_value)
    except ValueError:
        return Environment.DEVELOPMENT


def _get_env_files(environment: Environment) -> Tuple[str, ...]:
    """
    Get the list of .env files to load for the given environment.

    The base .env file is loaded first, then the environment-specific file.

    Args:
        environment: The target environment.

    Returns:
        Tuple of .env file paths to load.
    """
    return (".env", f".env.{environment.value}")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Recognized options:
    - Cache namespace (MOMENTO_SESSION_CACHE, default "php-sessions")
    - Default session TTL in seconds (MOMENTO_SESSION_TTL, default 300)
    - Momento credential (MOMENTO_AUTH_TOKEN)
    - Cache backend selection and Redis URL
    - Session handler tuning (init attempts, lazy touch)
    - Session cookie name and security flag for the demo application
    - Logging level
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment (development, staging, production)"
    )

    # Cache Configuration
    cache_backend: CacheBackend = Field(
        default=CacheBackend.MOMENTO,
        description="Cache service backing the session store: momento, redis or memory"
    )
    session_cache_name: str = Field(
        default=DEFAULT_SESSION_CACHE_NAME,
        validation_alias=AliasChoices("MOMENTO_SESSION_CACHE", "session_cache_name"),
        description="Cache name (Momento) or key prefix (Redis) for session records"
    )
    session_ttl_seconds: int = Field(
        default=DEFAULT_SESSION_TTL_SECONDS,
        ge=1,
        le=86400,  # Max 1 day
        validation_alias=AliasChoices("MOMENTO_SESSION_TTL", "session_ttl_seconds"),
        description="Session time-to-live in seconds"
    )
    momento_auth_token: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("MOMENTO_AUTH_TOKEN", "momento_auth_token"),
        description="Momento API key used to authenticate the cache client"
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL when cache_backend is 'redis'"
    )

    # Session Handler Configuration
    session_init_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made to build the cache client before giving up"
    )
    session_init_backoff_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=30.0,
        description="Initial delay between cache client construction attempts"
    )
    session_reinit_cooldown_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=300.0,
        description="Minimum time between client rebuilds after a failed one"
    )
    session_lazy_touch: bool = Field(
        default=True,
        description="Skip timestamp refresh while a session has more than half its TTL left"
    )
    session_cookie_name: str = Field(
        default="PHPSESSID",
        description="Cookie carrying the session ID in the demo application"
    )
    session_cookie_secure: bool = Field(
        default=False,
        description="Mark the session cookie Secure (HTTPS only)"
    )

    # Observability Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("session_cache_name")
    @classmethod
    def validate_session_cache_name(cls, v: str) -> str:
        """Validate that the cache name is not empty."""
        if not v or not v.strip():
            raise ValueError("session_cache_name cannot be empty")
        return v.strip()

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate that redis_url uses a Redis URL scheme."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("redis_url must start with redis://, rediss:// or unix://")
        return v

    @field_validator("session_cookie_name")
    @classmethod
    def validate_session_cookie_name(cls, v: str) -> str:
        """Validate that the cookie name is a plain token."""
        v = v.strip()
        if not v or not all(c.isalnum() or c in "-_" for c in v):
            raise ValueError("session_cookie_name must contain only letters, digits, '-' and '_'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.strip().upper()
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v

    @model_validator(mode="after")
    def validate_cache_backend_config(self) -> "Settings":
        """Validate that the selected backend has the credentials it needs."""
        if self.environment == Environment.DEVELOPMENT:
            # A missing credential only surfaces as an initialization failure
            return self
        if self.cache_backend == CacheBackend.MOMENTO and not self.momento_auth_token:
            raise ValueError(
                "momento_auth_token is required when cache_backend is 'momento' "
                "in non-development environments"
            )
        if self.cache_backend == CacheBackend.REDIS and not self.redis_url:
            raise ValueError(
                "redis_url is required when cache_backend is 'redis' "
                "in non-development environments"
            )
        if self.cache_backend == CacheBackend.MEMORY:
            raise ValueError(
                "cache_backend 'memory' is only allowed in development"
            )
        return self


class ConfigurationError(Exception):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None,
                 invalid_fields: Optional[dict] = None):
        self.message = message
        self.missing_fields = missing_fields or []
        self.invalid_fields = invalid_fields or {}
        super().__init__(self.format_error_message())

    def format_error_message(self) -> str:
        """Format a descriptive error message listing all issues."""
        parts = [self.message]

        if self.missing_fields:
            parts.append(f"\nMissing required fields: {', '.join(self.missing_fields)}")

        if self.invalid_fields:
            invalid_parts = [f"  - {field}: {error}" for field, error in self.invalid_fields.items()]
            parts.append("\nInvalid field values:\n" + "\n".join(invalid_parts))

        return "".join(parts)


def create_settings_for_environment(environment: Optional[Environment] = None) -> Settings:
    """
    Factory function to create Settings for a specific environment.

    Args:
        environment: Optional environment override. If not provided, detected from
                    ENVIRONMENT variable.

    Returns:
        Settings: Validated settings for the specified environment.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    if environment is None:
        environment = _detect_environment()

    env_files = [f for f in _get_env_files(environment) if Path(f).exists()]

    try:
        class EnvironmentSettings(Settings):
            model_config = SettingsConfigDict(
                env_file=tuple(env_files) or None,
                env_file_encoding="utf-8",
                case_sensitive=False,
                extra="ignore"
            )

        return EnvironmentSettings()
    except Exception as e:
        missing_fields = []
        invalid_fields = {}

        # Extract field-level errors from Pydantic ValidationError
        if hasattr(e, 'errors'):
            for error in e.errors():
                field_name = '.'.join(str(loc) for loc in error.get('loc', [])) or "settings"
                error_type = error.get('type', '')
                error_msg = error.get('msg', str(error))

                if error_type == 'missing':
                    missing_fields.append(field_name)
                else:
                    invalid_fields[field_name] = error_msg

        raise ConfigurationError(
            f"Failed to load configuration for environment '{environment.value}'",
            missing_fields=missing_fields,
            invalid_fields=invalid_fields
        ) from e


# Global settings cache
_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Returns:
        Settings: The validated application settings.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = create_settings_for_environment()

    return _settings_cache


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    This is primarily useful for testing to allow reloading settings
    with different environment variables.
    """
    global _settings_cache
    _settings_cache = None


def validate_startup(settings: Optional[Settings] = None) -> None:
    """
    Validate settings at application startup beyond per-field checks.

    Args:
        settings: Settings to check, defaults to get_settings().

    Raises:
        ConfigurationError: If any settings are inconsistent.
    """
    settings = settings or get_settings()
    validation_errors = {}

    if settings.environment == Environment.PRODUCTION and not settings.session_cookie_secure:
        validation_errors["session_cookie_secure"] = (
            "Production environment requires secure session cookies"
        )

    if (
        settings.cache_backend == CacheBackend.MOMENTO
        and settings.momento_auth_token is not None
        and not settings.momento_auth_token.get_secret_value().strip()
    ):
        validation_errors["momento_auth_token"] = "Momento auth token cannot be blank"

    if validation_errors:
        raise ConfigurationError(
            "Configuration validation failed during startup",
            invalid_fields=validation_errors
        )
