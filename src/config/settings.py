"""Application settings using Pydantic Settings.

Centralized configuration for the school permission service.

SECURITY: Production requires the following environment variables:
- JWT_SECRET: Bearer token verification key (min 32 chars)

Generate secrets with: python -c "import secrets; print(secrets.token_hex(32))"
"""

import sys
import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_INSECURE_JWT_SECRET = "change-me-in-production-INSECURE-development-secret"


class RedisSettings(BaseSettings):
    """Redis configuration for the permission cache."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection string (REDIS_URL)",
    )

    # Connection pool settings
    max_connections: int = Field(default=50, description="Max Redis connections")
    # Kept short: a slow cache is treated as a miss
    socket_timeout: float = Field(default=1.0, description="Socket timeout in seconds")
    socket_connect_timeout: float = Field(default=1.0, description="Connection timeout")

    # Cache settings
    key_prefix: str = Field(default="", description="Prefix for all cache keys")
    default_ttl: int = Field(default=300, description="Default TTL in seconds (5 minutes)")


class AuthSettings(BaseSettings):
    """Bearer token verification settings."""

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret: str = Field(
        default=_INSECURE_JWT_SECRET,
        description="JWT signing key - MUST be set in production (JWT_SECRET)",
    )
    algorithm: str = Field(default="HS256", description="JWT signing algorithm")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application info
    name: str = Field(default="School Permission Service", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment name")

    # API settings
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_prefix: str = Field(default="", description="Prefix for all API routes, e.g. /api")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: Optional[str] = Field(
        default=None,
        description="Log format; must include %(correlation_id)s",
    )

    # Permission cache
    permission_cache_ttl: int = Field(
        default=300,
        ge=1,
        description="Seconds a cached permission set stays valid",
    )

    # Nested settings (loaded separately)
    @property
    def redis(self) -> RedisSettings:
        return RedisSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment in ("production", "prod", "staging")

    def validate_production_security(self) -> List[str]:
        """
        Validate security requirements for production.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.is_production:
            return errors

        jwt_secret = self.auth.secret
        if jwt_secret == _INSECURE_JWT_SECRET:
            errors.append(
                "JWT_SECRET: Required in production. "
                "Generate with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )
        elif len(jwt_secret) < 32:
            errors.append("JWT_SECRET: Must be at least 32 characters")

        return errors


# =============================================================================
# STARTUP VALIDATION
# =============================================================================

class StartupSecurityError(Exception):
    """Raised when security validation fails at startup."""
    pass


def validate_startup_security(settings: Settings, exit_on_failure: bool = True) -> bool:
    """
    Validate security settings at application startup.

    In production, fails fast if critical security settings are missing.

    Args:
        settings: Application settings instance
        exit_on_failure: If True, exit the process on failure (default)

    Returns:
        True if validation passes

    Raises:
        StartupSecurityError: If validation fails and exit_on_failure is False
    """
    errors = settings.validate_production_security()

    if not errors:
        if settings.is_production:
            logger.info("Production security validation PASSED")
        return True

    error_msg = (
        "\n" + "=" * 60 + "\n"
        "CRITICAL SECURITY CONFIGURATION ERROR\n"
        "=" * 60 + "\n\n"
        "The following security settings are missing or invalid:\n\n"
    )
    for i, err in enumerate(errors, 1):
        error_msg += f"  {i}. {err}\n\n"

    logger.critical(error_msg)

    if exit_on_failure:
        print(error_msg, file=sys.stderr)
        sys.exit(1)
    else:
        raise StartupSecurityError(error_msg)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings: Cached settings loaded from environment.
    """
    return Settings()
