# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Application Settings

Configuration management using pydantic-settings.
Supports environment variables and .env files.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default values for signing secrets
INSECURE_SECRETS = {
    "change_me_in_production",
    "change_me",
    "changeme",
    "secret",
    "jwt_secret",
    "jwt_access_secret",
    "jwt_refresh_secret",
    "your_secret_key",
    "supersecret",
    "password",
    "123456",
    "development",
    "dev_secret",
}

MEMORY_DATABASE_URL = "memory://"


def _check_secret(name: str, value: str) -> str:
    if value.lower().replace("-", "_") in INSECURE_SECRETS:
        raise ValueError(
            f"{name} is set to an insecure default. "
            "Generate a secure key with: python scripts/generate_secrets.py"
        )

    if len(value) < 32:
        raise ValueError(f"{name} must be at least 32 characters (got {len(value)}).")

    # Basic entropy check for non-trivial strings
    if len(set(value)) < 10:
        raise ValueError(
            f"{name} appears to have low entropy (too many repeated characters). "
            "Use a cryptographically secure random string."
        )
    return value


class DatabaseSettings(BaseSettings):
    """Database configuration."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(
        default="sqlite+aiosqlite:///./campeiro.db",
        description="SQLAlchemy async URL, or memory:// for the in-process store",
    )
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=20, ge=0, le=100)
    echo: bool = Field(default=False, description="Echo SQL queries")

    @property
    def is_memory(self) -> bool:
        return self.url == MEMORY_DATABASE_URL


class SecuritySettings(BaseSettings):
    """Token, session and cookie configuration."""

    model_config = SettingsConfigDict(env_prefix="SECURITY_")

    # JWT
    jwt_access_secret: str = Field(
        default="CHANGE_ME_IN_PRODUCTION", description="Secret for access tokens"
    )
    jwt_refresh_secret: str = Field(
        default="CHANGE_ME_IN_PRODUCTION", description="Secret for refresh tokens"
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_access_expire_minutes: int = Field(default=15, ge=1)

    # Sessions
    refresh_session_days: int = Field(default=30, ge=1, description="Session lifetime")
    refresh_cookie_name: str = Field(default="rtok")
    cookie_domain: str = Field(default="localhost")

    # Passwords
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # CORS
    cors_origins: list[str] = Field(default=["http://localhost:3000"])

    @field_validator("jwt_access_secret")
    @classmethod
    def validate_access_secret(cls, v: str) -> str:
        return _check_secret("SECURITY_JWT_ACCESS_SECRET", v)

    @field_validator("jwt_refresh_secret")
    @classmethod
    def validate_refresh_secret(cls, v: str) -> str:
        return _check_secret("SECURITY_JWT_REFRESH_SECRET", v)

    @model_validator(mode="after")
    def secrets_must_differ(self) -> "SecuritySettings":
        if self.jwt_access_secret == self.jwt_refresh_secret:
            raise ValueError("Access and refresh secrets must be different values")
        return self


class AuditSettings(BaseSettings):
    """Audit trail configuration."""

    model_config = SettingsConfigDict(env_prefix="AUDIT_")

    enabled: bool = Field(default=True)
    audited_entities: list[str] = Field(
        default=["users", "events", "photos", "selections", "selection_items", "orders"]
    )
    ignored_entities: list[str] = Field(default=["audit_logs", "sessions"])


class ObservabilitySettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="json")  # json or human


class Settings(BaseSettings):
    """
    Main application settings.

    Usage:
        settings = get_settings()
        print(settings.security.cookie_domain)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Campeiro")
    app_version: str = Field(default="1.0.0")
    environment: str = Field(default="development")  # development, test, staging, production
    api_prefix: str = Field(default="/api")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    trusted_proxies: list[str] = Field(default_factory=list)

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def auth_path(self) -> str:
        """Path the refresh cookie is scoped to."""
        return f"{self.api_prefix.rstrip('/')}/auth"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for the application lifetime.
    """
    return Settings()


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "Settings",
    "DatabaseSettings",
    "SecuritySettings",
    "AuditSettings",
    "ObservabilitySettings",
    "MEMORY_DATABASE_URL",
    "get_settings",
]
