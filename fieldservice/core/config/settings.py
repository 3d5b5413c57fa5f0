# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the field
service platform. Settings are loaded from environment variables with
sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from fieldservice.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-this-in-production"
DEFAULT_CUSTOMER_JWT_SECRET = "change-this-customer-secret-in-production"


class CentralDatabaseSettings(BaseSettings):
    """Central (registry) database configuration.

    The central database stores:
    - Tenant registry and connection info
    - Global plugin catalog
    - Per-tenant plugin installations

    Attributes:
        user: PostgreSQL username for central database.
        password: PostgreSQL password for central database.
        host: Database host address.
        port: Database port number.
        database: Database name.
        url_override: Full connection URL, takes precedence over components.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log SQL statements.
        auto_create_schema: Create registry tables at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="CENTRAL_DB_",
        extra="ignore",
    )

    user: str = "fieldservice"
    password: SecretStr = SecretStr("fieldservice_central_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "fieldservice_central"
    url_override: str | None = Field(
        default=None,
        validation_alias="CENTRAL_DATABASE_URL",
    )
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False
    auto_create_schema: bool = True

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class TenantDatabaseSettings(BaseSettings):
    """Tenant database configuration.

    Tenants without a dedicated database URL in the registry share the
    default tenant database and are partitioned by company code.

    Attributes:
        user: PostgreSQL username for the shared tenant database.
        password: PostgreSQL password for the shared tenant database.
        host: Shared tenant database host.
        port: Shared tenant database port.
        database: Shared tenant database name.
        url_override: Full shared tenant URL, takes precedence over components.
        pool_size: Connection pool size per tenant.
        max_overflow: Overflow connections per tenant.
        pool_recycle: Seconds before a pooled connection is recycled.
        echo: Log SQL statements.
        auto_create_schema: Create tenant tables when a pool is first created.
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANT_DB_",
        extra="ignore",
    )

    user: str = "fieldservice"
    password: SecretStr = SecretStr("fieldservice_tenant_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "fieldservice_tenants"
    url_override: str | None = Field(
        default=None,
        validation_alias="TENANT_DATABASE_URL",
    )
    pool_size: int = 10
    max_overflow: int = 0
    pool_recycle: int = 1800
    echo: bool = False
    auto_create_schema: bool = True

    @property
    def default_url(self) -> str:
        """Build the shared tenant database URL."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class TenantSettings(BaseSettings):
    """Tenant resolution configuration.

    Attributes:
        header: Request header carrying the tenant code.
        default_code: Tenant used when a request carries no code.
        allow_default: Whether missing codes fall back to default_code.
        config_cache_ttl: Seconds a registry lookup stays cached.
        lookup_max_failures: Failed lookups allowed per client in the window.
        lookup_failure_window: Sliding window for failed lookups, in seconds.
        base_domain: Domain used to resolve tenants from subdomains.
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANT_",
        extra="ignore",
    )

    header: str = "X-Tenant-Code"
    default_code: str = "DCPSP"
    allow_default: bool = False
    config_cache_ttl: int = 300
    lookup_max_failures: int = 5
    lookup_failure_window: int = 900
    base_domain: str | None = None


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Attributes:
        secret_key: Secret key for signing staff tokens.
        customer_secret_key: Secret key for signing customer portal tokens.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Access token expiration time.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    customer_secret_key: SecretStr = SecretStr(DEFAULT_CUSTOMER_JWT_SECRET)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=1440,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Attributes:
        enabled: Whether slowapi limits are enforced.
        requests_per_minute: Maximum requests per minute per client.
        auth_limit: Limit string applied to login endpoints.
        public_limit: Limit string applied to anonymous public submission.
        storage_uri: slowapi storage backend.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    enabled: bool = True
    requests_per_minute: int = 120
    auth_limit: str = "20/minute"
    public_limit: str = "10/minute"
    storage_uri: str = "memory://"


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class PluginSettings(BaseSettings):
    """Plugin loading configuration.

    Attributes:
        modules: Comma-separated importable plugin module paths.
        hook_priority_default: Priority given to event hooks without one.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLUGIN_",
        extra="ignore",
    )

    modules: str = "fieldservice.plugins.builtin.example,fieldservice.plugins.builtin.time_clock"
    hook_priority_default: int = 100

    @property
    def modules_list(self) -> list[str]:
        """Parse module string into a list."""
        return [module.strip() for module in self.modules.split(",") if module.strip()]


class NotificationSettings(BaseSettings):
    """Browser push notification configuration.

    Attributes:
        ping_interval: Seconds between heartbeat pings to connected clients.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATION_",
        extra="ignore",
    )

    ping_interval: float = 30.0


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, test, production).
        debug: Enable debug mode.
        log_level: Logging level.
        seed_default_tenant: Create the default tenant on startup if missing.
        host: Interface the server binds to.
        port: Port the server listens on.
        central_db: Central database settings.
        tenant_db: Tenant database settings.
        tenant: Tenant resolution settings.
        jwt: JWT authentication settings.
        rate_limit: Rate limiting settings.
        cors: CORS settings.
        plugins: Plugin loading settings.
        notifications: Notification channel settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"
    seed_default_tenant: bool = False
    host: str = "0.0.0.0"
    port: int = 3001

    # Subsettings - loaded with their own env prefixes
    central_db: CentralDatabaseSettings = Field(default_factory=CentralDatabaseSettings)
    tenant_db: TenantDatabaseSettings = Field(default_factory=TenantDatabaseSettings)
    tenant: TenantSettings = Field(default_factory=TenantSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    plugins: PluginSettings = Field(default_factory=PluginSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.jwt.secret_key.get_secret_value() == DEFAULT_JWT_SECRET:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
            if self.jwt.customer_secret_key.get_secret_value() == DEFAULT_CUSTOMER_JWT_SECRET:
                raise ValueError(
                    "Customer portal JWT secret must be changed from default in production. "
                    "Set JWT_CUSTOMER_SECRET_KEY environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
