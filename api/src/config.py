"""
FastAPI application configuration using Pydantic Settings.

Provides centralized configuration for:
- Server binding (host, port)
- MongoDB connection (URI, database, timeouts)
- Route module mounting
- CORS
- Logging

All settings support environment variable overrides and .env file loading.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables with the
    prefix "USERS_API_" (e.g., USERS_API_PORT). The MongoDB connection
    string is also read from the bare MONGO_URI variable.

    Environment variables are loaded from:
    1. System environment
    2. .env file in the current directory
    3. Default values defined below
    """

    # =========================================================================
    # API Settings
    # =========================================================================

    app_name: str = Field(
        default="Users API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="API version"
    )
    environment: str = Field(
        default="development",
        description="Environment: development|staging|production"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode - enables verbose error traces"
    )

    host: str = Field(
        default="0.0.0.0",
        description="API bind host"
    )
    port: int = Field(
        default=5000,
        description="API bind port",
        gt=0,
        lt=65536
    )

    # =========================================================================
    # Route Module
    # =========================================================================

    routes_module: str = Field(
        default="api.src.routers.users:router",
        description="Import path of the mounted router, as module:attribute"
    )
    routes_prefix: str = Field(
        default="/api/users",
        description="Path prefix the route module is mounted under"
    )

    # =========================================================================
    # Database Settings (MongoDB)
    # =========================================================================

    mongo_uri: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MONGO_URI", "USERS_API_MONGO_URI"),
        description="MongoDB connection string"
    )
    mongo_database: str = Field(
        default="users_api",
        description="Database used when the URI does not name one"
    )
    mongo_server_selection_timeout_ms: int = Field(
        default=5000,
        description="How long the startup ping waits for a reachable server (ms)",
        gt=0
    )
    mongo_max_pool_size: int = Field(
        default=100,
        description="Maximum connections in the driver pool",
        gt=0,
        le=1000
    )

    # =========================================================================
    # CORS Settings
    # =========================================================================

    cors_enabled: bool = Field(
        default=True,
        description="Enable CORS middleware"
    )
    cors_origins: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    cors_allow_credentials: bool = Field(
        default=False,
        description="Allow credentials in CORS requests"
    )
    cors_allow_methods: List[str] = Field(
        default=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
        description="Allowed HTTP methods"
    )
    cors_allow_headers: List[str] = Field(
        default=["*"],
        description="Allowed HTTP headers"
    )

    # =========================================================================
    # Logging & Monitoring
    # =========================================================================

    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="text",
        description="Log format: json|text"
    )
    metrics_enabled: bool = Field(
        default=True,
        description="Expose Prometheus metrics at /metrics"
    )

    # =========================================================================
    # Pagination Settings
    # =========================================================================

    pagination_default_limit: int = Field(
        default=100,
        description="Default page size",
        gt=0,
        le=1000
    )
    pagination_max_limit: int = Field(
        default=1000,
        description="Maximum page size",
        gt=0,
        le=10000
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got: {v}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("routes_prefix")
    @classmethod
    def validate_routes_prefix(cls, v: str) -> str:
        """Normalize the prefix to a leading slash and no trailing slash."""
        v = "/" + v.strip("/")
        if v == "/":
            raise ValueError("routes_prefix must not be the root path")
        return v

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: List[str]) -> List[str]:
        """Validate CORS origins are not empty."""
        if not v:
            return ["*"]
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"

    # =========================================================================
    # Model Config
    # =========================================================================

    model_config = SettingsConfigDict(
        env_prefix="USERS_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once and shared
    across the application.

    Returns:
        Settings: Cached settings instance

    Example:
        >>> from api.src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.port)
        5000
    """
    return Settings()


def clear_settings_cache():
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
