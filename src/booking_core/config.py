"""Configuration management using pydantic-settings."""

import logging
import warnings
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class StorageBackend(str, Enum):
    """Where appointments and schedules are persisted."""

    SQL = "sql"
    MEMORY = "memory"


class DatabaseSettings(BaseSettings):
    """Database configuration."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_", case_sensitive=False)

    url: str = Field(
        default="sqlite+aiosqlite:///./doctorlink.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=10, description="Connection pool size")
    max_overflow: int = Field(default=20, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=3600, description="Pool recycle time in seconds")
    echo: bool = Field(default=False, description="Echo SQL queries (for debugging)")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        allowed = (
            "postgresql://",
            "postgresql+asyncpg://",
            "postgresql+psycopg2://",
            "sqlite+aiosqlite://",
        )
        if not v.startswith(allowed):
            raise ValueError(
                "Database URL must start with postgresql://, postgresql+asyncpg://, "
                "postgresql+psycopg2:// or sqlite+aiosqlite://"
            )
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class BookingSettings(BaseSettings):
    """Availability and booking engine configuration."""

    model_config = SettingsConfigDict(env_prefix="BOOKING_", case_sensitive=False)

    slot_granularity_minutes: int = Field(
        default=30, ge=5, le=240, description="Width of a bookable slot in minutes"
    )
    storage_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Upper bound for a single storage unit of work"
    )
    storage_backend: StorageBackend = Field(
        default=StorageBackend.SQL, description="Storage provider used by the API"
    )
    isolation_level: Optional[str] = Field(
        default="SERIALIZABLE",
        description="Transaction isolation level for booking writes (None = driver default)",
    )

    @field_validator("isolation_level")
    @classmethod
    def validate_isolation_level(cls, v: Optional[str]) -> Optional[str]:
        """Validate isolation level name."""
        if v is None or v == "":
            return None
        valid_levels = ["READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Isolation level must be one of {valid_levels}")
        return v.upper()


class JWTSettings(BaseSettings):
    """JWT token configuration."""

    model_config = SettingsConfigDict(env_prefix="JWT_", case_sensitive=False)

    secret_key: str = Field(
        default="change-me-in-production",
        description="JWT secret key (for local development only)",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_minutes: int = Field(
        default=30, description="Access token expiration time in minutes"
    )

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate secret key is not default in production."""
        # Note: Environment check will be done at Settings level
        if v == "change-me-in-production":
            warnings.warn(
                "Using default JWT_SECRET_KEY. This should be changed in production.",
                UserWarning,
            )
        return v


class CorsSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        case_sensitive=False,
    )

    # Store as strings to avoid JSON parsing issues
    origins_str: str = Field(
        default="http://localhost:3000",
        alias="origins",
        description="Allowed CORS origins (comma-separated string)",
    )
    allow_credentials: bool = Field(default=True, description="Allow credentials in CORS")
    allow_methods_str: str = Field(
        default="GET,POST,PATCH,OPTIONS",
        alias="allow_methods",
        description="Allowed HTTP methods (comma-separated string)",
    )
    allow_headers_str: str = Field(
        default="*",
        alias="allow_headers",
        description="Allowed HTTP headers (comma-separated string)",
    )
    max_age: int = Field(default=3600, description="CORS preflight cache max age in seconds")

    @property
    def origins(self) -> List[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.origins_str.split(",") if origin.strip()]

    @property
    def allow_methods(self) -> List[str]:
        """Get allowed HTTP methods as a list."""
        return [method.strip() for method in self.allow_methods_str.split(",") if method.strip()]

    @property
    def allow_headers(self) -> List[str]:
        """Get allowed HTTP headers as a list."""
        return [header.strip() for header in self.allow_headers_str.split(",") if header.strip()]


class ServerSettings(BaseSettings):
    """Server configuration."""

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    reload: bool = Field(default=False, description="Enable auto-reload (development only)")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="booking-core", description="Application name")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    api_v1_prefix: str = Field(default="/api/v1", description="API v1 prefix")

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    booking: BookingSettings = Field(default_factory=BookingSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @field_validator("environment", mode="before")
    @classmethod
    def parse_environment(cls, v):
        """Parse environment from string."""
        if isinstance(v, str):
            try:
                return Environment(v.lower())
            except ValueError:
                return Environment.DEVELOPMENT
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    def validate_production_settings(self) -> None:
        """Validate that production settings are secure."""
        if self.is_production:
            if self.jwt.secret_key == "change-me-in-production":
                raise ValueError("JWT_SECRET_KEY must be set to a secure value in production.")
            if self.debug:
                raise ValueError("DEBUG must be False in production")
            if self.booking.storage_backend == StorageBackend.MEMORY:
                warnings.warn(
                    "BOOKING_STORAGE_BACKEND=memory loses all appointments on restart.",
                    UserWarning,
                )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        try:
            _settings.validate_production_settings()
        except ValueError as e:
            logging.error(f"Configuration validation failed: {e}")
            if _settings.is_production:
                raise  # Fail fast in production
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
