"""
Environment configuration loader with validation for the aircargo service.
"""

import os
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv


class AppConfig(BaseModel):
    """Configuration model for the aircargo service with validation."""

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///aircargo.db", description="Database connection URL"
    )

    # Valkey Configuration
    valkey_host: str = Field(default="localhost", description="Valkey server host")
    valkey_port: int = Field(
        default=6379, ge=1, le=65535, description="Valkey server port"
    )
    valkey_password: Optional[str] = Field(
        default=None, description="Valkey server password"
    )
    valkey_database: int = Field(
        default=0, ge=0, le=15, description="Valkey database number"
    )
    valkey_max_connections: int = Field(
        default=10, ge=1, description="Maximum Valkey connections"
    )

    log_level: str = Field(default="INFO", description="Logging level")

    # Cache, lock and idempotency lifetimes (seconds)
    booking_cache_ttl: int = Field(default=3600, ge=1, description="Booking cache TTL")
    route_cache_ttl: int = Field(default=1800, ge=1, description="Direct flight search cache TTL")
    idempotency_ttl: int = Field(default=86400, ge=1, description="Idempotency record TTL")
    lock_ttl: int = Field(default=30, ge=1, le=300, description="Booking update lock TTL")

    # Route discovery
    premium_carrier_marker: str = Field(
        default="Air India", description="Airline name fragment that carries the premium multiplier"
    )
    min_connection_minutes: int = Field(
        default=60, ge=0, description="Minimum connection time between transit legs"
    )
    max_transit_routes: int = Field(
        default=5, ge=0, description="Maximum transit options returned per search"
    )
    transit_surcharge: int = Field(
        default=50, ge=0, description="Fixed surcharge added to transit routes"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


def load_config(env_file: Optional[str] = None) -> AppConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file. If None, looks for .env in current directory.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValueError: If configuration is invalid
    """
    if env_file is None:
        env_file = ".env"

    if os.path.exists(env_file):
        load_dotenv(env_file)

    config_data: Dict[str, Any] = {
        "database_url": os.getenv("DATABASE_URL", "sqlite:///aircargo.db"),
        "valkey_host": os.getenv("VALKEY_HOST", "localhost"),
        "valkey_port": int(os.getenv("VALKEY_PORT", "6379")),
        "valkey_password": os.getenv("VALKEY_PASSWORD") or None,
        "valkey_database": int(os.getenv("VALKEY_DATABASE", "0")),
        "valkey_max_connections": int(os.getenv("VALKEY_MAX_CONNECTIONS", "10")),
        "log_level": os.getenv("AIRCARGO_LOG_LEVEL", "INFO"),
        "booking_cache_ttl": int(os.getenv("BOOKING_CACHE_TTL", "3600")),
        "route_cache_ttl": int(os.getenv("ROUTE_CACHE_TTL", "1800")),
        "idempotency_ttl": int(os.getenv("IDEMPOTENCY_TTL", "86400")),
        "lock_ttl": int(os.getenv("BOOKING_LOCK_TTL", "30")),
        "premium_carrier_marker": os.getenv("PREMIUM_CARRIER_MARKER", "Air India"),
        "min_connection_minutes": int(os.getenv("MIN_CONNECTION_MINUTES", "60")),
        "max_transit_routes": int(os.getenv("MAX_TRANSIT_ROUTES", "5")),
        "transit_surcharge": int(os.getenv("TRANSIT_SURCHARGE", "50")),
    }

    try:
        return AppConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}") from e


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the global configuration instance, loading it if necessary.

    Returns:
        AppConfig: The global configuration object
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config
