"""
Configuration management for the pageview collector.
Handles loading, validating, and providing access to application settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_MONTHS = 24


@dataclass
class AppConfig:
    """Application configuration settings."""
    host: str
    port: int
    debug: bool
    environment: str
    dashboard_token: Optional[str]


@dataclass
class CorsConfig:
    """Origins allowed to read ingestion responses."""
    allowed_origins: list[str]


@dataclass
class RedisConfig:
    """Cache backend configuration settings."""
    url: str
    socket_timeout: float
    connect_timeout: float
    key_prefix: str
    visitor_ttl_seconds: int
    session_ttl_seconds: int
    active_window_seconds: int


@dataclass
class GeoIPConfig:
    """GeoIP database configuration settings."""
    database_path: str
    required: bool


@dataclass
class DatabaseConfig:
    """Durable store configuration settings."""
    url: str
    connect_timeout: int
    max_retries: int
    retention_months: int


class ConfigManager:
    """Manages application configuration loading and access."""

    def __init__(self, config_file: str = "collector_config.json"):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables."""
        # Start with default config
        self._config = self._get_default_config()

        # Load base config from file
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                    # Merge file config with defaults
                    self._merge_config(file_config)
            except (json.JSONDecodeError, FileNotFoundError) as e:
                # Keep default config if file is invalid or not found
                logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")

        # Override with environment variables
        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "app": {
                "host": "0.0.0.0",
                "port": 3000,
                "debug": False,
                "environment": "production",
                "dashboard_token": None
            },
            "cors": {
                "allowed_origins": ["https://franksblog.nl"]
            },
            "redis": {
                "url": "redis://localhost:6379/0",
                "socket_timeout": 0.5,
                "connect_timeout": 0.5,
                "key_prefix": "",
                "visitor_ttl_seconds": 86400,
                "session_ttl_seconds": 86400,
                "active_window_seconds": 300
            },
            "geoip": {
                "database_path": "data/GeoLite2-Country.mmdb",
                "required": True
            },
            "database": {
                "url": "sqlite:///data/pageviews.db",
                "connect_timeout": 10,
                "max_retries": 2,
                "retention_months": DEFAULT_RETENTION_MONTHS
            }
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        for section, values in file_config.items():
            if section in self._config:
                if isinstance(values, dict):
                    self._config[section].update(values)
                else:
                    self._config[section] = values
            else:
                self._config[section] = values

    def _env_number(self, name: str, section: str, key: str, cast) -> None:
        """Apply a numeric environment override, keeping the current value if unparseable."""
        raw = os.getenv(name)
        if not raw:
            return
        try:
            self._config[section][key] = cast(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid {name}={raw!r}, keeping {self._config[section][key]!r}")

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        # App settings
        if os.getenv("APP_HOST"):
            self._config["app"]["host"] = os.getenv("APP_HOST")

        self._env_number("APP_PORT", "app", "port", int)

        if os.getenv("APP_DEBUG"):
            self._config["app"]["debug"] = os.getenv("APP_DEBUG").lower() == "true"

        if os.getenv("APP_ENV"):
            self._config["app"]["environment"] = os.getenv("APP_ENV").strip().lower()

        if os.getenv("DASHBOARD_TOKEN"):
            self._config["app"]["dashboard_token"] = os.getenv("DASHBOARD_TOKEN")

        # CORS settings
        if os.getenv("ALLOWED_ORIGINS"):
            self._config["cors"]["allowed_origins"] = [
                origin.strip() for origin in os.getenv("ALLOWED_ORIGINS").split(",") if origin.strip()
            ]

        # Redis settings
        if os.getenv("REDIS_URL"):
            self._config["redis"]["url"] = os.getenv("REDIS_URL")

        if os.getenv("REDIS_KEY_PREFIX"):
            self._config["redis"]["key_prefix"] = os.getenv("REDIS_KEY_PREFIX")

        self._env_number("REDIS_SOCKET_TIMEOUT", "redis", "socket_timeout", float)

        # GeoIP settings
        if os.getenv("GEOIP_DB_PATH"):
            self._config["geoip"]["database_path"] = os.getenv("GEOIP_DB_PATH")

        if os.getenv("GEOIP_REQUIRED"):
            self._config["geoip"]["required"] = os.getenv("GEOIP_REQUIRED").lower() == "true"

        # Database settings
        if os.getenv("DATABASE_URL"):
            self._config["database"]["url"] = os.getenv("DATABASE_URL")

        if os.getenv("DATA_RETENTION_MONTHS"):
            self._config["database"]["retention_months"] = os.getenv("DATA_RETENTION_MONTHS")

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            host=app_config["host"],
            port=app_config["port"],
            debug=app_config["debug"],
            environment=app_config["environment"],
            dashboard_token=app_config["dashboard_token"] or None
        )

    def get_cors_config(self) -> CorsConfig:
        """Get CORS configuration."""
        return CorsConfig(allowed_origins=list(self._config["cors"]["allowed_origins"]))

    def get_redis_config(self) -> RedisConfig:
        """Get cache backend configuration."""
        redis_config = self._config["redis"]
        return RedisConfig(
            url=redis_config["url"],
            socket_timeout=float(redis_config["socket_timeout"]),
            connect_timeout=float(redis_config["connect_timeout"]),
            key_prefix=redis_config["key_prefix"],
            visitor_ttl_seconds=int(redis_config["visitor_ttl_seconds"]),
            session_ttl_seconds=int(redis_config["session_ttl_seconds"]),
            active_window_seconds=int(redis_config["active_window_seconds"])
        )

    def get_geoip_config(self) -> GeoIPConfig:
        """Get GeoIP configuration."""
        geoip_config = self._config["geoip"]
        return GeoIPConfig(
            database_path=geoip_config["database_path"],
            required=bool(geoip_config["required"])
        )

    def get_database_config(self) -> DatabaseConfig:
        """Get durable store configuration."""
        db_config = self._config["database"]
        return DatabaseConfig(
            url=db_config["url"],
            connect_timeout=int(db_config["connect_timeout"]),
            max_retries=int(db_config["max_retries"]),
            retention_months=parse_retention_months(db_config["retention_months"])
        )

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()


def parse_retention_months(value: Any) -> int:
    """Return a positive month count, falling back to the default for invalid values."""
    try:
        months = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid retention period {value!r}, using {DEFAULT_RETENTION_MONTHS} months")
        return DEFAULT_RETENTION_MONTHS

    if months < 1:
        logger.warning(f"Retention period must be at least 1 month, using {DEFAULT_RETENTION_MONTHS} months")
        return DEFAULT_RETENTION_MONTHS
    return months
