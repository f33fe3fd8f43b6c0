"""
Configuration management for cachebench.

Settings come from the YAML config file, then environment variables
(``.env`` is loaded first) override individual values.
"""
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of cachebench package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"

SINGLE_FLIGHT_MODES = ("none", "local", "redis")

# Environment variable -> config field
_ENV_OVERRIDES = {
    "DATABASE_URL": "database_url",
    "REDIS_URL": "redis_url",
    "UPSTASH_REDIS_URL": "redis_url",
    "REDIS_HOST": "redis_host",
    "REDIS_PORT": "redis_port",
    "REDIS_DB": "redis_db",
    "CACHE_KEY": "cache_key",
    "CACHE_TTL_SECONDS": "cache_ttl_seconds",
    "TIMING_HISTORY_LIMIT": "timing_history_limit",
    "SINGLE_FLIGHT": "single_flight",
    "REQUEST_TIMEOUT_SECONDS": "request_timeout_seconds",
    "SEED_SOURCE_URL": "seed_source_url",
    "LOG_LEVEL": "log_level",
}


@dataclass
class CacheBenchConfig:
    """Configuration for the fetch strategies, cache and timing history."""

    # Primary store
    database_url: str = "sqlite+aiosqlite:///./cachebench.db"

    # Cache connection (redis_url wins over host/port/db when set)
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_socket_timeout: float = 2.0

    # Cache window
    cache_key: str = "products"
    cache_ttl_seconds: int = 86400     # 24 hours, reset on every repopulation

    # Timing history
    timing_key_prefix: str = "fetch_times"
    timing_history_limit: int = 100

    # Requests
    default_limit: int = 10
    max_limit: int = 1000
    request_timeout_seconds: Optional[float] = None

    # Single-flight extension ("none" keeps the lost-update behavior)
    single_flight: str = "none"
    lease_ttl_ms: int = 5000
    lease_wait_ms: int = 2000

    # Seeding
    seed_source_url: str = "https://670f530a3e7151861657512d.mockapi.io/producrs"

    log_level: str = "INFO"

    def __post_init__(self):
        if self.single_flight not in SINGLE_FLIGHT_MODES:
            raise ValueError(
                f"single_flight must be one of {SINGLE_FLIGHT_MODES}, got {self.single_flight!r}"
            )
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        if self.timing_history_limit <= 0:
            raise ValueError("timing_history_limit must be positive")

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "CacheBenchConfig":
        """Load configuration from YAML file, then apply environment overrides."""
        path = config_path or DEFAULT_CONFIG_PATH
        data: Dict[str, Any] = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

        store_config = data.get('store', {})
        cache_config = data.get('cache', {})
        timing_config = data.get('timing', {})
        fetch_config = data.get('fetch', {})
        seed_config = data.get('seed', {})

        values: Dict[str, Any] = {
            'database_url': store_config.get('database_url', cls.database_url),
            'redis_url': cache_config.get('redis_url'),
            'redis_host': cache_config.get('host', cls.redis_host),
            'redis_port': cache_config.get('port', cls.redis_port),
            'redis_db': cache_config.get('db', cls.redis_db),
            'redis_socket_timeout': cache_config.get('socket_timeout', cls.redis_socket_timeout),
            'cache_key': cache_config.get('key', cls.cache_key),
            'cache_ttl_seconds': cache_config.get('ttl_seconds', cls.cache_ttl_seconds),
            'timing_key_prefix': timing_config.get('key_prefix', cls.timing_key_prefix),
            'timing_history_limit': timing_config.get('history_limit', cls.timing_history_limit),
            'default_limit': fetch_config.get('default_limit', cls.default_limit),
            'max_limit': fetch_config.get('max_limit', cls.max_limit),
            'request_timeout_seconds': fetch_config.get('request_timeout_seconds'),
            'single_flight': fetch_config.get('single_flight', cls.single_flight),
            'lease_ttl_ms': fetch_config.get('lease_ttl_ms', cls.lease_ttl_ms),
            'lease_wait_ms': fetch_config.get('lease_wait_ms', cls.lease_wait_ms),
            'seed_source_url': seed_config.get('source_url', cls.seed_source_url),
            'log_level': data.get('log_level', cls.log_level),
        }
        values.update(_env_overrides())
        return cls(**_coerce(values))


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            overrides[field_name] = value
    return overrides


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    """Cast string values from the environment to the dataclass field types."""
    types = {f.name: f.type for f in fields(CacheBenchConfig)}
    coerced: Dict[str, Any] = {}
    for name, value in values.items():
        field_type = types[name]
        if value is None or not isinstance(value, str):
            coerced[name] = value
        elif field_type in (int, "int"):
            coerced[name] = int(value)
        elif field_type in (float, "float", Optional[float], "Optional[float]"):
            coerced[name] = float(value)
        else:
            coerced[name] = value
    return coerced


# Global config instance
_config: Optional[CacheBenchConfig] = None


def get_config() -> CacheBenchConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = CacheBenchConfig.from_yaml()
    return _config


def set_config(config: Optional[CacheBenchConfig]) -> None:
    """Set (or with None, reset) the global configuration instance."""
    global _config
    _config = config
