"""Environment-based configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class BaseConfig:
    """Base configuration shared by all environments."""

    APP_ENV: str = os.getenv("APP_ENV", "development")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Document store
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB: str = os.getenv("MONGODB_DB", "palpitaco")
    DRAWS_COLLECTION: str = os.getenv("DRAWS_COLLECTION", "draws")
    PRIZES_COLLECTION: str = os.getenv("PRIZES_COLLECTION", "prizes")
    REQUIRE_COMPOSITE_INDEX: bool = _env_bool("REQUIRE_COMPOSITE_INDEX", False)
    READ_POLICY: str = os.getenv("READ_POLICY", "cache").lower().strip()  # "cache" | "server"

    # Aggregate bounds endpoint (optional)
    BOUNDS_API_URL: str = os.getenv("BOUNDS_API_URL", "")
    BOUNDS_API_TIMEOUT: float = _env_float("BOUNDS_API_TIMEOUT", 5.0)
    BOUNDS_API_RETRIES: int = _env_int("BOUNDS_API_RETRIES", 0)

    # Caching / time
    CACHE_TTL_SECONDS: int = _env_int("CACHE_TTL_SECONDS", 600)
    TIMEZONE: str = os.getenv("TIMEZONE", "America/Sao_Paulo")

    # Bounds resolution
    BOUNDS_SCAN_LIMIT: int = _env_int("BOUNDS_SCAN_LIMIT", 50)
    BOUNDS_EDGE_LIMIT: int = _env_int("BOUNDS_EDGE_LIMIT", 800)
    BOUNDS_PROBE_DAYS: int = _env_int("BOUNDS_PROBE_DAYS", 60)

    # Range chunking / fallbacks
    RANGE_CHUNK_DAYS: int = _env_int("RANGE_CHUNK_DAYS", 60)
    AGGREGATED_AUTO_DAYS: int = _env_int("AGGREGATED_AUTO_DAYS", 60)
    INDEX_FALLBACK_MAX_DAYS: int = _env_int("INDEX_FALLBACK_MAX_DAYS", 120)
    EMPTY_FALLBACK_MAX_DAYS: int = _env_int("EMPTY_FALLBACK_MAX_DAYS", 120)
    STALENESS_CHUNK_DAYS: int = _env_int("STALENESS_CHUNK_DAYS", 15)

    # Prize hydration pool
    HYDRATION_MIN_WORKERS: int = _env_int("HYDRATION_MIN_WORKERS", 4)
    HYDRATION_MAX_WORKERS: int = _env_int("HYDRATION_MAX_WORKERS", 10)


@dataclass(frozen=True)
class DevelopmentConfig(BaseConfig):
    """Development configuration."""

    DEBUG: bool = True


@dataclass(frozen=True)
class ProductionConfig(BaseConfig):
    """Production configuration."""

    DEBUG: bool = False


def get_config() -> type[BaseConfig]:
    """Resolve configuration class based on APP_ENV."""

    env = os.getenv("APP_ENV", "development").lower().strip()
    if env == "production":
        return ProductionConfig
    return DevelopmentConfig
