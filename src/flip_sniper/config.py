from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def db_url() -> str:
    return os.environ.get("DB_URL", "postgresql://flip:flip@db:5432/flip")


@dataclass
class AppConfig:
    """Process settings, read from the environment at construction time."""

    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO"))
    log_json: bool = field(default_factory=lambda: _env_bool("LOG_JSON", True))
    # the listings page shows 20 generated listings per criterion
    mock_listing_count: int = field(default_factory=lambda: _env_int("MOCK_LISTING_COUNT", 20))
    marketplace_limit: int = field(default_factory=lambda: _env_int("WATCHLIST_MARKETPLACE_LIMIT", 5))
    default_max_distance: int = field(default_factory=lambda: _env_int("DEFAULT_MAX_DISTANCE", 50))


def load_config() -> AppConfig:
    return AppConfig()
