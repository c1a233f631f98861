"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "curatarr",
    "environment": "dev",
    "logging": {
        "level": "INFO",
        "format": None,  # json in prod, console otherwise
    },
    "circuit_breaker": {
        "failure_threshold": 5,
        "cooldown_seconds": 60.0,
    },
    "search": {
        "season_pack_threshold": 0.6,
        "new_episode_interval_hours": 24.0,
        "provider_timeout_seconds": 30.0,
        "max_concurrent_providers": 5,
    },
    "scoring": {
        "formats_file": None,
        "profiles_file": None,
        "default_profile_id": "best",
        "include_builtin_formats": True,
    },
}
