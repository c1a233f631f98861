from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from curatarr.domain.exceptions import ConfigurationError

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTIONS: frozenset[str] = frozenset({"logging", "circuit_breaker", "search", "scoring"})
_TOP_LEVEL: tuple[str, ...] = ("app_name", "environment")

# Flat keys (env vars, CLI flags) and the section field each one sets.
FLAT_KEYS: dict[str, tuple[str, str]] = {
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "circuit_failure_threshold": ("circuit_breaker", "failure_threshold"),
    "circuit_cooldown_seconds": ("circuit_breaker", "cooldown_seconds"),
    "season_pack_threshold": ("search", "season_pack_threshold"),
    "new_episode_interval_hours": ("search", "new_episode_interval_hours"),
    "provider_timeout_seconds": ("search", "provider_timeout_seconds"),
    "max_concurrent_providers": ("search", "max_concurrent_providers"),
    "formats_file": ("scoring", "formats_file"),
    "profiles_file": ("scoring", "profiles_file"),
    "default_profile_id": ("scoring", "default_profile_id"),
}


def _merge_into(target: dict[str, Any], layer: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *layer* over *target* in place; nested mappings merge key by key."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            target[key] = value
    return target


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one layer into the sectioned shape ``AppConfig`` validates.

    Section blocks pass through; flat keys from ``FLAT_KEYS`` are moved
    into their section. Unknown keys are dropped.
    """
    out: dict[str, Any] = {
        key: dict(value)
        for key, value in layer.items()
        if key in _SECTIONS and isinstance(value, Mapping)
    }
    out.update({key: layer[key] for key in _TOP_LEVEL if key in layer})
    for flat_key, (section, field) in FLAT_KEYS.items():
        if flat_key in layer:
            out.setdefault(section, {})[field] = layer[flat_key]
    return out


def _yaml_layer(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigurationError(
            f"{config_path}: config YAML must be a mapping, got {type(parsed).__name__}"
        )
    return parsed


def _env_layer() -> dict[str, Any]:
    try:
        return EnvOverrides().to_update_dict()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid CURATARR_* environment value: {e}") from e


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Build the validated ``AppConfig``.

    Layers, lowest precedence first: built-in defaults, the YAML file,
    ``CURATARR_*`` environment variables (a ``.env`` file only fills
    variables that are not already set), then CLI overrides. Nothing is
    written to disk.

    Raises:
        FileNotFoundError: an explicitly given config or .env file is missing.
        ConfigurationError: a layer is malformed or the result does not validate.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = [deepcopy(DEFAULT_CONFIG)]
    if config_path is not None:
        layers.append(_yaml_layer(config_path))
    layers.append(_env_layer())
    layers.append(cli_overrides or {})

    merged: dict[str, Any] = {}
    for layer in layers:
        _merge_into(merged, _sectioned(layer))

    try:
        return AppConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
