"""Configuration loader for CDK Cost Guardian."""

from __future__ import annotations

import os
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from cdk_cost_guardian.config.schema import Config
from cdk_cost_guardian.exceptions import ConfigError


def _env_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


# Environment variable -> (config path, converter). Applied in order, so
# PRICING_REGION wins over AWS_REGION when both are set.
ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "AWS_REGION": (("aws", "region"), str),
    "PRICING_REGION": (("aws", "region"), str),
    "PRICING_API_REGION": (("pricing", "api_region"), str),
    "RESOURCE_MAP_PATH": (("pricing", "resource_map_path"), str),
    "PRICING_MAX_WORKERS": (("pricing", "max_workers"), int),
    "PRICING_TIMEOUT_SECONDS": (("pricing", "timeout_seconds"), float),
    "SLACK_ENABLED": (("slack", "enabled"), _env_bool),
    "SLACK_WEBHOOK_URL": (("slack", "webhook_url"), str),
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _find_config_dir() -> Path:
    """Find the config directory, searching up from current directory."""
    # Check for CONFIG_DIR environment variable first
    if config_dir := os.environ.get("CONFIG_DIR"):
        return Path(config_dir)

    # Search up from current directory
    for directory in (Path.cwd(), *Path.cwd().parents):
        if (directory / "config").is_dir():
            return directory / "config"

    # Fall back to ./config
    return Path("config")


def _read_yaml(path: Path) -> dict:
    """Read one YAML config file; a missing file is an empty mapping."""
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(
    config_path: str | Path | None = None,
    environment: str | None = None,
) -> Config:
    """
    Load configuration from YAML files.

    Loads config.yaml as base, then merges environment-specific overrides
    (e.g., config.staging.yaml, config.prod.yaml), then environment variables.

    Args:
        config_path: Path to config directory. If None, searches for config/ directory.
        environment: Environment name (dev, staging, prod). If None, uses CONFIG_ENV
                    environment variable or defaults to 'dev'.

    Returns:
        Config: Validated configuration object.

    Raises:
        ConfigError: If a file is not valid YAML, an override cannot be
            converted, or the merged settings fail validation.
    """
    config_dir = Path(config_path) if config_path else _find_config_dir()
    environment = environment or os.environ.get("CONFIG_ENV", "dev")

    # Base config, then environment-specific overrides
    config_data = _read_yaml(config_dir / "config.yaml")
    config_data = _deep_merge(config_data, _read_yaml(config_dir / f"config.{environment}.yaml"))

    # Override with environment variables
    config_data = _apply_env_overrides(config_data)
    config_data["environment"] = environment

    try:
        return Config(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration."""
    for env_var, (path, convert) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if not value:
            continue

        # Navigate to the nested key and set the converted value
        section = config_data
        for key in path[:-1]:
            section = section.setdefault(key, {})
        try:
            section[path[-1]] = convert(value)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {env_var}: {value!r}") from e

    return config_data


@lru_cache(maxsize=1)
def get_cached_config() -> Config:
    """
    Get cached configuration singleton.

    Useful for CLI entry points that build several collaborators from one config.
    """
    return load_config()
