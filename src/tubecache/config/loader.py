"""Settings loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from tubecache.config.hierarchy import load_config_hierarchy
from tubecache.config.schema import Settings
from tubecache.errors.exceptions import ConfigurationError


def load_settings(**runtime_overrides: Any) -> Settings:
    """Resolve the config hierarchy and validate it into Settings.

    Raises ConfigurationError when any value is invalid.
    """
    raw = load_config_hierarchy(**runtime_overrides)
    return settings_from_mapping(raw)


def settings_from_mapping(raw: dict[str, Any]) -> Settings:
    try:
        return Settings(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_settings_yaml(path: str | Path) -> Settings:
    """Load a standalone YAML settings file (no hierarchy)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings YAML not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Expected YAML mapping, got {type(raw).__name__} in {path}")

    return settings_from_mapping(raw)
