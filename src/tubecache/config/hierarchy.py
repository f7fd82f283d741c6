"""Configuration hierarchy: layered sources merged into one flat mapping.

Later layers win:
  1. Package defaults
  2. ~/.tubecache/config.yaml
  3. tubecache.yaml in the working directory or the nearest parent
  4. Environment (YOUTUBE_API_KEY, TUBECACHE_*)
  5. Runtime arguments that are not None

``ttl_seconds`` and ``quota_costs`` merge key by key, so a layer may set a
single cost or TTL without restating the rest. The environment reaches them
through TUBECACHE_QUOTA_COST_<KIND> and TUBECACHE_TTL_<NAMESPACE>, where an
empty TTL value means "never expires".
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml

from tubecache.config.defaults import get_defaults

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_PATH = Path.home() / ".tubecache" / "config.yaml"
_PROJECT_CONFIG_NAME = "tubecache.yaml"

_ENV_MAP: dict[str, str] = {
    "YOUTUBE_API_KEY": "api_key",
    "TUBECACHE_API_KEY": "api_key",
    "TUBECACHE_CHANNEL_ID": "channel_id",
    "TUBECACHE_BASE_URL": "base_url",
    "TUBECACHE_REQUEST_TIMEOUT": "request_timeout",
    "TUBECACHE_MAX_RETRIES": "max_retries",
    "TUBECACHE_CACHE_DB_PATH": "cache_db_path",
    "TUBECACHE_MAX_CACHE_MB": "max_cache_mb",
    "TUBECACHE_SWEEP_INTERVAL": "sweep_interval_seconds",
    "TUBECACHE_DAILY_QUOTA_LIMIT": "daily_quota_limit",
    "TUBECACHE_QUOTA_RETENTION_DAYS": "quota_retention_days",
    "TUBECACHE_LOG_LEVEL": "log_level",
}

_ENV_COST_PREFIX = "TUBECACHE_QUOTA_COST_"
_ENV_TTL_PREFIX = "TUBECACHE_TTL_"

_TYPE_MAP: dict[str, type] = {
    "request_timeout": float,
    "max_retries": int,
    "max_cache_mb": float,
    "sweep_interval_seconds": float,
    "daily_quota_limit": int,
    "quota_retention_days": int,
}

_MERGED_MAPPINGS = ("ttl_seconds", "quota_costs")


def load_config_hierarchy(**runtime_overrides: Any) -> dict[str, Any]:
    """Merge every configuration layer and return the resolved mapping."""
    config = get_defaults()
    for source, layer in _layers(runtime_overrides):
        if layer:
            logger.debug("Applying config layer: %s", source)
            _merge(config, layer)
    return config


def _layers(runtime_overrides: Mapping[str, Any]) -> Iterator[tuple[str, dict[str, Any]]]:
    yield str(_GLOBAL_CONFIG_PATH), _load_yaml_config(_GLOBAL_CONFIG_PATH) or {}

    project_path = _find_project_config()
    if project_path is not None:
        yield str(project_path), _load_yaml_config(project_path) or {}

    yield "environment", _load_env_vars()
    yield "runtime", {k: v for k, v in runtime_overrides.items() if v is not None}


def _merge(config: dict[str, Any], layer: Mapping[str, Any]) -> None:
    for key, value in layer.items():
        if key in _MERGED_MAPPINGS and isinstance(value, Mapping):
            config[key] = {**(config.get(key) or {}), **value}
        else:
            config[key] = value


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    """Parse ``path`` as a YAML mapping; missing or unusable files yield None."""
    if not path.is_file():
        return None
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level must be a mapping", path)
        return None
    return data


def _find_project_config() -> Path | None:
    """Nearest tubecache.yaml from the working directory upward."""
    here = Path.cwd()
    return next(
        (d / _PROJECT_CONFIG_NAME for d in (here, *here.parents)
         if (d / _PROJECT_CONFIG_NAME).is_file()),
        None,
    )


def _load_env_vars() -> dict[str, Any]:
    """Collect settings from the process environment."""
    env = os.environ
    result: dict[str, Any] = {
        config_key: _coerce_env_value(config_key, env[env_key])
        for env_key, config_key in _ENV_MAP.items()
        if env_key in env
    }

    costs: dict[str, Any] = {}
    ttls: dict[str, Any] = {}
    for name, raw in env.items():
        if name.startswith(_ENV_COST_PREFIX):
            costs[name[len(_ENV_COST_PREFIX):].lower()] = _to_number(name, raw, int)
        elif name.startswith(_ENV_TTL_PREFIX):
            ttls[name[len(_ENV_TTL_PREFIX):].lower()] = (
                None if raw == "" else _to_number(name, raw, float)
            )
    if costs:
        result["quota_costs"] = costs
    if ttls:
        result["ttl_seconds"] = ttls
    return result


def _coerce_env_value(key: str, value: str) -> Any:
    """Convert a raw env string to the type its config key expects."""
    target = _TYPE_MAP.get(key)
    return value if target is None else _to_number(key, value, target)


def _to_number(name: str, value: str, target: type) -> Any:
    # Unconvertible values pass through so Settings validation reports them.
    try:
        return target(value)
    except ValueError:
        logger.warning("Cannot convert %s=%r to %s", name, value, target.__name__)
        return value
