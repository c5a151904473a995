"""Configuration hierarchy — merges sources in priority order.

Precedence (later overrides earlier):
  1. Package defaults
  2. Global config   (~/.md2docx/config.yaml)
  3. Project config   (md2docx.yaml, nearest one from cwd upward)
  4. Environment variables (MD2DOCX_*)
  5. Runtime arguments
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from md2docx.config.defaults import get_defaults
from md2docx.config.loader import load_yaml

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_PATH = Path.home() / ".md2docx" / "config.yaml"
_PROJECT_CONFIG_NAME = "md2docx.yaml"

_ENV_PREFIX = "MD2DOCX_"

# Environment suffixes that do not spell their config key
_ENV_ALIASES: dict[str, str] = {
    "STYLES": "styles_path",
}

_INT_KEYS = frozenset({
    "image_max_width",
    "image_quality",
    "display_max_width",
    "cache_max_size",
    "max_concurrent_fetches",
    "max_retries",
})
_FLOAT_KEYS = frozenset({"fetch_timeout", "cache_max_age", "retry_wait"})
_BOOL_KEYS = frozenset({"cache_disabled"})

_TRUTHY = {"1", "true", "yes", "on"}


def load_config_hierarchy(**runtime_overrides: Any) -> dict[str, Any]:
    """Load and merge configuration from all sources.

    Runtime overrides set to None are treated as "not given".
    """
    config = get_defaults()
    for path in _config_files():
        config.update(_load_yaml_config(path) or {})
    config.update(_load_env_vars(config))
    config.update({k: v for k, v in runtime_overrides.items() if v is not None})
    return config


def _config_files() -> Iterator[Path]:
    yield _GLOBAL_CONFIG_PATH
    project = _find_project_config()
    if project is not None:
        yield project


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    """Read one config layer; unreadable or malformed files are skipped."""
    if not path.is_file():
        return None
    try:
        return load_yaml(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Ignoring config file %s: %s", path, e)
        return None


def _find_project_config() -> Path | None:
    cwd = Path.cwd()
    for directory in (cwd, *cwd.parents):
        candidate = directory / _PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def _load_env_vars(known: dict[str, Any]) -> dict[str, Any]:
    """Collect MD2DOCX_<KEY> variables whose key is a known setting."""
    result: dict[str, Any] = {}
    for name, value in os.environ.items():
        if not name.startswith(_ENV_PREFIX):
            continue
        suffix = name[len(_ENV_PREFIX):]
        key = _ENV_ALIASES.get(suffix, suffix.lower())
        if key in known or key in _ENV_ALIASES.values():
            result[key] = _coerce_env_value(key, value)
    return result


def _coerce_env_value(key: str, value: str) -> Any:
    """Convert an environment string to the type the setting expects."""
    if key in _BOOL_KEYS:
        return value.strip().lower() in _TRUTHY
    target = int if key in _INT_KEYS else float if key in _FLOAT_KEYS else None
    if target is None:
        return value
    try:
        return target(value)
    except ValueError:
        logger.warning("Cannot convert %s%s=%r to %s", _ENV_PREFIX, key.upper(), value, target.__name__)
        return value
