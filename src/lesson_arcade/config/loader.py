from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from .schema import Settings

DEFAULT_CONFIG_PATH = Path("config/default.yaml")
CONFIG_PATH_ENV_VAR = "LESSON_ARCADE_CONFIG"
OVERRIDES_ENV_VAR = "LESSON_ARCADE_CONFIG_OVERRIDES"

# Single-value shortcuts for switching model tiers without a JSON blob.
MODEL_ENV_VARS: Dict[str, Tuple[str, ...]] = {
    "LESSON_ARCADE_PROVIDER": ("model", "provider"),
    "LESSON_ARCADE_PRIMARY_MODEL": ("model", "primary"),
    "LESSON_ARCADE_FALLBACK_MODEL": ("model", "fallback"),
}


def read_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping, returning an empty mapping when the file is blank."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level.")
    return data


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries, letting override values replace base entries."""
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            result[key] = merge_dicts(base[key], value)
        else:
            result[key] = value
    return result


def _resolve_config_path(config_path: str | Path | None, environ: Mapping[str, str]) -> Optional[Path]:
    if config_path:
        return Path(config_path)
    from_env = environ.get(CONFIG_PATH_ENV_VAR)
    if from_env:
        return Path(from_env)
    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None


def _json_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    raw = environ.get(OVERRIDES_ENV_VAR)
    if not raw:
        return {}
    try:
        overrides = json.loads(raw)
    except json.JSONDecodeError as err:
        raise ValueError(f"Failed to parse {OVERRIDES_ENV_VAR} env var as JSON.") from err
    if not isinstance(overrides, dict):
        raise ValueError(f"{OVERRIDES_ENV_VAR} must be a JSON object.")
    return overrides


def _model_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_var, (section, key) in MODEL_ENV_VARS.items():
        value = environ.get(env_var)
        if value:
            overrides.setdefault(section, {})[key] = value.strip()
    return overrides


def load_settings(
    config_path: str | Path | None = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Read configuration, apply environment overrides, and return validated Settings.

    The file is ``config_path`` when given, else the path in ``LESSON_ARCADE_CONFIG``,
    else ``config/default.yaml`` when present; with none of those the built-in
    defaults apply. An explicitly named file must exist.

    Overrides are layered in order: the JSON object in
    ``LESSON_ARCADE_CONFIG_OVERRIDES``, then the single-value model variables
    (``LESSON_ARCADE_PROVIDER``, ``LESSON_ARCADE_PRIMARY_MODEL``,
    ``LESSON_ARCADE_FALLBACK_MODEL``). Invalid results raise ``ValueError``.
    """
    env = os.environ if environ is None else environ

    path = _resolve_config_path(config_path, env)
    data = read_yaml(path) if path is not None else {}
    data = merge_dicts(data, _json_overrides(env))
    data = merge_dicts(data, _model_overrides(env))

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
