"""Configuration loading utilities for media-transform."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import yaml
from jsonschema import Draft202012Validator

from .constants import CONFIGS_DIR, SCHEMAS_DIR

DEFAULT_CONFIG_PATH = CONFIGS_DIR / "default.yaml"
CONFIG_SCHEMA_PATH = SCHEMAS_DIR / "config.schema.json"


class ConfigError(Exception):
    """Raised when configuration loading fails."""


def load_default_config() -> Dict[str, Any]:
    """Load the default configuration shipped with the package.

    Returns
    -------
    Dict[str, Any]
        Parsed configuration dictionary.

    Raises
    ------
    ConfigError
        If the default configuration file is missing or cannot be parsed.
    """

    if not DEFAULT_CONFIG_PATH.exists():
        raise ConfigError(f"Default config not found at {DEFAULT_CONFIG_PATH}")
    return _read_yaml(DEFAULT_CONFIG_PATH)


def load_custom_config(path: Path) -> Dict[str, Any]:
    """Load configuration from a user-provided YAML file."""

    if not path.exists():
        raise ConfigError(f"Config path does not exist: {path}")
    return _read_yaml(path)


def load_config(config_path: Path | None = None) -> Dict[str, Any]:
    """Load configuration from a provided path merged over the defaults.

    Parameters
    ----------
    config_path : Path | None
        Optional path to a configuration file overriding the default.

    Returns
    -------
    Dict[str, Any]
        Parsed and validated configuration dictionary.
    """

    base = load_default_config()
    if config_path is None or config_path == DEFAULT_CONFIG_PATH:
        merged = base
    else:
        merged = {**base, **load_custom_config(config_path)}

    problems = validate_config(merged)
    if problems:
        raise ConfigError("Invalid configuration: " + "; ".join(problems))
    return merged


def validate_config(config: Dict[str, Any]) -> List[str]:
    """Validate a configuration dictionary against the bundled JSON schema.

    Returns a list of human readable problems; empty when the config is valid.
    """

    with CONFIG_SCHEMA_PATH.open("r", encoding="utf-8") as f:
        schema = json.load(f)
    validator = Draft202012Validator(schema)
    problems = []
    for error in sorted(validator.iter_errors(config), key=lambda e: list(e.path)):
        location = ".".join(str(part) for part in error.path) or "<root>"
        problems.append(f"{location}: {error.message}")
    return problems


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return data
