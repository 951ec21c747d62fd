"""Configuration management."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

_config: Dict[str, Any] = {}
_loaded: bool = False
_base_path: Optional[Path] = None

DEFAULTS: Dict[str, Any] = {
    "runtime": {
        "package": None,
        "fail_on_error": False,
    },
    "reload": {
        "strategy": "reload_module",
        "path_pattern": r"(?:^|/)src/(.+)\.py$",
        "package_prefix": "",
    },
    "applications": {},
    "logging": {
        "level": "INFO",
        "file": None,
    },
    "api": {
        "host": "127.0.0.1",
        "port": 8000,
        "changelog_size": 200,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str = None) -> Dict[str, Any]:
    """Load configuration from YAML file, layered over the defaults."""
    global _config, _loaded, _base_path

    if config_path is None:
        # Try to find config in common locations
        possible_paths = [
            Path("config/modkernel.yaml"),
            Path("modkernel.yaml"),
            Path.home() / ".config" / "modkernel" / "config.yaml",
        ]
        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break

    if config_path is None:
        logger.warning("No modkernel.yaml found, using defaults")
        _config = _merge(DEFAULTS, {})
        _base_path = Path.cwd()
        _loaded = True
        return _config

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    _base_path = config_path.resolve().parent

    with open(config_path) as f:
        _config = _merge(DEFAULTS, yaml.safe_load(f) or {})

    # Resolve relative paths
    _resolve_paths()
    _loaded = True

    logger.info(f"Loaded configuration from {config_path}")
    return _config


def _resolve_paths():
    """Resolve relative paths in config to absolute paths."""
    log_file = _config.get("logging", {}).get("file")
    if log_file:
        path = Path(log_file)
        if not path.is_absolute():
            _config["logging"]["file"] = str(_base_path / path)


def get_config() -> Dict[str, Any]:
    """Get the loaded configuration."""
    if not _loaded:
        load_config()
    return _config


def get(key: str, default: Any = None) -> Any:
    """Get a config value by dot-notation key (e.g., 'reload.strategy')."""
    keys = key.split(".")
    value = get_config()
    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default
    return default if value is None else value


def reset_config():
    """Forget the loaded configuration (used by tests)."""
    global _config, _loaded, _base_path
    _config = {}
    _loaded = False
    _base_path = None
