"""Configuration loader for the auction watcher."""

import copy
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .models.listing import TARGET_SIZES
from .utils.logging import LOG_LEVELS

SIZE_TOKEN = re.compile(r"^\d\+\d$")

DEFAULT_CONFIG: Dict[str, Any] = {
    "source": {
        "url": "https://www.mesto-bohumin.cz/cz/radnice/byty-nebyty-nemovitosti/licitace-bytu",
        "base_url": "https://www.mesto-bohumin.cz",
        "timeout": 30,
    },
    "targets": {
        "sizes": sorted(TARGET_SIZES),
    },
    "notify": {
        "on_cold_start": False,
    },
    "email": {
        "enabled": True,
        "recipients": [],
        "subject": "New Property Listing Detected!",
    },
    "snapshot": {
        "backend": "file",
        "path": "/tmp/licitace_data.json",
        "key": "licitace",
        "write_on_fetch_failure": False,
    },
    "lock": {
        "enabled": False,
        "path": "/tmp/licitace_run.lock",
        "ttl_seconds": 600,
    },
    "logging": {
        "level": None,
        "dir": None,
    },
}


def load_config(config_path: Optional[str] = "./config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file and environment variables.

    Values from the file are merged over DEFAULT_CONFIG, so a file only
    needs the keys it changes.

    Args:
        config_path: Path to the YAML configuration file, or None to
                     run on defaults alone

    Returns:
        Dictionary containing merged configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    # Load environment variables from .env file
    load_dotenv()

    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {config_path}\n"
                f"Copy config/config.example.yaml to config/config.yaml and customize it."
            )

        with open(config_file, "r", encoding="utf-8") as f:
            overrides = yaml.safe_load(f) or {}
        if not isinstance(overrides, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_path}")

        _merge(config, overrides)

    _validate_config(config)

    return config


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> None:
    """Recursively merge overrides into base in place."""
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


def _validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration structure."""
    if not config.get("source", {}).get("url"):
        raise ValueError("Missing source url configuration")

    sizes = config.get("targets", {}).get("sizes")
    if not isinstance(sizes, list) or not sizes:
        raise ValueError("targets.sizes must be a non-empty list")
    for size in sizes:
        if not isinstance(size, str) or not SIZE_TOKEN.match(size):
            raise ValueError(f"Invalid target size: {size!r} (expected e.g. '3+1')")

    backend = config.get("snapshot", {}).get("backend")
    if backend not in ("file", "postgres"):
        raise ValueError(f"snapshot.backend must be 'file' or 'postgres', got {backend!r}")

    recipients = config.get("email", {}).get("recipients")
    if recipients is not None and not isinstance(recipients, list):
        raise ValueError("email.recipients must be a list")

    level = config.get("logging", {}).get("level")
    if level is not None and (not isinstance(level, str) or level.upper() not in LOG_LEVELS):
        raise ValueError(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {level!r}")


def get_env(key: str, default: str = None, required: bool = False) -> str:
    """
    Get environment variable with optional default and required check.

    Args:
        key: Environment variable name
        default: Default value if not set
        required: If True, raise error when not set

    Returns:
        Environment variable value

    Raises:
        ValueError: If required and not set
    """
    value = os.getenv(key, default)
    if required and not value:
        raise ValueError(f"Required environment variable not set: {key}")
    return value
