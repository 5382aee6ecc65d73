"""
User configuration for flexipos.

Defaults for the train command can be stored in a JSON file:
  ~/.flexipos/config.json  (default)

The configuration directory can be moved with:
  - Environment variable: FLEXIPOS_CONFIG_DIR
  - Environment variable: XDG_CONFIG_HOME (uses $XDG_CONFIG_HOME/flexipos)

Individual defaults can also be overridden per process with the
FLEXIPOS_LANGUAGE and FLEXIPOS_FORMAT environment variables. Explicit
command-line flags always win.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

CONFIG_KEYS = {
    "default_language": "FLEXIPOS_LANGUAGE",
    "default_format": "FLEXIPOS_FORMAT",
    "default_factory": None,
    "default_iterations": None,
    "default_cutoff": None,
}


def get_flexipos_config_dir(create: bool = True) -> Path:
    """
    Get the flexipos configuration directory.

    Checks in order:
    1. FLEXIPOS_CONFIG_DIR environment variable
    2. XDG_CONFIG_HOME environment variable (if set)
    3. ~/.flexipos/
    """
    if "FLEXIPOS_CONFIG_DIR" in os.environ:
        base = Path(os.environ["FLEXIPOS_CONFIG_DIR"])
    elif "XDG_CONFIG_HOME" in os.environ:
        base = Path(os.environ["XDG_CONFIG_HOME"]) / "flexipos"
    else:
        base = Path.home() / ".flexipos"

    if create:
        try:
            base.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            # Callers only need the path; writing will report the error
            logger.debug("Could not create config directory %s: %s", base, exc)
    return base


def get_config_file(create_dir: bool = True) -> Path:
    """Get the path to the flexipos configuration file."""
    return get_flexipos_config_dir(create=create_dir) / "config.json"


def read_config() -> dict:
    """
    Read the flexipos configuration file.

    Returns:
        Dictionary with configuration values (empty dict if the file is missing or corrupted)
    """
    config_file = get_config_file(create_dir=False)
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", config_file, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a JSON object", config_file)
        return {}
    return data


def write_config(config: dict) -> None:
    """Merge ``config`` into the configuration file."""
    unknown = set(config) - set(CONFIG_KEYS)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
    config_file = get_config_file()
    existing_config = read_config()
    existing_config.update(config)
    with open(config_file, "w", encoding="utf-8") as f:
        json.dump(existing_config, f, indent=2, ensure_ascii=False)
        f.write("\n")


def get_default(key: str, fallback: Optional[Any] = None) -> Any:
    """Resolve a default from the environment, then the config file, then ``fallback``."""
    if key not in CONFIG_KEYS:
        raise KeyError(key)
    env_var = CONFIG_KEYS[key]
    if env_var and os.environ.get(env_var):
        return os.environ[env_var]
    value = read_config().get(key)
    return fallback if value is None else value
