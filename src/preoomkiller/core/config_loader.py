"""
config_loader.py
- Loads the optional YAML settings file used to seed controller configuration.
"""

import os
import yaml
from loguru import logger

from preoomkiller.core.errors import ConfigError


def load_yaml(path):
    """
    Load a YAML mapping from disk.

    Args:
        path (str): Path to the YAML file. Empty means "no file".

    Returns:
        dict: Parsed mapping, or {} when no path is given.

    Raises:
        ConfigError: If the file is missing, unreadable, or not a mapping.
    """
    if not path:
        return {}

    if not os.path.exists(path):
        raise ConfigError(f"config file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to load {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")

    logger.info(f"[config] Loaded settings file {path} ({len(data)} keys)")
    return data
