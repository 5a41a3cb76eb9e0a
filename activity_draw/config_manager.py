"""
Configuration management module for the activity card draw.
Handles loading the packaged defaults and merging them with a user config.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULTS_PATH = Path(__file__).parent / "configs" / "DEFAULTSCONFIG.yml"


def deep_merge_dicts(base: Dict[Any, Any], override: Dict[Any, Any]) -> Dict[Any, Any]:
    """
    Recursively merge two dictionaries, with override values taking precedence.

    Args:
        base: Base dictionary (typically defaults)
        override: Override dictionary (typically user config)

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def load_defaults() -> Dict[str, Any]:
    with open(DEFAULTS_PATH, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(user_config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration by merging defaults with user config.

    Args:
        user_config_path: Path to user configuration file. Falls back to
            $ACTIVITY_DRAW_CONFIG when omitted.

    Returns:
        Merged configuration dictionary with environment overrides applied
    """
    default_config = load_defaults()

    user_config_path = user_config_path or os.getenv("ACTIVITY_DRAW_CONFIG")
    if not user_config_path:
        return apply_env_overrides(default_config)

    if os.path.exists(user_config_path):
        with open(user_config_path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
    else:
        raise FileNotFoundError(f"User config file not found: {user_config_path}")

    merged_config = deep_merge_dicts(default_config, user_config)

    return apply_env_overrides(merged_config)


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply ACTIVITY_DRAW_STORE / ACTIVITY_DRAW_HISTORY path overrides."""
    result_config = copy.deepcopy(config)
    store = result_config.setdefault("store", {})

    if os.getenv("ACTIVITY_DRAW_STORE"):
        store["config_path"] = os.environ["ACTIVITY_DRAW_STORE"]
    if os.getenv("ACTIVITY_DRAW_HISTORY"):
        store["history_path"] = os.environ["ACTIVITY_DRAW_HISTORY"]

    return result_config


def apply_cli_overrides(config: Dict[str, Any], args) -> Dict[str, Any]:
    """
    Apply command line argument overrides to configuration.
    Returns a copy of the config with overrides applied.

    Args:
        config: Base configuration dictionary
        args: Parsed command line arguments

    Returns:
        Configuration with CLI overrides applied
    """
    result_config = copy.deepcopy(config)
    store = result_config.setdefault("store", {})

    if getattr(args, "store", None) is not None:
        store["config_path"] = args.store

    if getattr(args, "history_file", None) is not None:
        store["history_path"] = args.history_file

    if getattr(args, "strict", False):
        result_config.setdefault("policy", {})["reject_over_allocation"] = True

    return result_config
