"""
Handles loading and validation of configuration settings.

This module is responsible for loading, merging, and validating configuration settings from:
1. The config.yaml file (primary configuration source)
2. Environment variables (for secrets and overrides)

It provides a unified configuration access mechanism through the get_config_value function,
ensures settings are validated against expected types and requirements, and makes the
configuration available throughout the application.

Key components:
- APP_CONFIG: The global configuration dictionary
- get_config_value: Function to retrieve values using dot notation
- validate_config: Validates configuration against expected structure and types
- load_app_config: Loads and merges configuration from all sources
"""

import json
import logging
import os
import sys
from typing import Any, Dict, Tuple

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Environment variables from .env are loaded before anything reads os.environ
load_dotenv()

APP_CONFIG: Dict[str, Any] = {}

__all__ = [
    "APP_CONFIG",
    "load_app_config",
    "get_config_value",
    "validate_config",
]

DEFAULT_CONFIG_STRUCTURE = {
    "bot_settings": {
        "bot_name": "Venue Admin Console",
        "log_file_name": "venue_admin.log",
        "db_file_name": "venue_admin.db",
        "debug_mode": False,
        "log_level": "INFO",
    },
    "discord": {
        "token": None,  # Secret
        "guild_id": None,
        "admin_log_channel_id": None,
        "command_authorized_roles": [],
        "command_channel_ids": [],
    },
    "api": {
        "base_url": None,
        "timeout_seconds": 30,
        "transport_retries": 0,
        "user_agent": "Venue Admin Console/1.0",
    },
    "session": {
        "cookie_name": "adminToken",
        "remember_me_days": 30,
        "default_days": 1,
    },
    "list_settings": {
        "page_size": 10,
        "search_debounce_ms": 300,
        "view_timeout_seconds": 600,
    },
    "notification_settings": {
        "poll_interval_minutes": 5,
    },
    "message_settings": {
        "templates_file": "message_templates.json",
        "embed_colors": {
            "success": "0x73d100",
            "error": "0xff0000",
            "info": "0x17a2b8",
            "warning": "0xffc107",
        },
        "embed_footer_text": "Powered by {bot_name}",
        "bot_display_name_in_messages": "Venue Admin",
    },
}

# (type, is_required, default_value)
EXPECTED_CONFIG: Dict[str, Tuple[type, bool, Any]] = {
    "bot_settings.bot_name": (str, False, "Venue Admin Console"),
    "bot_settings.log_file_name": (str, False, "venue_admin.log"),
    "bot_settings.db_file_name": (str, False, "venue_admin.db"),
    "bot_settings.debug_mode": (bool, False, False),
    "bot_settings.log_level": (str, False, "INFO"),
    "discord.token": (str, True, None),
    "discord.guild_id": (str, True, None),
    "discord.admin_log_channel_id": (str, False, None),
    "discord.command_authorized_roles": (list, True, []),
    "discord.command_channel_ids": (list, False, []),
    "api.base_url": (str, True, None),
    "api.timeout_seconds": (int, False, 30),
    "api.transport_retries": (int, False, 0),
    "api.user_agent": (str, False, "Venue Admin Console/1.0"),
    "session.cookie_name": (str, False, "adminToken"),
    "session.remember_me_days": (int, False, 30),
    "session.default_days": (int, False, 1),
    "list_settings.page_size": (int, False, 10),
    "list_settings.search_debounce_ms": (int, False, 300),
    "list_settings.view_timeout_seconds": (int, False, 600),
    "notification_settings.poll_interval_minutes": (int, False, 5),
    "message_settings.templates_file": (str, False, "message_templates.json"),
    "message_settings.embed_colors": (dict, False, {}),
    "message_settings.embed_footer_text": (str, False, "Powered by {bot_name}"),
    "message_settings.bot_display_name_in_messages": (str, False, "Venue Admin"),
}

# Secrets and the backend origin get short, conventional env var names
ENV_VAR_ALIASES = {
    ("discord", "token"): "DISCORD_TOKEN",
    ("api", "base_url"): "VENUE_API_BASE_URL",
}


def _load_yaml_config(path: str = "config.yaml") -> Dict[str, Any]:
    """Loads configuration from a YAML file."""
    try:
        if os.path.exists(path):
            with open(path, "r") as f:
                yaml_config = yaml.safe_load(f)
                logger.info(f"Successfully loaded configuration from {path}")
                return yaml_config or {}
        else:
            logger.warning(
                f"YAML configuration file not found at {path}. "
                "Ensure 'config.yaml' exists or all settings are provided via environment variables."
            )
            return {}
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML configuration file {path}: {e}")
        sys.exit(f"Critical error: Could not parse {path}. Please check its syntax.")
    except OSError as e:
        logger.error(f"Unexpected error loading YAML configuration {path}: {e}")
        return {}


def _get_typed_env_var(key: str, default_value: Any, expected_type: type) -> Any:
    """Gets an environment variable and attempts to cast it to the expected type."""
    value = os.getenv(key)
    if value is None:
        return default_value

    try:
        if expected_type is bool:
            return value.lower() in ("true", "1", "t", "yes", "y")
        if expected_type is int:
            return int(value)
        if expected_type is list:  # comma-separated
            return [item.strip() for item in value.split(",") if item.strip()]
        if expected_type is dict:
            return json.loads(value)
        return expected_type(value)
    except ValueError:
        logger.warning(
            f"Could not cast environment variable {key}='{value}' to {expected_type}. Using default: {default_value}"
        )
        return default_value


def _merge_configs(
    yaml_config: Dict[str, Any], defaults: Dict[str, Any]
) -> Dict[str, Any]:
    """Merges YAML config over the default structure, section by section."""
    merged_config = {}

    for section, section_defaults in defaults.items():
        merged_config[section] = section_defaults.copy()
        yaml_section = yaml_config.get(section, {})

        if isinstance(yaml_section, dict) and isinstance(merged_config[section], dict):
            for key, default_val in section_defaults.items():
                merged_config[section][key] = yaml_section.get(key, default_val)
        elif yaml_section is not None:
            merged_config[section] = yaml_section

    return merged_config


def _apply_env_vars_to_merged_config(
    config_dict: Dict[str, Any], defaults: Dict[str, Any]
):
    """Applies environment variables to the config_dict based on default structure.
    Environment variables are expected to be in format SECTION_KEY=value (e.g., API_TIMEOUT_SECONDS=10).
    This will override values previously set by YAML or defaults if the env var is present.
    """
    for section_name, section_defaults in defaults.items():
        if section_name not in config_dict:
            config_dict[section_name] = {}
        for key_name, default_value in section_defaults.items():
            env_var_key = ENV_VAR_ALIASES.get(
                (section_name, key_name), f"{section_name.upper()}_{key_name.upper()}"
            )
            expected_type = type(default_value) if default_value is not None else str

            if os.getenv(env_var_key) is None:
                continue

            current_val_in_config = config_dict[section_name].get(
                key_name, default_value
            )
            env_val = _get_typed_env_var(
                env_var_key, current_val_in_config, expected_type
            )
            config_dict[section_name][key_name] = env_val
            logger.debug(
                f"Applied environment variable '{env_var_key}' to '{section_name}.{key_name}'"
            )


def load_app_config(path: str = "config.yaml") -> Dict[str, Any]:
    """
    Load application configuration from YAML and environment variables.

    The configuration loading follows this priority order:
    - Defaults from DEFAULT_CONFIG_STRUCTURE
    - Base settings from config.yaml
    - Overrides from environment variables

    Returns:
        Dict[str, Any]: The loaded configuration dictionary
    """
    global APP_CONFIG

    yaml_config = _load_yaml_config(path)
    merged_config = _merge_configs(yaml_config, DEFAULT_CONFIG_STRUCTURE)
    _apply_env_vars_to_merged_config(merged_config, DEFAULT_CONFIG_STRUCTURE)

    APP_CONFIG = merged_config

    logger.debug(f"Configuration loaded with {len(APP_CONFIG)} top-level keys.")
    return APP_CONFIG


load_app_config()


def get_config_value(path: str, default: Any = None) -> Any:
    """
    Retrieves a configuration value using dot notation path.

    Args:
        path: Dot-notation path to the configuration value (e.g., 'api.base_url')
        default: Value to return if the path is not found

    Returns:
        The configuration value at the specified path, or the default if not found

    Examples:
        >>> get_config_value('list_settings.page_size', 25)
        10
        >>> get_config_value('nonexistent.path', 'fallback')
        'fallback'
    """
    if not APP_CONFIG:
        load_app_config()

    parts = path.split(".")
    current = APP_CONFIG
    for part in parts:
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return default
    return current if current is not None else default


def validate_config() -> None:
    """
    Validates the loaded configuration against expected types and requirements.

    Critical problems (missing required keys, wrong types, bad values) are all
    logged before exiting, so one run reports every issue at once.

    Raises:
        SystemExit: If a critical configuration error is found
    """
    logger.info("Validating configuration...")
    valid = True

    for key, (p_type, is_required, _default) in EXPECTED_CONFIG.items():
        val = get_config_value(key)

        if val is None:
            if is_required:
                logger.critical(
                    f"Config Error: Required key '{key}' is missing or not set."
                )
                valid = False
            continue

        type_valid = True
        if p_type is list and not isinstance(val, list):
            type_valid = False
        elif p_type is dict and not isinstance(val, dict):
            type_valid = False
        elif p_type is int and (isinstance(val, bool) or not isinstance(val, int)):
            type_valid = False
        elif p_type is bool and not isinstance(val, bool):
            type_valid = False
        elif p_type is str and not isinstance(val, str):
            type_valid = False

        if not type_valid:
            logger.critical(
                f"Config Error: Key '{key}' (value: '{val}', type: {type(val).__name__}) must be of type {p_type.__name__}."
            )
            valid = False
            continue

        if key == "bot_settings.log_level":
            if val.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
                logger.critical(
                    f"Config Error: '{key}' (value: {val}) must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL."
                )
                valid = False

        elif key in ["discord.guild_id", "discord.admin_log_channel_id"]:
            if not val.isdigit():
                logger.critical(
                    f"Config Error: '{key}' (value: {val}) must be a valid Discord ID (string of digits)."
                )
                valid = False

        elif key == "discord.command_authorized_roles":
            if not val:
                logger.critical(
                    f"Config Error: Required key '{key}' cannot be an empty list."
                )
                valid = False
            elif not all(isinstance(item, str) for item in val):
                logger.critical(
                    f"Config Error: All items in '{key}' must be strings (names or IDs)."
                )
                valid = False

        elif key == "api.base_url":
            if not (val.startswith("http://") or val.startswith("https://")):
                logger.critical(
                    f"Config Error: Key '{key}' (value: {val}) must be an HTTP/HTTPS URL."
                )
                valid = False

        elif key == "api.transport_retries":
            if val < 0:
                logger.critical(
                    f"Config Error: Key '{key}' (value: {val}) must be a non-negative integer."
                )
                valid = False

        elif isinstance(val, int) and key in [
            "api.timeout_seconds",
            "session.remember_me_days",
            "session.default_days",
            "list_settings.page_size",
            "list_settings.view_timeout_seconds",
            "notification_settings.poll_interval_minutes",
        ]:
            if val <= 0:
                logger.critical(
                    f"Config Error: Key '{key}' (value: {val}) must be a positive integer."
                )
                valid = False

        elif key == "list_settings.search_debounce_ms" and val < 0:
            logger.critical(
                f"Config Error: Key '{key}' (value: {val}) must be a non-negative integer."
            )
            valid = False

        elif key == "message_settings.embed_colors":
            for color_name, color_value in val.items():
                if not (
                    isinstance(color_value, str)
                    and color_value.startswith("0x")
                    and len(color_value) == 8
                    and all(c in "0123456789abcdefABCDEF" for c in color_value[2:])
                ):
                    logger.critical(
                        f"Config Error: In '{key}', color value '{color_value}' for '{color_name}' is not a valid hex color string (e.g., '0xFF00FF')."
                    )
                    valid = False
                    break

    if not valid:
        logger.critical(
            "Configuration validation failed. Please check your config.yaml and .env files."
        )
        sys.exit(1)
    logger.info("Configuration validated successfully.")
