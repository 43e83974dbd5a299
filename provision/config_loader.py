# provision/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the application.

Handles loading settings from Pydantic model defaults, YAML files,
environment variables, and command-line arguments, applying a specific
order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (via Pydantic's BaseSettings)
3. YAML Configuration File
4. Command-Line Arguments
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from provision.exceptions import ConfigurationError

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"

# argparse attribute -> path inside AppSettings
CLI_OVERRIDES: Dict[str, Tuple[str, ...]] = {
    "log_prefix": ("log_prefix",),
    "os_release_path": ("os_release_path",),
    "smoke_image": ("docker", "smoke_image"),
    "channel": ("docker", "channel"),
    "home_dir": ("shell", "home_dir"),
}


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates `source` with values from `overrides`. Nested
    dictionaries are merged key by key; None values in `overrides` never
    replace an existing value.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def _cli_overrides(cli_args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for attr, path in CLI_OVERRIDES.items():
        value = getattr(cli_args, attr, None)
        if value is None:
            continue
        target = overrides
        for part in path[:-1]:
            target = target.setdefault(part, {})
        target[path[-1]] = value
    return overrides


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings with the precedence described in the module
    docstring.

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file. Falls back to
            ``cli_args.config_file`` and then ``config.yaml``.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        ConfigurationError: The merged values do not validate.
    """
    logger_to_use = current_logger if current_logger else module_logger

    try:
        settings_after_env_and_defaults = AppSettings()
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid settings in environment: {e}", original_error=e
        ) from e
    current_values_dict = settings_after_env_and_defaults.model_dump(
        mode="json", exclude_defaults=False
    )

    if config_file_path is None:
        config_file_path = getattr(cli_args, "config_file", None) or DEFAULT_CONFIG_FILE

    yaml_config_path = Path(config_file_path)
    if yaml_config_path.exists() and yaml_config_path.is_file():
        try:
            with open(yaml_config_path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f)
            if yaml_data and isinstance(yaml_data, dict):
                current_values_dict = _deep_update(
                    current_values_dict, yaml_data
                )
                logger_to_use.info(
                    f"Loaded configuration from {yaml_config_path}"
                )
            elif yaml_data is not None:
                logger_to_use.warning(
                    f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
                )
        except yaml.YAMLError as e:
            logger_to_use.warning(
                f"Could not parse YAML config file '{yaml_config_path}': {e}. Using defaults and environment variables."
            )
        except IOError as e:
            logger_to_use.warning(
                f"Could not read config file '{yaml_config_path}': {e}. Using defaults and environment variables."
            )
    else:
        logger_to_use.info(
            f"Configuration file '{yaml_config_path}' not found. Using defaults, environment variables, and CLI args."
        )

    if cli_args is not None:
        current_values_dict = _deep_update(
            current_values_dict, _cli_overrides(cli_args)
        )

    try:
        return AppSettings.model_validate(current_values_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}", original_error=e
        ) from e
