# Copyright 2024-2025 Amiable Development
# SPDX-License-Identifier: Apache-2.0

"""
Bot settings loading.

This module provides:
- load_settings() to read bot settings from a YAML file
- apply_env_overrides() to layer ACTIONS_BOT_* environment variables on top

Settings keys are the ones ActionsOnGoogleBot accepts (id, port, debug,
actionId, clientId, errorMessage). They may sit at the top level of the
file or under an "actions_bot" section. Type checks are left to the bot,
which rejects invalid settings at construction.
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import logging
import os

import yaml

logger = logging.getLogger(__name__)


SETTINGS_SECTION = "actions_bot"

SETTINGS_KEYS = ("id", "port", "debug", "actionId", "clientId", "errorMessage")

# Environment variable -> settings key
ENV_OVERRIDES = {
    "ACTIONS_BOT_ID": "id",
    "ACTIONS_BOT_PORT": "port",
    "ACTIONS_BOT_ACTION_ID": "actionId",
    "ACTIONS_BOT_CLIENT_ID": "clientId",
    "ACTIONS_BOT_ERROR_MESSAGE": "errorMessage",
}


class ConfigError(Exception):
    """Raised when a settings file cannot be read."""


def load_settings(path: Union[str, Path]) -> Dict[str, Any]:
    """Load bot settings from a YAML file.

    Args:
        path: Path to the settings file

    Returns:
        Settings mapping with unknown keys dropped

    Raises:
        ConfigError: If the file is missing or is not valid YAML
    """
    config_path = Path(path)

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Cannot read settings from {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Settings in {config_path} must be a mapping")

    section = data.get(SETTINGS_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigError(f"'{SETTINGS_SECTION}' in {config_path} must be a mapping")

    unknown = sorted(set(section) - set(SETTINGS_KEYS) - {SETTINGS_SECTION})
    if unknown:
        logger.warning(f"Ignoring unknown settings in {config_path}: {', '.join(unknown)}")

    return {key: section[key] for key in SETTINGS_KEYS if key in section}


def apply_env_overrides(
    settings: Mapping[str, Any],
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Return settings with ACTIONS_BOT_* environment variables applied.

    Raises:
        ConfigError: If ACTIONS_BOT_PORT is not a number
    """
    environ = os.environ if environ is None else environ
    result = dict(settings)

    for var, key in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        if key == "port":
            if not value.isdigit():
                raise ConfigError(f"{var} must be a port number, got {value!r}")
            result[key] = int(value)
        else:
            result[key] = value

    if environ.get("ACTIONS_BOT_DEBUG") == "1":
        result["debug"] = True

    return result
