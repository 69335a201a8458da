"""Configuration loading utilities."""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from adu_pvcontrol.config.defaults import ADU_CONFIG_FOLDER
from adu_pvcontrol.config.schema import Config

CONFIG_ENV_VAR = "ADU_PVCONTROL_CONFIG"


def get_config_path() -> Path:
    """Get the configuration file path (``ADU_PVCONTROL_CONFIG`` wins)."""
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return Path(ADU_CONFIG_FOLDER) / "pvcontrol-handler.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, falling back to defaults.

    Environment variables from ``/etc/adu/.env`` are loaded first without
    overriding the process environment. Values in the file take precedence
    over ``ADU_PVCONTROL_*`` variables.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    load_dotenv(Path(ADU_CONFIG_FOLDER) / ".env", override=False)
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("Config root must be a JSON object")
            return Config(**convert_keys(raw))
        except (OSError, json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning("Failed to load config from {}: {}. Using defaults.", path, e)

    return Config()


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)
