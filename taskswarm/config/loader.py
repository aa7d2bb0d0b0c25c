"""Configuration loading and saving."""

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from taskswarm.config.schema import Config


def get_config_path() -> Path:
    """Default config file location."""
    return Path.home() / ".taskswarm" / "config.json"


def load_config(path: Path | None = None) -> Config:
    """
    Load configuration from a JSON file and TASKSWARM_* environment variables.

    A missing file yields defaults. An unreadable or invalid file is
    logged and also yields defaults.

    Args:
        path: Config file path. Defaults to ~/.taskswarm/config.json.

    Returns:
        The loaded Config.
    """
    path = path or get_config_path()

    data: dict[str, Any] = {}
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read config from {path}: {e}; using defaults")
            data = {}

    try:
        return Config(**data)
    except ValidationError as e:
        logger.warning(f"Invalid config in {path}: {e}; using defaults")
        return Config()


def save_config(config: Config, path: Path | None = None) -> Path:
    """Write configuration as JSON and return the path written."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
    return path
