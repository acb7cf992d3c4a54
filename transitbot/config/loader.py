"""Configuration loading and saving."""

import json
from pathlib import Path

from loguru import logger

from transitbot.config.schema import Config


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".transitbot" / "config.json"


def load_config(path: Path | None = None) -> Config:
    """
    Load configuration from a JSON file, falling back to defaults.

    Environment variables (``TRANSITBOT_*``) are applied on top of the
    file values that are not set explicitly.
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        return Config()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}, using defaults")
        return Config()

    return Config(**data)


def save_config(config: Config, path: Path | None = None) -> Path:
    """Write configuration to disk as camelCase JSON."""
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(by_alias=True)
    config_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return config_path
