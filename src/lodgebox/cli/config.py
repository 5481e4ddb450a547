"""Configuration utilities for the lodgebox CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path

from lodgebox.core.config import EndpointConfig, UploadConfig


def get_config_dir() -> Path:
    """Get the configuration directory for lodgebox.

    Returns:
        Path to ~/.lodgebox or equivalent.
    """
    return Path.home() / ".lodgebox"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_state_db_path() -> Path:
    """Get the path to the outbox database."""
    return get_config_dir() / "outbox.db"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_endpoint_config(config: dict[str, str]) -> EndpointConfig | None:
    """Build the endpoint configuration, or None if not configured."""
    if not config.get("server_url"):
        return None
    return EndpointConfig(base_url=config["server_url"])


def get_upload_config(config: dict[str, str]) -> UploadConfig | None:
    """Build the image upload configuration, or None if not configured."""
    if not config.get("cloud_name") or not config.get("upload_preset"):
        return None
    return UploadConfig(
        cloud_name=config["cloud_name"],
        upload_preset=config["upload_preset"],
    )
