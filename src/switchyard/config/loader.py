"""Configuration loading and management for Switchyard.

Functions:
    load_config: Load configuration from ~/.switchyard/config.yaml
    create_default_config: Write the default config.yaml
    ensure_config_dir: Ensure ~/.switchyard/ directory exists
    resolve_data_dir: Data directory from CLI flag, env var or config
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
import yaml

# Load .env file from current directory and ~/.switchyard/
load_dotenv()
load_dotenv(Path.home() / ".switchyard" / ".env")

from switchyard.config.models import (
    SwitchyardConfig,
    get_config_dir,
    get_default_config,
)
from switchyard.core.errors import ConfigError

CONFIG_FILE_NAME = "config.yaml"


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure the configuration directory and its data/logs subdirs exist.

    Returns:
        Path to the configuration directory.
    """
    config_dir = config_dir or get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "data").mkdir(exist_ok=True)
    (config_dir / "logs").mkdir(exist_ok=True)
    return config_dir


def create_default_config(
    config_dir: Path | None = None,
    *,
    overwrite: bool = False,
) -> Path:
    """Create the default config.yaml.

    Args:
        config_dir: Directory to create the file in. Defaults to ~/.switchyard/
        overwrite: If True, overwrite an existing file.

    Returns:
        Path to the written config file.

    Raises:
        ConfigError: If the file exists and overwrite=False.
    """
    config_dir = ensure_config_dir(config_dir)
    config_path = config_dir / CONFIG_FILE_NAME

    if config_path.exists() and not overwrite:
        raise ConfigError(
            f"Configuration file already exists: {config_path}",
            config_file=str(config_path),
        )

    config_dict = get_default_config().model_dump(mode="json")
    with config_path.open("w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

    return config_path


def _format_validation_errors(error: PydanticValidationError) -> str:
    lines = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        lines.append(f"  - {loc}: {item['msg']}")
    return "\n".join(lines)


def load_config(config_path: Path | None = None) -> SwitchyardConfig:
    """Load configuration from YAML file.

    A missing file is not an error: Switchyard runs on defaults until
    `switchyard config init` is used.

    Args:
        config_path: Path to config file. Defaults to ~/.switchyard/config.yaml.

    Returns:
        Validated SwitchyardConfig instance.

    Raises:
        ConfigError: If the file is malformed or fails validation.
    """
    if config_path is None:
        config_path = get_config_dir() / CONFIG_FILE_NAME

    if not config_path.exists():
        return get_default_config()

    try:
        with config_path.open() as f:
            config_dict: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse configuration file: {e}",
            config_file=str(config_path),
            details={"yaml_error": str(e)},
        ) from e

    if config_dict is None:
        config_dict = {}

    try:
        return SwitchyardConfig.model_validate(config_dict)
    except PydanticValidationError as e:
        raise ConfigError(
            "Configuration validation failed:\n" + _format_validation_errors(e),
            config_file=str(config_path),
            details={"validation_errors": e.errors()},
        ) from e


def resolve_data_dir(config: SwitchyardConfig, override: Path | None = None) -> Path:
    """Resolve the storage directory.

    Priority:
        1. Explicit override (the --data-dir CLI option)
        2. SWITCHYARD_DATA_DIR environment variable
        3. config.yaml storage.data_dir
    """
    if override is not None:
        return override.expanduser()

    env_dir = os.environ.get("SWITCHYARD_DATA_DIR", "").strip()
    if env_dir:
        return Path(env_dir).expanduser()

    return config.storage.data_dir
