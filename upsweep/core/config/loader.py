"""
Configuration loader — reads upsweep.yml into the Config model.

Lookup order:
    --config PATH  >  $UPSWEEP_CONFIG  >  $XDG_CONFIG_HOME/upsweep/upsweep.yml

Only an explicitly requested file must exist. A missing default file
means "all defaults".
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from upsweep.core.errors import ConfigError
from upsweep.core.models.config import Config

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "upsweep.yml"
CONFIG_ENV_VAR = "UPSWEEP_CONFIG"


def default_config_path() -> Path:
    """``$XDG_CONFIG_HOME/upsweep/upsweep.yml``, or under ``~/.config``."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "upsweep" / CONFIG_FILE


def find_config_file(explicit: Path | None = None) -> tuple[Path, bool]:
    """Locate the config file.

    Returns:
        ``(path, required)``; ``required`` is False only for the default
        location, which may be absent.
    """
    if explicit is not None:
        return explicit, True
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser(), True
    return default_config_path(), False


def parse_config(data: object, source: str = "<config>") -> Config:
    """Validate already-parsed YAML data.

    Raises:
        ConfigError: The data doesn't match the config schema.
    """
    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {source}, got {type(data).__name__}")
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e


def load_config(path: Path | None = None) -> Config:
    """Load and validate the configuration.

    Args:
        path: Explicit path to upsweep.yml. If None, uses the lookup order.

    Returns:
        Validated Config model.

    Raises:
        ConfigError: If a required file is missing, or any file is invalid.
    """
    path, required = find_config_file(path)

    if not path.is_file():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        logger.debug("No config file at %s, using defaults", path)
        return Config()

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    config = parse_config(data, source=str(path))
    logger.info(
        "Loaded config from %s (%d disabled, %d remote host(s))",
        path,
        len(config.misc.disable),
        len(config.misc.remote_hosts),
    )
    return config
