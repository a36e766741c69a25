"""
Configuration loader — resolves the app store directory and settings.

This is the only place that looks at the environment. Everything
downstream receives an ``AppsConfig`` (or the ``AppsContext`` built
from it) explicitly.

Directory precedence:
    explicit argument  >  ``directory`` key in piapps.yml  >  PI_APPS_DIR
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from src.core.models.config import AppsConfig

logger = logging.getLogger(__name__)

# Default config filename (looked up inside the app store directory)
CONFIG_FILE = "piapps.yml"

# Environment variable naming the app store directory
DIRECTORY_ENV = "PI_APPS_DIR"


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


def _read_yaml(path: Path) -> dict:
    """Read a YAML mapping from ``path``."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Allow everything to be nested under a "piapps" key
    return data.get("piapps", data)


def load_config(
    config_path: Path | None = None,
    directory: Path | None = None,
    environ: dict[str, str] | None = None,
) -> AppsConfig:
    """Load and validate the app store configuration.

    Args:
        config_path: Explicit path to a piapps.yml file.
        directory: Explicit app store directory (wins over everything).
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        Validated AppsConfig.

    Raises:
        ConfigError: If no directory can be resolved, the directory does
            not exist, or the config file is invalid.
    """
    env = os.environ if environ is None else environ
    data: dict = {}

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        data = _read_yaml(config_path)

    if directory is None and data.get("directory"):
        directory = Path(str(data["directory"])).expanduser()
    if directory is None and env.get(DIRECTORY_ENV):
        directory = Path(env[DIRECTORY_ENV]).expanduser()

    if directory is None:
        raise ConfigError(
            f"{DIRECTORY_ENV} environment variable not set. "
            "Pass --dir or set 'directory' in the config file."
        )

    if not directory.is_dir():
        raise ConfigError(f"App store directory does not exist: {directory}")

    # Implicit config file inside the directory
    if config_path is None:
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            logger.debug("Loading config from %s", candidate)
            data = _read_yaml(candidate)

    data = dict(data)
    data["directory"] = directory.resolve()

    try:
        config = AppsConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    logger.info("Using app store directory %s (backend=%s)", config.directory, config.backend)
    return config
