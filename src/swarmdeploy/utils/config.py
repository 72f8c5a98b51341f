"""
Configuration System

Single-file YAML configuration for swarmdeploy:
- ``config.yml`` in the working directory, the file named by ``CONFIG_FILE``,
  or an explicit path
- ``.env`` loaded first, then ``${VAR}``, ``${VAR:-default}`` and ``$VAR``
  placeholders resolved
- Dot-path lookups, one cached builder per file

Running without any config file is supported: every consumer passes its own
default to :func:`get_config_value`.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

# Plain logging here: logger.py reads its settings through this module
# The short name 'CONFIG' enables easy filtering: quiet_logger('CONFIG')
logger = logging.getLogger("CONFIG")

DEFAULT_CONFIG_NAME = "config.yml"

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(.*?))?\}|\$([A-Za-z_][A-Za-z0-9_]*)")


class ConfigBuilder:
    """Loaded, environment-resolved contents of one configuration file."""

    def __init__(self, config_path: str | Path | None = None):
        """
        Load configuration.

        Args:
            config_path: YAML file to load. When None, ``config.yml`` in the
                current directory is used if present; otherwise the
                configuration is empty.

        Raises:
            FileNotFoundError: If an explicit config_path does not exist
        """
        dotenv_path = Path.cwd() / ".env"
        if dotenv_path.exists():
            # Variables already set in the environment win
            load_dotenv(dotenv_path, override=False)
            logger.debug(f"Loaded .env file from {dotenv_path}")

        if config_path is None:
            candidate = Path.cwd() / DEFAULT_CONFIG_NAME
            config_path = candidate if candidate.exists() else None

        if config_path is None:
            logger.debug("No config.yml found, using built-in defaults")
            self.config_path = None
            self.raw_config: dict[str, Any] = {}
            return

        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        self.raw_config = self._resolve_env_vars(self._load_yaml_file(self.config_path))
        logger.info(f"Loaded configuration from {self.config_path}")

    def _load_yaml_file(self, file_path: Path) -> dict[str, Any]:
        """Parse ``file_path``; an empty file is an empty mapping."""
        try:
            with open(file_path) as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            error_msg = f"Error parsing YAML configuration: {e}"
            logger.error(error_msg)
            raise yaml.YAMLError(error_msg) from e

        if config is None:
            logger.warning(f"Configuration file is empty: {file_path}")
            return {}
        if not isinstance(config, dict):
            error_msg = f"Configuration file must contain a dictionary/mapping: {file_path}"
            logger.error(error_msg)
            raise ValueError(error_msg)
        return config

    def _resolve_env_vars(self, data: Any) -> Any:
        """Replace environment placeholders in every string of ``data``.

        Unknown variables without a ``:-`` default are left as written.
        """
        if isinstance(data, dict):
            return {key: self._resolve_env_vars(value) for key, value in data.items()}
        if isinstance(data, list):
            return [self._resolve_env_vars(item) for item in data]
        if not isinstance(data, str):
            return data

        def substitute(match: re.Match) -> str:
            name = match.group(1) or match.group(3)
            fallback = match.group(2)
            value = os.environ.get(name)
            if value is not None:
                return value
            if fallback is not None:
                return fallback
            logger.info(f"Environment variable '{name}' not found, keeping original value")
            return match.group(0)

        return _ENV_PATTERN.sub(substitute, data)

    def get(self, path: str, default: Any = None) -> Any:
        """Value at dot-separated ``path``, or ``default`` when absent."""
        value: Any = self.raw_config
        for key in path.split("."):
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value


# =============================================================================
# GLOBAL CONFIGURATION
# =============================================================================

_default_config: ConfigBuilder | None = None

# Builders for explicitly named files, keyed by resolved path
_config_cache: dict[str, ConfigBuilder] = {}


def _get_config(config_path: str | None = None, set_as_default: bool = False) -> ConfigBuilder:
    """Default builder, or the cached builder of an explicit file.

    Args:
        config_path: Explicit configuration file; the default configuration
            when None
        set_as_default: Also make the explicit file the default for later
            calls without a path
    """
    global _default_config

    if config_path is None:
        if _default_config is None:
            _default_config = ConfigBuilder(os.environ.get("CONFIG_FILE") or None)
            logger.debug("Initialized default configuration system")
        return _default_config

    resolved_path = str(Path(config_path).resolve())
    if resolved_path not in _config_cache:
        logger.info(f"Loading configuration from explicit path: {resolved_path}")
        _config_cache[resolved_path] = ConfigBuilder(resolved_path)

    if set_as_default:
        _default_config = _config_cache[resolved_path]
        logger.debug(f"Set explicit config as default: {resolved_path}")

    return _config_cache[resolved_path]


def get_config_builder(config_path: str | None = None, set_as_default: bool = False) -> ConfigBuilder:
    """Public accessor for the (cached) ConfigBuilder."""
    return _get_config(config_path, set_as_default)


def reset_config_cache() -> None:
    """Forget every loaded configuration (used by tests and the CLI)."""
    global _default_config
    _default_config = None
    _config_cache.clear()


def get_config_value(path: str, default: Any = None, config_path: str | None = None) -> Any:
    """
    Get a specific configuration value by dot-separated path.

    Args:
        path: Dot-separated configuration path (e.g., "defaults.port")
        default: Default value to return if path is not found
        config_path: Optional explicit path to configuration file

    Returns:
        The configuration value at the specified path, or default if not found

    Raises:
        ValueError: If path is empty or None

    Examples:
        >>> port = get_config_value("defaults.port", 30399)
        >>> image = get_config_value("deployment.base_image", config_path="/path/to/config.yml")
    """
    if not path:
        raise ValueError("Configuration path cannot be empty or None")

    return _get_config(config_path).get(path, default)
