"""
Configuration loader for chatbridge.

Loads and merges configuration from multiple sources:
1. Default values
2. Global config (~/.chatbridge/config.yaml)
3. Explicit config file (--config)
4. Environment variables (CHATBRIDGE_*, TELEGRAM_*)
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from chatbridge.config.merger import deep_merge, set_nested_value
from chatbridge.config.schema import Config
from chatbridge.core.exceptions import ConfigurationError
from chatbridge.storage.paths import get_global_config_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "CHATBRIDGE_"

# Variables read elsewhere, never mapped onto config keys
_RESERVED_ENV = frozenset({"CHATBRIDGE_HOME"})

# Conventional deployment variables mapped onto platform settings
PLATFORM_ENV_SHORTHANDS: dict[str, str] = {
    "TELEGRAM_ENABLED": "platforms.telegram.enable",
    "TELEGRAM_BOT_TOKEN": "platforms.telegram.bot_token",
    "TELEGRAM_WEBHOOK_URL": "platforms.telegram.webhook_url",
    "TELEGRAM_ALLOWED_USERS": "platforms.telegram.allowed_users",
}

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed configuration dictionary.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if not content:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping")
    return expand_env_references(content)


def expand_env_references(value: Any) -> Any:
    """
    Replace ``${VAR}`` references in string values with environment values.

    Unset variables expand to an empty string.

    Args:
        value: A YAML value (mapping, list or scalar).

    Returns:
        The value with all references expanded.
    """
    if isinstance(value, dict):
        return {key: expand_env_references(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_references(item) for item in value]
    if not isinstance(value, str):
        return value

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in os.environ:
            logger.warning(f"Config references unset environment variable {name}")
        return os.environ.get(name, "")

    return _ENV_REFERENCE.sub(_substitute, value)


def apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Environment variables follow the pattern:
    CHATBRIDGE_<SECTION>__<KEY>=<value>
    CHATBRIDGE_<SECTION>__<NESTED>__<KEY>=<value>

    A double underscore separates levels so that keys containing a single
    underscore (``bot_token``) survive. The ``TELEGRAM_*`` shorthands in
    ``PLATFORM_ENV_SHORTHANDS`` are applied first.

    Args:
        config: Configuration dictionary to modify.

    Returns:
        Configuration with environment overrides applied.
    """
    for env_name, config_key in PLATFORM_ENV_SHORTHANDS.items():
        value = os.environ.get(env_name)
        if value is None:
            continue
        if config_key.endswith(".enable"):
            config = set_nested_value(config, config_key, _parse_env_value(value))
        else:
            # Tokens and ids stay strings
            config = set_nested_value(config, config_key, value)

    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX) or key in _RESERVED_ENV:
            continue

        # CHATBRIDGE_PLATFORMS__TELEGRAM__BOT_TOKEN -> platforms.telegram.bot_token
        config_key = key[len(ENV_PREFIX) :].lower().replace("__", ".")
        config = set_nested_value(config, config_key, _parse_env_value(value))

    return config


def _parse_env_value(value: str) -> Any:
    """
    Parse an environment variable value to the appropriate type.

    Args:
        value: String value from environment.

    Returns:
        Parsed value (bool, int, float, list or string).
    """
    # Boolean
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    # Integer
    if re.match(r"^-?\d+$", value):
        return int(value)

    # Float
    if re.match(r"^-?\d+\.\d+$", value):
        return float(value)

    # List (comma-separated)
    if "," in value:
        return [item.strip() for item in value.split(",")]

    return value


def load_config(config_path: Path | None = None, skip_env: bool = False) -> Config:
    """
    Load and merge configuration from all sources.

    Loading order (later overrides earlier):
    1. Default values from Config model
    2. Global config (~/.chatbridge/config.yaml)
    3. Explicit config file, if given
    4. Environment variables

    Args:
        config_path: Additional YAML file to merge on top of the global config.
        skip_env: Skip environment variable overrides.

    Returns:
        Merged and validated Config object.

    Raises:
        ConfigurationError: If configuration is invalid or config_path is missing.
    """
    config_dict = Config().model_dump()

    global_path = get_global_config_path()
    if global_path.exists():
        config_dict = deep_merge(config_dict, load_yaml_file(global_path))

    if config_path is not None:
        config_path = Path(config_path).expanduser()
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")
        config_dict = deep_merge(config_dict, load_yaml_file(config_path))

    if not skip_env:
        config_dict = apply_env_overrides(config_dict)

    try:
        return Config.model_validate(config_dict)
    except Exception as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e


# Singleton for cached config
_cached_config: Config | None = None


def get_config(reload: bool = False) -> Config:
    """
    Get the global configuration instance.

    Uses a cached instance. Use reload=True to force refresh.

    Args:
        reload: Force reload configuration from disk.

    Returns:
        Config instance.
    """
    global _cached_config

    if _cached_config is None or reload:
        _cached_config = load_config()

    return _cached_config


def set_config(config: Config) -> None:
    """Replace the cached configuration (used by the CLI after --config)."""
    global _cached_config
    _cached_config = config


def clear_config_cache() -> None:
    """Clear the cached configuration."""
    global _cached_config
    _cached_config = None
