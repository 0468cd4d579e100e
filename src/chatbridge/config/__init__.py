"""Configuration loading and schema."""

from chatbridge.config.loader import (
    apply_env_overrides,
    clear_config_cache,
    get_config,
    load_config,
    load_yaml_file,
    set_config,
)
from chatbridge.config.schema import (
    AuditLogConfig,
    BotCommandConfig,
    Config,
    LoggingConfig,
    PlatformAdapterConfig,
    PlatformsConfig,
    TelegramConfig,
)

__all__ = [
    "AuditLogConfig",
    "BotCommandConfig",
    "Config",
    "LoggingConfig",
    "PlatformAdapterConfig",
    "PlatformsConfig",
    "TelegramConfig",
    "apply_env_overrides",
    "clear_config_cache",
    "get_config",
    "load_config",
    "load_yaml_file",
    "set_config",
]
