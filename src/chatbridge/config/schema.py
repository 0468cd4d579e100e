"""
Pydantic configuration schema for chatbridge.

This module defines all configuration models with validation.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Platform Configuration
# =============================================================================


class BotCommandConfig(BaseModel):
    """Single entry of a bot's command menu."""

    command: str
    description: str

    @field_validator("command")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.lstrip("/")


def _default_commands() -> list[BotCommandConfig]:
    return [
        BotCommandConfig(command="start", description="Start the bot"),
        BotCommandConfig(command="help", description="Show help message"),
        BotCommandConfig(command="ai", description="Chat with AI"),
        BotCommandConfig(command="image", description="Generate an image"),
        BotCommandConfig(command="weather", description="Get weather information"),
        BotCommandConfig(command="translate", description="Translate text"),
        BotCommandConfig(command="remind", description="Set a reminder"),
        BotCommandConfig(command="settings", description="Bot settings"),
    ]


class PlatformAdapterConfig(BaseModel):
    """Base configuration for platform adapters.

    An adapter only initializes when it is enabled and has a credential.
    """

    model_config = ConfigDict(extra="allow")

    enable: bool = False
    bot_token: str = ""
    webhook_url: Optional[str] = None
    allowed_users: list[str] = Field(default_factory=list)
    refusal_message: Optional[str] = None
    commands: list[BotCommandConfig] = Field(default_factory=_default_commands)

    @field_validator("allowed_users", mode="before")
    @classmethod
    def _split_allowed_users(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (int, float)):
            return [str(value)]
        if isinstance(value, list):
            return [str(item) for item in value]
        return value

    @property
    def credential(self) -> str:
        """Secret used to authenticate against the platform."""
        return self.bot_token

    @property
    def delivery_mode(self) -> Literal["webhook", "polling"]:
        """Webhook when a public URL is configured, long polling otherwise."""
        return "webhook" if self.webhook_url else "polling"


class TelegramConfig(PlatformAdapterConfig):
    """Telegram bot configuration.

    Uses long polling unless ``webhook_url`` is set, in which case a local
    webhook listener is started on ``webhook_listen:webhook_port``.
    """

    webhook_listen: str = "0.0.0.0"
    webhook_port: int = Field(default=3000, ge=1, le=65535)
    webhook_path: str = ""
    webhook_secret: Optional[str] = None


class PlatformsConfig(BaseModel):
    """Multi-platform messaging configuration."""

    model_config = ConfigDict(extra="allow")

    telegram: TelegramConfig = Field(default_factory=TelegramConfig)

    def enabled_platforms(self) -> list[str]:
        """Names of platforms switched on in configuration."""
        return [
            name
            for name, platform_config in self
            if isinstance(platform_config, PlatformAdapterConfig) and platform_config.enable
        ]


# =============================================================================
# Logging & Audit Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Console logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    rich: bool = True

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class AuditLogConfig(BaseModel):
    """Audit logging configuration."""

    enable: bool = True
    path: Optional[str] = None  # defaults to <CHATBRIDGE_HOME>/audit.jsonl
    retention_days: int = Field(default=90, ge=1, le=365)
    compress_old: bool = True
    include_messages: bool = True
    hash_messages: bool = False
    buffer_size: int = Field(default=100, ge=1)
    flush_interval_seconds: int = 5


# =============================================================================
# Root Configuration Model
# =============================================================================


class Config(BaseModel):
    """
    Root configuration model for chatbridge.

    Configuration can be loaded from YAML files and environment variables,
    merged in order of priority.
    """

    model_config = ConfigDict(extra="allow")

    platforms: PlatformsConfig = Field(default_factory=PlatformsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    audit: AuditLogConfig = Field(default_factory=AuditLogConfig)
