"""Platform adapter implementations."""

from chatbridge.platforms.adapters.telegram import TelegramAdapter

__all__ = ["TelegramAdapter"]
