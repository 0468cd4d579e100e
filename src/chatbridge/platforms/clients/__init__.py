"""Native SDK clients."""

from chatbridge.platforms.clients.telegram import TelegramClient

__all__ = ["TelegramClient"]
