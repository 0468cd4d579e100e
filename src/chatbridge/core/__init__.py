"""Domain model, error taxonomy and event bridge."""

from chatbridge.core.events import EventBridge
from chatbridge.core.exceptions import BotError, ConfigurationError, PlatformError
from chatbridge.core.models import (
    Attachment,
    BotEvent,
    ErrorEvent,
    EventType,
    Message,
    MessageEvent,
    MessageType,
    Platform,
    User,
    UserJoinEvent,
    UserLeaveEvent,
    UserPreferences,
    UserRole,
)

__all__ = [
    "Attachment",
    "BotError",
    "BotEvent",
    "ConfigurationError",
    "ErrorEvent",
    "EventBridge",
    "EventType",
    "Message",
    "MessageEvent",
    "MessageType",
    "Platform",
    "PlatformError",
    "User",
    "UserJoinEvent",
    "UserLeaveEvent",
    "UserPreferences",
    "UserRole",
]
