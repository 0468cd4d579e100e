"""Unified domain model shared by every platform adapter."""

import time
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    """Supported chat networks."""

    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"
    DISCORD = "discord"
    FACEBOOK = "facebook"
    WEB = "web"

    @property
    def prefix(self) -> str:
        """Short tag used to namespace ids derived from native identifiers."""
        return _PLATFORM_PREFIXES[self]


_PLATFORM_PREFIXES = {
    Platform.TELEGRAM: "tg",
    Platform.WHATSAPP: "wa",
    Platform.DISCORD: "dc",
    Platform.FACEBOOK: "fb",
    Platform.WEB: "web",
}


class MessageType(str, Enum):
    """Kind of content carried by a message."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"
    STICKER = "sticker"
    LOCATION = "location"
    CONTACT = "contact"


# Attachment types each media message type may carry
_COMPATIBLE_ATTACHMENTS: dict[MessageType, frozenset[MessageType]] = {
    MessageType.IMAGE: frozenset({MessageType.IMAGE}),
    MessageType.AUDIO: frozenset({MessageType.AUDIO}),
    MessageType.VIDEO: frozenset({MessageType.VIDEO}),
    MessageType.STICKER: frozenset({MessageType.STICKER, MessageType.IMAGE}),
    MessageType.DOCUMENT: frozenset(
        {
            MessageType.DOCUMENT,
            MessageType.IMAGE,
            MessageType.AUDIO,
            MessageType.VIDEO,
        }
    ),
}


class UserRole(str, Enum):
    """Permission level of a user."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


def derive_id(platform: Platform, native_id: Any) -> str:
    """Build a platform-prefixed id from a native identifier."""
    return f"{platform.prefix}_{native_id}"


def build_message_id(
    platform: Platform,
    native_id: Any | None,
    clock: Callable[[], float] = time.time,
) -> str:
    """Derive a message id from the native message id.

    Falls back to the clock (milliseconds) when the platform gave no id, so
    the result is stable for a fixed clock.
    """
    if native_id is None or native_id == "":
        native_id = int(clock() * 1000)
    return derive_id(platform, native_id)


class UserPreferences(BaseModel):
    """Per-user preferences."""

    language: str = "en"
    timezone: str = "UTC"
    notifications: bool = True
    ai_enabled: bool = True
    voice_enabled: bool = True


class User(BaseModel):
    """A chat participant on one platform.

    ``platform`` and ``platform_id`` identify the user; ``id`` is always
    derived from them.
    """

    platform_id: str
    platform: Platform
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.USER
    is_blocked: bool = False
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_seen: datetime = Field(default_factory=utcnow)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return derive_id(self.platform, self.platform_id)

    @property
    def display_name(self) -> str:
        """Best human-readable name for logs and replies."""
        full_name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return self.username or full_name or self.platform_id

    def __str__(self) -> str:
        return f"{self.platform.value}:{self.platform_id}"


class Attachment(BaseModel):
    """Media attached to a message. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: str  # native file reference
    type: MessageType
    url: str  # directly fetchable URL, "" when unavailable
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None


class Message(BaseModel):
    """A normalized inbound message."""

    id: str
    user_id: str
    platform: Platform
    type: MessageType
    content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    attachments: list[Attachment] = Field(default_factory=list)
    reply_to: Optional[str] = None
    is_from_bot: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    processed: bool = False

    @model_validator(mode="after")
    def _check_attachment_types(self) -> "Message":
        allowed = _COMPATIBLE_ATTACHMENTS.get(self.type)
        if allowed is None:
            return self
        for attachment in self.attachments:
            if attachment.type not in allowed:
                raise ValueError(
                    f"{attachment.type.value} attachment is not valid "
                    f"for a {self.type.value} message"
                )
        return self

    @property
    def chat_id(self) -> Optional[str]:
        """Chat the message was posted in, if known."""
        chat_id = self.metadata.get("chat_id")
        return str(chat_id) if chat_id is not None else None

    def __str__(self) -> str:
        return f"[{self.platform.value}] {self.user_id}: {self.content[:50]}"


# =============================================================================
# Events
# =============================================================================


class EventType(str, Enum):
    """Names under which events are published on the bridge."""

    MESSAGE = "message"
    USER_JOIN = "user_join"
    USER_LEAVE = "user_leave"
    ERROR = "error"


class MessageEventData(BaseModel):
    message: Message
    user: User


class UserEventData(BaseModel):
    user: User


class ErrorEventData(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    error: BaseException
    context: dict[str, Any] = Field(default_factory=dict)


class BotEvent(BaseModel):
    """Envelope published on the event bridge."""

    type: EventType
    platform: Platform
    data: Any
    timestamp: datetime = Field(default_factory=utcnow)


class MessageEvent(BotEvent):
    type: Literal[EventType.MESSAGE] = EventType.MESSAGE
    data: MessageEventData


class UserJoinEvent(BotEvent):
    type: Literal[EventType.USER_JOIN] = EventType.USER_JOIN
    data: UserEventData


class UserLeaveEvent(BotEvent):
    type: Literal[EventType.USER_LEAVE] = EventType.USER_LEAVE
    data: UserEventData


class ErrorEvent(BotEvent):
    type: Literal[EventType.ERROR] = EventType.ERROR
    data: ErrorEventData
