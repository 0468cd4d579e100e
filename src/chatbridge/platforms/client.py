"""Capability interface every native platform client is wrapped behind."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class UpdateKind(str, Enum):
    """Inbound update kinds a client delivers to registered handlers."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    DOCUMENT = "document"
    STICKER = "sticker"
    LOCATION = "location"
    CONTACT = "contact"
    MEMBER_JOINED = "member_joined"
    MEMBER_LEFT = "member_left"


CONTENT_KINDS: tuple[UpdateKind, ...] = (
    UpdateKind.TEXT,
    UpdateKind.IMAGE,
    UpdateKind.AUDIO,
    UpdateKind.DOCUMENT,
    UpdateKind.STICKER,
    UpdateKind.LOCATION,
    UpdateKind.CONTACT,
)


class DeliveryMode(str, Enum):
    """How the client receives updates."""

    POLLING = "polling"
    WEBHOOK = "webhook"


@dataclass(frozen=True)
class BotCommand:
    """Entry of the command menu shown by the platform."""

    command: str
    description: str


UpdateHandler = Callable[[Any], Awaitable[None]]
ErrorHandler = Callable[[Exception, Any], Awaitable[None]]


class BotClient(ABC):
    """Narrow view of a platform SDK used by adapters.

    Each concrete client owns one SDK instance. Handlers registered with
    ``on_update`` receive the raw platform message; the client must run them
    concurrently so one slow update does not hold back the next.
    """

    @abstractmethod
    async def send_text(self, chat_id: str, text: str, **options: Any) -> Any:
        """Send a text message, returning the native sent-message object."""
        ...

    @abstractmethod
    async def send_photo(
        self, chat_id: str, photo: Any, caption: Optional[str] = None, **options: Any
    ) -> Any:
        """Send a photo by URL, file id or file object."""
        ...

    @abstractmethod
    async def send_typing(self, chat_id: str) -> None:
        """Show the typing indicator in a chat."""
        ...

    @abstractmethod
    async def get_file_path(self, file_id: str) -> str:
        """Look up the storage path of a remote file."""
        ...

    @abstractmethod
    async def set_commands(self, commands: Sequence[BotCommand]) -> None:
        """Publish the bot's command menu."""
        ...

    @abstractmethod
    def on_update(self, kind: UpdateKind, handler: UpdateHandler) -> None:
        """Register the handler for one update kind."""
        ...

    @abstractmethod
    def on_error(self, handler: ErrorHandler) -> None:
        """Register the handler for client-level errors."""
        ...

    @abstractmethod
    async def launch(self, mode: DeliveryMode, webhook_url: Optional[str] = None) -> None:
        """Start receiving updates."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop receiving updates and release background resources."""
        ...
