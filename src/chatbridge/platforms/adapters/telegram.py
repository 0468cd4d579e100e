"""Telegram bot platform adapter.

Parses python-telegram-bot ``Message`` objects into the unified domain model.
Transport (long polling or webhook) is handled by ``TelegramClient``.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from typing import Any, NamedTuple, Optional

from chatbridge.config.schema import PlatformAdapterConfig, TelegramConfig
from chatbridge.core.models import (
    Attachment,
    Message,
    MessageType,
    Platform,
    User,
    UserPreferences,
    UserRole,
    build_message_id,
    utcnow,
)
from chatbridge.platforms.client import BotClient
from chatbridge.platforms.clients.telegram import TelegramClient
from chatbridge.platforms.protocol import PlatformAdapter

logger = logging.getLogger(__name__)

TELEGRAM_FILE_URL = "https://api.telegram.org/file/bot{token}/{path}"

UNSUPPORTED_CONTENT = "Unsupported message type"


class _ContentVariant(NamedTuple):
    """One branch of the content dispatch: message field and its normalizer."""

    field: str
    normalize: Callable[["TelegramAdapter", Any, Any, dict[str, Any]], Awaitable[Message]]


class TelegramAdapter(PlatformAdapter):
    """Telegram bot adapter.

    Configuration:
        - bot_token: Telegram bot token from @BotFather
        - webhook_url: Public URL; when set the bot uses webhook delivery
        - allowed_users: Allowed Telegram user ids or usernames (empty = all)
        - commands: Command menu registered on start
    """

    @property
    def platform(self) -> Platform:
        return Platform.TELEGRAM

    def default_client_factory(self, config: PlatformAdapterConfig) -> BotClient:
        if not isinstance(config, TelegramConfig):
            config = TelegramConfig.model_validate(config.model_dump())
        return TelegramClient(config)

    def compose_file_url(self, file_path: str) -> str:
        # python-telegram-bot v20+ already returns absolute download URLs
        if file_path.startswith(("http://", "https://")):
            return file_path
        return TELEGRAM_FILE_URL.format(token=self.config.bot_token, path=file_path.lstrip("/"))

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def parse_user(self, raw: Any) -> User:
        sender = getattr(raw, "from_user", None)
        if sender is None:
            raise ValueError("No user information available")
        return self.parse_member(sender)

    def parse_member(self, member: Any) -> User:
        """Map a Telegram ``User`` onto the domain user.

        Timestamps are "now": stored history is reconciled downstream.
        """
        now = utcnow()
        return User(
            platform_id=str(member.id),
            platform=Platform.TELEGRAM,
            username=member.username,
            first_name=member.first_name,
            last_name=member.last_name,
            role=UserRole.USER,
            is_blocked=False,
            preferences=UserPreferences(language=member.language_code or "en"),
            created_at=now,
            updated_at=now,
            last_seen=now,
        )

    def joined_members(self, raw: Any) -> Iterable[Any]:
        return tuple(getattr(raw, "new_chat_members", None) or ())

    def left_member(self, raw: Any) -> Optional[Any]:
        return getattr(raw, "left_chat_member", None)

    def chat_id_of(self, raw: Any) -> Optional[str]:
        chat = getattr(raw, "chat", None)
        if chat is None:
            return None
        return str(chat.id)

    def describe_update(self, raw: Any) -> dict[str, Any]:
        # Error hooks receive the whole Update, message handlers the Message
        message = getattr(raw, "effective_message", None) or raw
        sender = getattr(raw, "effective_user", None) or getattr(message, "from_user", None)
        context: dict[str, Any] = {
            "user_id": str(sender.id) if sender is not None else None,
            "chat_id": self.chat_id_of(message),
        }
        if raw is not message:
            context["update_type"] = _update_type(raw)
        return context

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def parse_message(self, raw: Any) -> Message:
        """Normalize a Telegram message.

        The first populated field of ``_VARIANTS`` decides the message type;
        anything else becomes an "unsupported" text message.
        """
        base = self._base_record(raw)

        for variant in _VARIANTS:
            payload = getattr(raw, variant.field, None)
            if payload:
                return await variant.normalize(self, raw, payload, base)

        return Message(type=MessageType.TEXT, content=UNSUPPORTED_CONTENT, **base)

    def _base_record(self, raw: Any) -> dict[str, Any]:
        sender = getattr(raw, "from_user", None)
        chat = getattr(raw, "chat", None)
        native_id = getattr(raw, "message_id", None)
        reply = getattr(raw, "reply_to_message", None)

        return {
            "id": build_message_id(Platform.TELEGRAM, native_id, self._clock),
            "user_id": str(sender.id) if sender is not None else "",
            "platform": Platform.TELEGRAM,
            "metadata": {
                "chat_id": chat.id if chat is not None else None,
                "chat_type": chat.type if chat is not None else None,
                "message_id": native_id,
            },
            "reply_to": (
                build_message_id(Platform.TELEGRAM, reply.message_id) if reply is not None else None
            ),
            "is_from_bot": False,
            "created_at": datetime.fromtimestamp(self._clock(), tz=timezone.utc),
            "processed": False,
        }

    async def _file_url(self, file_id: str) -> str:
        url = await self.resolve_file_url(file_id)
        if not url:
            logger.warning(f"Attachment URL unavailable for Telegram file {file_id}")
        return url

    async def _normalize_text(self, raw: Any, text: str, base: dict[str, Any]) -> Message:
        return Message(type=MessageType.TEXT, content=text, **base)

    async def _normalize_photo(self, raw: Any, sizes: Any, base: dict[str, Any]) -> Message:
        photo = max(sizes, key=lambda p: (p.width * p.height, p.file_size or 0))
        return Message(
            type=MessageType.IMAGE,
            content=raw.caption or "",
            attachments=[
                Attachment(
                    id=photo.file_id,
                    type=MessageType.IMAGE,
                    url=await self._file_url(photo.file_id),
                    size=photo.file_size,
                )
            ],
            **base,
        )

    async def _normalize_voice(self, raw: Any, voice: Any, base: dict[str, Any]) -> Message:
        return Message(
            type=MessageType.AUDIO,
            content="",
            attachments=[
                Attachment(
                    id=voice.file_id,
                    type=MessageType.AUDIO,
                    url=await self._file_url(voice.file_id),
                    mime_type=voice.mime_type,
                    size=voice.file_size,
                )
            ],
            **base,
        )

    async def _normalize_audio(self, raw: Any, audio: Any, base: dict[str, Any]) -> Message:
        return Message(
            type=MessageType.AUDIO,
            content=raw.caption or "",
            attachments=[
                Attachment(
                    id=audio.file_id,
                    type=MessageType.AUDIO,
                    url=await self._file_url(audio.file_id),
                    filename=audio.file_name,
                    mime_type=audio.mime_type,
                    size=audio.file_size,
                )
            ],
            **base,
        )

    async def _normalize_document(self, raw: Any, document: Any, base: dict[str, Any]) -> Message:
        return Message(
            type=MessageType.DOCUMENT,
            content=raw.caption or "",
            attachments=[
                Attachment(
                    id=document.file_id,
                    type=MessageType.DOCUMENT,
                    url=await self._file_url(document.file_id),
                    filename=document.file_name,
                    mime_type=document.mime_type,
                    size=document.file_size,
                )
            ],
            **base,
        )

    async def _normalize_sticker(self, raw: Any, sticker: Any, base: dict[str, Any]) -> Message:
        return Message(
            type=MessageType.STICKER,
            content=sticker.emoji or "",
            attachments=[
                Attachment(
                    id=sticker.file_id,
                    type=MessageType.STICKER,
                    url=await self._file_url(sticker.file_id),
                )
            ],
            **base,
        )

    async def _normalize_location(self, raw: Any, location: Any, base: dict[str, Any]) -> Message:
        latitude = float(location.latitude)
        longitude = float(location.longitude)
        return Message(
            type=MessageType.LOCATION,
            content=f"Location: {latitude}, {longitude}",
            **{
                **base,
                "metadata": {**base["metadata"], "latitude": latitude, "longitude": longitude},
            },
        )

    async def _normalize_contact(self, raw: Any, contact: Any, base: dict[str, Any]) -> Message:
        full_name = " ".join(p for p in (contact.first_name, contact.last_name) if p)
        metadata = {
            **base["metadata"],
            "phone_number": contact.phone_number,
            "first_name": contact.first_name,
            "last_name": contact.last_name,
        }
        if contact.user_id is not None:
            metadata["contact_user_id"] = str(contact.user_id)

        return Message(
            type=MessageType.CONTACT,
            content=f"Contact: {full_name}",
            **{**base, "metadata": metadata},
        )


# Dispatch order matters: exactly the first populated field is normalized.
_VARIANTS: tuple[_ContentVariant, ...] = (
    _ContentVariant("text", TelegramAdapter._normalize_text),
    _ContentVariant("photo", TelegramAdapter._normalize_photo),
    _ContentVariant("voice", TelegramAdapter._normalize_voice),
    _ContentVariant("audio", TelegramAdapter._normalize_audio),
    _ContentVariant("document", TelegramAdapter._normalize_document),
    _ContentVariant("sticker", TelegramAdapter._normalize_sticker),
    _ContentVariant("location", TelegramAdapter._normalize_location),
    _ContentVariant("contact", TelegramAdapter._normalize_contact),
)


def _update_type(update: Any) -> Optional[str]:
    """Name of the populated top-level field of a Telegram update."""
    for field in (
        "message",
        "edited_message",
        "channel_post",
        "edited_channel_post",
        "callback_query",
        "inline_query",
        "my_chat_member",
        "chat_member",
    ):
        if getattr(update, field, None) is not None:
            return field
    return None
