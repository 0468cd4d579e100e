"""Platform adapter protocol definition."""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, Optional

from chatbridge.audit.logger import AuditLogger
from chatbridge.config.schema import PlatformAdapterConfig
from chatbridge.core.events import EventBridge
from chatbridge.core.exceptions import PlatformError
from chatbridge.core.models import (
    ErrorEvent,
    ErrorEventData,
    Message,
    MessageEvent,
    MessageEventData,
    Platform,
    User,
    UserEventData,
    UserJoinEvent,
    UserLeaveEvent,
)
from chatbridge.platforms.client import (
    CONTENT_KINDS,
    BotClient,
    BotCommand,
    DeliveryMode,
    UpdateKind,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[PlatformAdapterConfig], BotClient]

DEFAULT_REFUSAL = "❌ You are not authorized to use this bot."

REFUSAL_MESSAGES: dict[str, str] = {
    "en": DEFAULT_REFUSAL,
    "es": "❌ No estás autorizado para usar este bot.",
    "pt": "❌ Você não está autorizado a usar este bot.",
    "fr": "❌ Vous n'êtes pas autorisé à utiliser ce bot.",
    "de": "❌ Du bist nicht berechtigt, diesen Bot zu verwenden.",
    "it": "❌ Non sei autorizzato a usare questo bot.",
    "ru": "❌ У вас нет доступа к этому боту.",
    "uk": "❌ У вас немає доступу до цього бота.",
}


class AdapterState(str, Enum):
    """Lifecycle of a platform adapter."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    STOPPED = "stopped"


class PlatformAdapter(ABC):
    """Abstract base class for platform adapters.

    An adapter owns one native client, turns its raw updates into domain
    objects, enforces the allow-list and publishes the results on the event
    bridge. It also exposes the outbound send operations for its platform.

    Subclasses implement the platform-specific parsing hooks; lifecycle,
    access control, dispatch and the outbound gateway live here.
    """

    def __init__(
        self,
        config: PlatformAdapterConfig,
        bridge: EventBridge,
        client_factory: Optional[ClientFactory] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the platform adapter.

        Args:
            config: Platform configuration
            bridge: Event bridge that receives normalized events
            client_factory: Builds the native client from the configuration
                (defaults to the platform's own client)
            audit_logger: Optional audit log for security and lifecycle events
            clock: Time source used for fallback ids and timestamps
        """
        self.config = config
        self.bridge = bridge
        self._client_factory = client_factory or self.default_client_factory
        self._audit = audit_logger
        self._clock = clock
        self._client: Optional[BotClient] = None
        self._state = AdapterState.UNINITIALIZED
        self._allowed = self._normalize_allow_list(config.allowed_users)

    # ------------------------------------------------------------------
    # Platform-specific hooks
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """The platform this adapter handles."""
        ...

    @abstractmethod
    def default_client_factory(self, config: PlatformAdapterConfig) -> BotClient:
        """Build the platform's native client."""
        ...

    @abstractmethod
    async def parse_message(self, raw: Any) -> Message:
        """Convert a raw platform message into a domain message."""
        ...

    @abstractmethod
    def parse_user(self, raw: Any) -> User:
        """Extract the sender of a raw platform message."""
        ...

    @abstractmethod
    def parse_member(self, member: Any) -> User:
        """Convert a native member record into a domain user."""
        ...

    @abstractmethod
    def joined_members(self, raw: Any) -> Iterable[Any]:
        """Native member records of a "member joined" notification."""
        ...

    @abstractmethod
    def left_member(self, raw: Any) -> Optional[Any]:
        """Native member record of a "member left" notification."""
        ...

    @abstractmethod
    def chat_id_of(self, raw: Any) -> Optional[str]:
        """Chat a raw message belongs to."""
        ...

    @abstractmethod
    def compose_file_url(self, file_path: str) -> str:
        """Turn a storage path into a directly fetchable URL."""
        ...

    def describe_update(self, raw: Any) -> dict[str, Any]:
        """Sender and chat identifiers used as log and error context."""
        return {"chat_id": self.chat_id_of(raw)}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> AdapterState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the adapter is currently running."""
        return self._state == AdapterState.RUNNING

    @property
    def delivery_mode(self) -> DeliveryMode:
        """Delivery mode selected by the configuration."""
        return DeliveryMode(self.config.delivery_mode)

    async def initialize(self) -> None:
        """Build the native client and register update handlers.

        Raises:
            PlatformError: If the platform is disabled, has no credential, or
                the client cannot be constructed. State is left unchanged.
        """
        if self._state in (AdapterState.INITIALIZED, AdapterState.RUNNING):
            logger.warning(f"{self.platform.value} adapter already initialized")
            return

        if not self.config.enable or not self.config.credential:
            raise PlatformError(
                f"{self.platform.value} must be enabled and have a bot token configured",
                self.platform,
            )

        try:
            client = self._client_factory(self.config)
        except Exception as e:
            logger.error(f"Failed to initialize {self.platform.value} platform: {e}")
            raise PlatformError(
                f"Failed to initialize {self.platform.value} platform: {e}", self.platform
            ) from e

        for kind in CONTENT_KINDS:
            client.on_update(kind, self.handle_message)
        client.on_update(UpdateKind.MEMBER_JOINED, self.handle_user_join)
        client.on_update(UpdateKind.MEMBER_LEFT, self.handle_user_leave)
        client.on_error(self.handle_client_error)

        self._client = client
        self._state = AdapterState.INITIALIZED
        logger.info(f"[{self.platform.value.upper()}] Platform initialized successfully")

    async def start(self) -> None:
        """Start receiving updates and publish the command menu.

        Raises:
            PlatformError: If the adapter is not initialized or the client
                fails to launch
        """
        if self._state != AdapterState.INITIALIZED or self._client is None:
            raise PlatformError(
                f"{self.platform.value} adapter not initialized", self.platform
            )

        mode = self.delivery_mode
        try:
            await self._client.launch(mode, webhook_url=self.config.webhook_url)
        except Exception as e:
            logger.error(f"Failed to start {self.platform.value} bot: {e}")
            if self._audit:
                self._audit.log_platform_adapter_error(self.platform.value, str(e))
            raise PlatformError(
                f"Failed to start {self.platform.value} bot: {e}", self.platform
            ) from e

        if mode == DeliveryMode.WEBHOOK:
            logger.info(
                f"[{self.platform.value.upper()}] Bot started with webhook: {self.config.webhook_url}"
            )
        else:
            logger.info(f"[{self.platform.value.upper()}] Bot started with long polling")

        await self._register_commands()

        self._state = AdapterState.RUNNING
        if self._audit:
            self._audit.log_platform_adapter_started(self.platform.value, mode.value)
        logger.info(
            f"[{self.platform.value.upper()}] Bot is running and ready to receive messages"
        )

    async def stop(self) -> None:
        """Stop receiving updates. No-op unless running.

        In-flight update handlers are not awaited or cancelled.
        """
        if self._state != AdapterState.RUNNING:
            return

        assert self._client is not None
        try:
            await self._client.stop()
        except Exception as e:
            logger.error(f"Error stopping {self.platform.value} bot: {e}", exc_info=True)

        self._state = AdapterState.STOPPED
        if self._audit:
            self._audit.log_platform_adapter_stopped(self.platform.value)
        logger.info(f"[{self.platform.value.upper()}] Bot stopped successfully")

    async def _register_commands(self) -> None:
        """Publish the command menu. Failures are logged, never raised."""
        assert self._client is not None
        commands = [
            BotCommand(command=c.command, description=c.description)
            for c in self.config.commands
        ]
        if not commands:
            return

        try:
            await self._client.set_commands(commands)
            logger.info(f"[{self.platform.value.upper()}] Bot commands set successfully")
        except Exception as e:
            logger.error(f"Failed to set {self.platform.value} bot commands: {e}")

    # ------------------------------------------------------------------
    # Outbound gateway
    # ------------------------------------------------------------------

    def _require_running(self) -> BotClient:
        if self._state != AdapterState.RUNNING or self._client is None:
            raise PlatformError(f"{self.platform.value} bot not running", self.platform)
        return self._client

    async def send_message(self, chat_id: str | int, content: str, **options: Any) -> Any:
        """Send a text message.

        Link previews are disabled and Markdown formatting is enabled unless
        overridden in ``options``.

        Raises:
            PlatformError: If the adapter is not running
            Exception: Whatever the native client raised on delivery failure
        """
        client = self._require_running()
        send_options = {"parse_mode": "Markdown", "disable_link_preview": True, **options}

        try:
            sent = await client.send_text(str(chat_id), content, **send_options)
        except Exception as e:
            logger.error(
                f"Failed to send {self.platform.value} message to chat {chat_id}: {e} "
                f"(content: {content[:100]!r})"
            )
            raise

        if self._audit:
            self._audit.log_platform_message_sent(self.platform.value, str(chat_id), content)
        return sent

    async def send_photo(
        self,
        chat_id: str | int,
        photo: Any,
        caption: Optional[str] = None,
        **options: Any,
    ) -> Any:
        """Send a photo by URL, file id or file object.

        Raises:
            PlatformError: If the adapter is not running
            Exception: Whatever the native client raised on delivery failure
        """
        client = self._require_running()
        send_options = {"parse_mode": "Markdown", **options}

        try:
            return await client.send_photo(str(chat_id), photo, caption=caption, **send_options)
        except Exception as e:
            logger.error(
                f"Failed to send {self.platform.value} photo to chat {chat_id}: {e} "
                f"(photo: {photo!r})"
            )
            raise

    async def send_typing(self, chat_id: str | int) -> None:
        """Show the typing indicator. Failures are logged only.

        Raises:
            PlatformError: If the adapter is not running
        """
        client = self._require_running()
        try:
            await client.send_typing(str(chat_id))
        except Exception as e:
            logger.error(f"Failed to send typing action to chat {chat_id}: {e}")

    async def resolve_file_url(self, file_id: str) -> str:
        """Resolve a native file reference to a fetchable URL.

        Returns:
            The URL, or an empty string when the file is unavailable

        Raises:
            PlatformError: If the adapter is not running
        """
        client = self._require_running()
        try:
            file_path = await client.get_file_path(file_id)
            if not file_path:
                raise ValueError("no file path returned")
            return self.compose_file_url(file_path)
        except Exception as e:
            logger.error(f"Failed to get file URL for {file_id}: {e}")
            return ""

    # ------------------------------------------------------------------
    # Access control
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_allow_list(entries: Iterable[str]) -> frozenset[str]:
        return frozenset(str(entry).strip().lstrip("@") for entry in entries if str(entry).strip())

    def is_allowed(self, user: User) -> bool:
        """Check a sender against the allow-list (empty list = everyone)."""
        if not self._allowed:
            return True
        if user.platform_id in self._allowed:
            return True
        return bool(user.username) and user.username.lstrip("@") in self._allowed

    def refusal_text(self, user: User) -> str:
        """Refusal reply in the sender's language."""
        if self.config.refusal_message:
            return self.config.refusal_message
        language = (user.preferences.language or "en").split("-")[0].lower()
        return REFUSAL_MESSAGES.get(language, DEFAULT_REFUSAL)

    async def _refuse(self, raw: Any, user: User) -> None:
        logger.warning(
            f"[SECURITY] Unauthorized access attempt on {self.platform.value}: "
            f"user_id={user.platform_id} username={user.username}"
        )
        if self._audit:
            self._audit.log_platform_user_blocked(
                self.platform.value, user.platform_id, "not in allowed users"
            )

        chat_id = self.chat_id_of(raw) or user.platform_id
        await self.send_message(chat_id, self.refusal_text(user), parse_mode=None)

    # ------------------------------------------------------------------
    # Inbound dispatch
    # ------------------------------------------------------------------

    async def handle_message(self, raw: Any) -> None:
        """Normalize one raw message and publish it.

        Any failure is logged and the update dropped; nothing is raised.
        """
        try:
            user = self.parse_user(raw)
            if not self.is_allowed(user):
                await self._refuse(raw, user)
                return

            message = await self.parse_message(raw)
            self.bridge.publish(
                MessageEvent(
                    platform=self.platform,
                    data=MessageEventData(message=message, user=user),
                )
            )
            if self._audit:
                self._audit.log_platform_message_received(
                    platform=self.platform.value,
                    user_id=user.platform_id,
                    username=user.username,
                    message=message.content,
                    message_type=message.type.value,
                )
        except Exception as e:
            logger.error(
                f"Error handling {self.platform.value} message: {e} {self.describe_update(raw)}",
                exc_info=True,
            )

    async def handle_user_join(self, raw: Any) -> None:
        """Publish one join event per new member."""
        try:
            for member in self.joined_members(raw):
                user = self.parse_member(member)
                self.bridge.publish(
                    UserJoinEvent(platform=self.platform, data=UserEventData(user=user))
                )
                logger.info(
                    f"[{self.platform.value.upper()}] User joined: {user.username or user.platform_id}"
                )
        except Exception as e:
            logger.error(
                f"Error handling {self.platform.value} member join: {e} {self.describe_update(raw)}",
                exc_info=True,
            )

    async def handle_user_leave(self, raw: Any) -> None:
        """Publish a leave event for the departed member."""
        try:
            member = self.left_member(raw)
            if member is None:
                return
            user = self.parse_member(member)
            self.bridge.publish(
                UserLeaveEvent(platform=self.platform, data=UserEventData(user=user))
            )
            logger.info(
                f"[{self.platform.value.upper()}] User left: {user.username or user.platform_id}"
            )
        except Exception as e:
            logger.error(
                f"Error handling {self.platform.value} member leave: {e} {self.describe_update(raw)}",
                exc_info=True,
            )

    async def handle_client_error(self, error: Exception, raw: Any) -> None:
        """Log a client-level error and republish it as an error event."""
        context = self.describe_update(raw) if raw is not None else {}
        logger.error(f"{self.platform.value} bot error: {error} {context}")
        if self._audit:
            self._audit.log_platform_adapter_error(self.platform.value, str(error))
        self.bridge.publish(
            ErrorEvent(
                platform=self.platform,
                data=ErrorEventData(error=error, context=context),
            )
        )
