"""Telegram native client built on python-telegram-bot."""

import logging
from collections.abc import Sequence
from typing import Any, Optional

from telegram import BotCommand as TelegramBotCommand
from telegram import LinkPreviewOptions, Update
from telegram.constants import ChatAction
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from chatbridge.config.schema import TelegramConfig
from chatbridge.platforms.client import (
    BotClient,
    BotCommand,
    DeliveryMode,
    ErrorHandler,
    UpdateHandler,
    UpdateKind,
)

logger = logging.getLogger(__name__)

_FILTERS = {
    UpdateKind.TEXT: filters.TEXT,
    UpdateKind.IMAGE: filters.PHOTO,
    UpdateKind.AUDIO: filters.VOICE | filters.AUDIO,
    UpdateKind.DOCUMENT: filters.Document.ALL,
    UpdateKind.STICKER: filters.Sticker.ALL,
    UpdateKind.LOCATION: filters.LOCATION,
    UpdateKind.CONTACT: filters.CONTACT,
    UpdateKind.MEMBER_JOINED: filters.StatusUpdate.NEW_CHAT_MEMBERS,
    UpdateKind.MEMBER_LEFT: filters.StatusUpdate.LEFT_CHAT_MEMBER,
}


class TelegramClient(BotClient):
    """Telegram bot client using python-telegram-bot's Application.

    Updates are processed concurrently (``concurrent_updates``), one handler
    task per update.
    """

    def __init__(self, config: TelegramConfig):
        """Build the Application for the configured bot token.

        Args:
            config: Telegram configuration (token and webhook listener)
        """
        self._config = config
        self._application: Application = (
            Application.builder().token(config.bot_token).concurrent_updates(True).build()
        )

    @property
    def application(self) -> Application:
        """Underlying python-telegram-bot application."""
        return self._application

    # ------------------------------------------------------------------
    # Handler registration
    # ------------------------------------------------------------------

    def on_update(self, kind: UpdateKind, handler: UpdateHandler) -> None:
        async def _callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            message = update.effective_message
            if message is not None:
                await handler(message)

        # Edited messages keep their message_id and must not be published again
        self._application.add_handler(
            MessageHandler(_FILTERS[kind] & filters.UpdateType.MESSAGES, _callback)
        )

    def on_error(self, handler: ErrorHandler) -> None:
        async def _callback(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
            error = context.error
            if error is None:
                return
            await handler(error, update)

        self._application.add_error_handler(_callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def launch(self, mode: DeliveryMode, webhook_url: Optional[str] = None) -> None:
        updater = self._application.updater
        if updater is None:
            raise RuntimeError("Telegram application was built without an updater")

        try:
            await self._application.initialize()
            await self._application.start()
            if mode == DeliveryMode.WEBHOOK:
                await updater.start_webhook(
                    listen=self._config.webhook_listen,
                    port=self._config.webhook_port,
                    url_path=self._config.webhook_path,
                    webhook_url=webhook_url,
                    secret_token=self._config.webhook_secret,
                    allowed_updates=Update.ALL_TYPES,
                )
            else:
                await updater.start_polling(allowed_updates=Update.ALL_TYPES)
        except Exception:
            # Release the application so a later launch can start from scratch
            await self.stop()
            raise

    async def stop(self) -> None:
        updater = self._application.updater
        if updater is not None and updater.running:
            await updater.stop()
        if self._application.running:
            await self._application.stop()
        await self._application.shutdown()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    @staticmethod
    def _translate_options(options: dict[str, Any]) -> dict[str, Any]:
        """Map generic send options onto Bot API keyword arguments."""
        translated = dict(options)
        if translated.pop("disable_link_preview", False):
            translated["link_preview_options"] = LinkPreviewOptions(is_disabled=True)
        return translated

    async def send_text(self, chat_id: str, text: str, **options: Any) -> Any:
        return await self._application.bot.send_message(
            chat_id=chat_id, text=text, **self._translate_options(options)
        )

    async def send_photo(
        self, chat_id: str, photo: Any, caption: Optional[str] = None, **options: Any
    ) -> Any:
        return await self._application.bot.send_photo(
            chat_id=chat_id, photo=photo, caption=caption, **self._translate_options(options)
        )

    async def send_typing(self, chat_id: str) -> None:
        await self._application.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)

    async def get_file_path(self, file_id: str) -> str:
        file = await self._application.bot.get_file(file_id)
        return file.file_path or ""

    async def set_commands(self, commands: Sequence[BotCommand]) -> None:
        await self._application.bot.set_my_commands(
            [TelegramBotCommand(c.command, c.description) for c in commands]
        )
