"""
Pytest configuration and fixtures for chatbridge tests.
"""

import os
import tempfile
from collections.abc import Generator, Sequence
from pathlib import Path
from typing import Any, Optional

import pytest
from typer.testing import CliRunner

from chatbridge.audit.logger import reset_audit_logger
from chatbridge.config.loader import clear_config_cache
from chatbridge.config.schema import TelegramConfig
from chatbridge.core.events import EventBridge
from chatbridge.platforms.client import (
    BotClient,
    BotCommand,
    DeliveryMode,
    ErrorHandler,
    UpdateHandler,
    UpdateKind,
)

FIXED_NOW = 1700000000.5

_PLATFORM_ENV = (
    "TELEGRAM_ENABLED",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_WEBHOOK_URL",
    "TELEGRAM_ALLOWED_USERS",
)


class FakeBotClient(BotClient):
    """In-memory BotClient recording every call."""

    def __init__(self, file_paths: Optional[dict[str, str]] = None) -> None:
        self.handlers: dict[UpdateKind, UpdateHandler] = {}
        self.error_handler: Optional[ErrorHandler] = None
        self.file_paths = file_paths if file_paths is not None else {}
        self.sent_texts: list[tuple[str, str, dict[str, Any]]] = []
        self.sent_photos: list[tuple[str, Any, Optional[str], dict[str, Any]]] = []
        self.typing: list[str] = []
        self.commands: list[BotCommand] = []
        self.launched: Optional[tuple[DeliveryMode, Optional[str]]] = None
        self.stopped = False

        # Failure switches
        self.fail_launch: Optional[Exception] = None
        self.fail_send: Optional[Exception] = None
        self.fail_typing: Optional[Exception] = None
        self.fail_commands: Optional[Exception] = None
        self.fail_stop: Optional[Exception] = None

    async def send_text(self, chat_id: str, text: str, **options: Any) -> Any:
        if self.fail_send:
            raise self.fail_send
        self.sent_texts.append((chat_id, text, options))
        return {"chat_id": chat_id, "text": text}

    async def send_photo(
        self, chat_id: str, photo: Any, caption: Optional[str] = None, **options: Any
    ) -> Any:
        if self.fail_send:
            raise self.fail_send
        self.sent_photos.append((chat_id, photo, caption, options))
        return {"chat_id": chat_id, "photo": photo}

    async def send_typing(self, chat_id: str) -> None:
        if self.fail_typing:
            raise self.fail_typing
        self.typing.append(chat_id)

    async def get_file_path(self, file_id: str) -> str:
        if file_id not in self.file_paths:
            raise LookupError(f"file {file_id} not found")
        return self.file_paths[file_id]

    async def set_commands(self, commands: Sequence[BotCommand]) -> None:
        if self.fail_commands:
            raise self.fail_commands
        self.commands = list(commands)

    def on_update(self, kind: UpdateKind, handler: UpdateHandler) -> None:
        self.handlers[kind] = handler

    def on_error(self, handler: ErrorHandler) -> None:
        self.error_handler = handler

    async def launch(self, mode: DeliveryMode, webhook_url: Optional[str] = None) -> None:
        if self.fail_launch:
            raise self.fail_launch
        self.launched = (mode, webhook_url)

    async def stop(self) -> None:
        self.stopped = True
        if self.fail_stop:
            raise self.fail_stop


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def chatbridge_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point CHATBRIDGE_HOME at an empty directory with a clean environment."""
    home = temp_dir / ".chatbridge"
    home.mkdir()
    monkeypatch.setenv("CHATBRIDGE_HOME", str(home))
    for name in _PLATFORM_ENV:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("CHATBRIDGE_") and name != "CHATBRIDGE_HOME":
            monkeypatch.delenv(name)

    clear_config_cache()
    reset_audit_logger()
    yield home
    clear_config_cache()
    reset_audit_logger()


@pytest.fixture
def bridge() -> EventBridge:
    """Provide an empty event bridge."""
    return EventBridge()


@pytest.fixture
def fake_client() -> FakeBotClient:
    """Provide a fake client that knows a handful of files."""
    return FakeBotClient(
        file_paths={
            "photo-large": "photos/file_1.jpg",
            "voice-1": "voice/file_2.oga",
            "audio-1": "music/file_3.mp3",
            "doc-1": "documents/file_4.pdf",
            "sticker-1": "https://api.telegram.org/file/bot123:ABC/stickers/file_5.webp",
        }
    )


@pytest.fixture
def telegram_config() -> TelegramConfig:
    """Provide an enabled Telegram configuration."""
    return TelegramConfig(enable=True, bot_token="123:ABC")


@pytest.fixture
def fixed_clock():
    """Clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW
