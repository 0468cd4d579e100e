"""
Error taxonomy for chatbridge.

Configuration errors are fatal to startup, platform errors are recoverable
and carry the platform they originate from.
"""

from typing import Optional

from chatbridge.core.models import Platform


class BotError(Exception):
    """Base exception for chatbridge errors."""

    def __init__(
        self,
        message: str,
        code: str = "BOT_ERROR",
        platform: Optional[Platform] = None,
        user_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.platform = platform
        self.user_id = user_id


class ConfigurationError(BotError):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")


class PlatformError(BotError):
    """A platform adapter or its native client failed."""

    def __init__(self, message: str, platform: Platform):
        super().__init__(message, "PLATFORM_ERROR", platform=platform)

    def __str__(self) -> str:
        return f"[{self.platform.value}] {self.message}"
