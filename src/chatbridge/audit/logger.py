"""
Audit logging for chatbridge.

This module provides JSON Lines based audit logging for tracking
platform traffic, access refusals and adapter lifecycle events.
"""

import gzip
import hashlib
import json
import shutil
import threading
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

from chatbridge.storage.paths import get_audit_log_path


class AuditEventType(str, Enum):
    """Types of audit events."""

    # System events
    SYSTEM_START = "system_start"
    SYSTEM_STOP = "system_stop"

    # Platform messaging events
    PLATFORM_MESSAGE_RECEIVED = "platform_message_received"
    PLATFORM_MESSAGE_SENT = "platform_message_sent"
    PLATFORM_USER_BLOCKED = "platform_user_blocked"
    PLATFORM_ADAPTER_STARTED = "platform_adapter_started"
    PLATFORM_ADAPTER_STOPPED = "platform_adapter_stopped"
    PLATFORM_ADAPTER_ERROR = "platform_adapter_error"


class AuditLogger:
    """
    JSON Lines based audit logger.

    Logs events to a JSON Lines file. The file is archived once a day, optionally
    gzip compressed, and archives past the retention window are deleted.
    Adapters on different platforms share one logger, so buffer access is
    serialized with a lock.
    """

    def __init__(
        self,
        log_path: str | Path,
        enable: bool = True,
        retention_days: int = 90,
        compress_old: bool = True,
        include_messages: bool = True,
        hash_messages: bool = False,
        buffer_size: int = 100,
        flush_interval_seconds: int = 5,
    ) -> None:
        """
        Initialize audit logger.

        Args:
            log_path: Path to audit log file
            enable: Whether logging is enabled
            retention_days: Days to keep archived logs
            compress_old: Whether to gzip archived logs
            include_messages: Whether to record message text
            hash_messages: Whether to hash message text for privacy
            buffer_size: Number of events to buffer before flush
            flush_interval_seconds: Seconds between forced flushes
        """
        self.log_path = Path(log_path).expanduser()
        self.enable = enable
        self.retention_days = retention_days
        self.compress_old = compress_old
        self.include_messages = include_messages
        self.hash_messages = hash_messages
        self.buffer_size = buffer_size
        self.flush_interval_seconds = flush_interval_seconds

        # Internal state
        self._buffer: list[dict[str, Any]] = []
        self._last_flush = datetime.now()
        self._lock = threading.Lock()

        # Ensure log directory exists
        if self.enable:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config: Any) -> "AuditLogger":
        """
        Create audit logger from configuration.

        Args:
            config: AuditLogConfig instance

        Returns:
            Configured AuditLogger
        """
        return cls(
            log_path=config.path or get_audit_log_path(),
            enable=config.enable,
            retention_days=config.retention_days,
            compress_old=config.compress_old,
            include_messages=config.include_messages,
            hash_messages=config.hash_messages,
            buffer_size=config.buffer_size,
            flush_interval_seconds=config.flush_interval_seconds,
        )

    def _hash_text(self, text: str) -> str:
        """SHA256 hash of text for privacy-preserving logging."""
        return hashlib.sha256(text.encode()).hexdigest()

    def _create_event(
        self, event_type: AuditEventType, data: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Create an audit event.

        Args:
            event_type: Type of event
            data: Event-specific data

        Returns:
            Complete event dictionary
        """
        event = {
            "timestamp": datetime.now().isoformat(),
            "event_type": event_type.value,
            **data,
        }
        return event

    def _write_event(self, event: dict[str, Any]) -> None:
        """
        Write an event to the log.

        Args:
            event: Event dictionary
        """
        if not self.enable:
            return

        with self._lock:
            self._buffer.append(event)

            # Flush if buffer is full or interval elapsed
            now = datetime.now()
            should_flush = (
                len(self._buffer) >= self.buffer_size
                or (now - self._last_flush).seconds >= self.flush_interval_seconds
            )

            if should_flush:
                self._flush_locked()

    def flush(self) -> None:
        """Flush buffered events to disk."""
        with self._lock:
            self._flush_locked()

    def _flush_locked(self) -> None:
        if not self.enable or not self._buffer:
            return

        # Daily rotation
        self._rotate_if_stale()

        with self.log_path.open("a", encoding="utf-8") as f:
            for event in self._buffer:
                f.write(json.dumps(event, ensure_ascii=False) + "\n")

        self._buffer.clear()
        self._last_flush = datetime.now()

    def _rotate_if_stale(self) -> None:
        """Archive the current file once the day it was last written has passed."""
        if not self.log_path.exists():
            return

        written_on = date.fromtimestamp(self.log_path.stat().st_mtime)
        if written_on >= date.today():
            return

        archive = self.log_path.with_name(
            f"{self.log_path.stem}_{written_on.isoformat()}{self.log_path.suffix}"
        )
        if self.compress_old:
            # Appending adds a gzip member; readers see one concatenated stream
            with self.log_path.open("rb") as src, gzip.open(f"{archive}.gz", "ab") as dst:
                shutil.copyfileobj(src, dst)
            self.log_path.unlink()
        else:
            self.log_path.replace(archive)

        self._prune_archives()

    def _prune_archives(self) -> None:
        """Delete archives dated before the retention window."""
        cutoff = date.today() - timedelta(days=self.retention_days)
        prefix = f"{self.log_path.stem}_"

        for archive in self.log_path.parent.glob(f"{prefix}*"):
            stamp = archive.name[len(prefix) :].split(".", 1)[0]
            try:
                archived_on = date.fromisoformat(stamp)
            except ValueError:
                continue
            if archived_on < cutoff:
                archive.unlink()

    def _message_fields(self, key: str, text: str) -> dict[str, Any]:
        if not self.include_messages:
            return {f"{key}_hash": self._hash_text(text)}
        return {key: self._hash_text(text) if self.hash_messages else text}

    # Convenience methods for logging specific events

    def log_system_start(self, platforms: list[str]) -> None:
        """Log gateway startup."""
        event = self._create_event(AuditEventType.SYSTEM_START, {"platforms": platforms})
        self._write_event(event)

    def log_system_stop(self) -> None:
        """Log gateway shutdown."""
        event = self._create_event(AuditEventType.SYSTEM_STOP, {})
        self._write_event(event)

    def log_platform_message_received(
        self,
        platform: str,
        user_id: str,
        username: str | None,
        message: str,
        message_type: str = "text",
    ) -> None:
        """Log a message received from a platform."""
        data: dict[str, Any] = {
            "platform": platform,
            "user_id": user_id,
            "message_type": message_type,
        }

        if username:
            data["username"] = username

        data.update(self._message_fields("message", message))

        event = self._create_event(AuditEventType.PLATFORM_MESSAGE_RECEIVED, data)
        self._write_event(event)

    def log_platform_message_sent(self, platform: str, chat_id: str, content: str) -> None:
        """Log a message sent to a platform."""
        data: dict[str, Any] = {"platform": platform, "chat_id": chat_id}
        data.update(self._message_fields("content", content))

        event = self._create_event(AuditEventType.PLATFORM_MESSAGE_SENT, data)
        self._write_event(event)

    def log_platform_user_blocked(
        self,
        platform: str,
        user_id: str,
        reason: str,
    ) -> None:
        """Log a refused platform user."""
        event = self._create_event(
            AuditEventType.PLATFORM_USER_BLOCKED,
            {
                "platform": platform,
                "user_id": user_id,
                "reason": reason,
            },
        )
        self._write_event(event)

    def log_platform_adapter_started(self, platform: str, mode: str) -> None:
        """Log a platform adapter start."""
        event = self._create_event(
            AuditEventType.PLATFORM_ADAPTER_STARTED,
            {
                "platform": platform,
                "mode": mode,
            },
        )
        self._write_event(event)

    def log_platform_adapter_stopped(self, platform: str) -> None:
        """Log a platform adapter stop."""
        event = self._create_event(
            AuditEventType.PLATFORM_ADAPTER_STOPPED,
            {"platform": platform},
        )
        self._write_event(event)

    def log_platform_adapter_error(self, platform: str, error: str) -> None:
        """Log a platform adapter error."""
        event = self._create_event(
            AuditEventType.PLATFORM_ADAPTER_ERROR,
            {
                "platform": platform,
                "error": error,
            },
        )
        self._write_event(event)

    def read_recent(self, limit: int = 20) -> list[dict[str, Any]]:
        """Return the last ``limit`` events written to the current log file."""
        self.flush()
        if not self.log_path.exists():
            return []

        with self.log_path.open(encoding="utf-8") as f:
            lines = [line for line in f if line.strip()]

        events = []
        for line in lines[-limit:] if limit > 0 else []:
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return events

    def close(self) -> None:
        """Close the audit logger and flush remaining events."""
        self.flush()


# Singleton instance
_audit_logger: AuditLogger | None = None


def get_audit_logger(config: Any | None = None) -> AuditLogger:
    """
    Get or create the global audit logger instance.

    Args:
        config: Optional AuditLogConfig for initialization

    Returns:
        AuditLogger instance
    """
    global _audit_logger

    if _audit_logger is None:
        if config is None:
            # Import here to avoid circular dependency
            from chatbridge.config.loader import get_config

            config = get_config().audit

        _audit_logger = AuditLogger.from_config(config)

    return _audit_logger


def reset_audit_logger() -> None:
    """Flush and drop the global audit logger."""
    global _audit_logger

    if _audit_logger is not None:
        _audit_logger.close()
    _audit_logger = None
