"""Tests for audit logger."""

import gzip
import json
import os
from datetime import date, datetime, timedelta
from pathlib import Path

from chatbridge.audit.logger import (
    AuditEventType,
    AuditLogger,
    get_audit_logger,
    reset_audit_logger,
)
from chatbridge.config.schema import AuditLogConfig


def read_events(log_path: Path) -> list[dict]:
    with log_path.open(encoding="utf-8") as f:
        return [json.loads(line) for line in f]


class TestAuditLogger:
    """Test AuditLogger functionality."""

    def test_create_audit_logger(self, temp_dir: Path) -> None:
        """Test creating an audit logger."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path)

        assert logger.log_path == log_path
        assert logger.enable is True

    def test_log_platform_traffic(self, temp_dir: Path) -> None:
        """Test logging received and sent messages."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=1)

        logger.log_platform_message_received("telegram", "42", "ann", "hello", "text")
        logger.log_platform_message_sent("telegram", "100", "hi ann")

        events = read_events(log_path)
        assert events[0]["event_type"] == AuditEventType.PLATFORM_MESSAGE_RECEIVED.value
        assert events[0]["username"] == "ann"
        assert events[0]["message"] == "hello"
        assert events[0]["message_type"] == "text"
        assert events[1]["event_type"] == AuditEventType.PLATFORM_MESSAGE_SENT.value
        assert events[1]["chat_id"] == "100"
        assert events[1]["content"] == "hi ann"

    def test_log_security_and_lifecycle(self, temp_dir: Path) -> None:
        """Test logging refusals and adapter lifecycle events."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=1)

        logger.log_system_start(["telegram"])
        logger.log_platform_adapter_started("telegram", "webhook")
        logger.log_platform_user_blocked("telegram", "99", "not in allowed users")
        logger.log_platform_adapter_error("telegram", "Conflict")
        logger.log_platform_adapter_stopped("telegram")
        logger.log_system_stop()

        events = read_events(log_path)
        assert [e["event_type"] for e in events] == [
            "system_start",
            "platform_adapter_started",
            "platform_user_blocked",
            "platform_adapter_error",
            "platform_adapter_stopped",
            "system_stop",
        ]
        assert events[0]["platforms"] == ["telegram"]
        assert events[1]["mode"] == "webhook"
        assert events[2]["reason"] == "not in allowed users"

    def test_buffering(self, temp_dir: Path) -> None:
        """Test event buffering."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=3)

        logger.log_platform_adapter_stopped("telegram")
        logger.log_platform_adapter_stopped("telegram")
        assert not log_path.exists()

        logger.log_platform_adapter_stopped("telegram")
        assert len(read_events(log_path)) == 3

    def test_disabled_logger(self, temp_dir: Path) -> None:
        """Test that disabled logger doesn't write anything."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, enable=False)

        logger.log_system_start([])
        logger.flush()

        assert not log_path.exists()

    def test_message_hashing(self, temp_dir: Path) -> None:
        """Test message hashing for privacy."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=1, hash_messages=True)

        logger.log_platform_message_received("telegram", "42", None, "my secret")

        event = read_events(log_path)[0]
        assert event["message"] != "my secret"
        assert len(event["message"]) == 64
        assert "username" not in event

    def test_exclude_messages(self, temp_dir: Path) -> None:
        """Test that raw text is replaced by a hash when messages are excluded."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=1, include_messages=False)

        logger.log_platform_message_sent("telegram", "100", "private reply")

        event = read_events(log_path)[0]
        assert "content" not in event
        assert len(event["content_hash"]) == 64

    def test_close_flushes_buffer(self, temp_dir: Path) -> None:
        """Test that close() flushes remaining events."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=100)

        logger.log_system_stop()
        logger.close()

        assert len(read_events(log_path)) == 1

    def test_timestamp_format(self, temp_dir: Path) -> None:
        """Test that timestamps are in ISO format."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=1)

        logger.log_system_stop()

        datetime.fromisoformat(read_events(log_path)[0]["timestamp"])

    def test_daily_rotation_archives_previous_day(self, temp_dir: Path) -> None:
        """Test that yesterday's log is archived and gzip compressed."""
        log_path = temp_dir / "audit.jsonl"
        log_path.write_text('{"event_type": "system_start"}\n', encoding="utf-8")
        yesterday = (datetime.now() - timedelta(days=1)).timestamp()
        os.utime(log_path, (yesterday, yesterday))

        logger = AuditLogger(log_path=log_path, buffer_size=1)
        logger.log_system_stop()

        archive = temp_dir / f"audit_{date.fromtimestamp(yesterday).isoformat()}.jsonl.gz"
        with gzip.open(archive, "rt", encoding="utf-8") as f:
            assert json.loads(f.readline())["event_type"] == "system_start"
        assert [e["event_type"] for e in read_events(log_path)] == ["system_stop"]

    def test_same_day_log_is_not_rotated(self, temp_dir: Path) -> None:
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=1)

        logger.log_system_start(["telegram"])
        logger.log_system_stop()

        assert list(temp_dir.glob("audit_*")) == []
        assert len(read_events(log_path)) == 2

    def test_rotation_prunes_expired_archives(self, temp_dir: Path) -> None:
        """Test retention cleanup after a rotation."""
        log_path = temp_dir / "audit.jsonl"
        log_path.write_text("{}\n", encoding="utf-8")
        yesterday = (datetime.now() - timedelta(days=1)).timestamp()
        os.utime(log_path, (yesterday, yesterday))
        expired = temp_dir / "audit_2000-01-01.jsonl.gz"
        expired.write_bytes(b"")
        unrelated = temp_dir / "audit_notes.txt"
        unrelated.write_text("keep", encoding="utf-8")

        logger = AuditLogger(log_path=log_path, buffer_size=1, retention_days=30, compress_old=False)
        logger.log_system_stop()

        assert not expired.exists()
        assert unrelated.exists()
        assert (temp_dir / f"audit_{date.fromtimestamp(yesterday).isoformat()}.jsonl").exists()

    def test_read_recent(self, temp_dir: Path) -> None:
        """Test reading the tail of the log."""
        log_path = temp_dir / "audit.jsonl"
        logger = AuditLogger(log_path=log_path, buffer_size=100)

        for user_id in ("1", "2", "3"):
            logger.log_platform_user_blocked("telegram", user_id, "not in allowed users")

        recent = logger.read_recent(2)
        assert [e["user_id"] for e in recent] == ["2", "3"]

    def test_read_recent_without_log(self, temp_dir: Path) -> None:
        logger = AuditLogger(log_path=temp_dir / "audit.jsonl")
        assert logger.read_recent() == []


class TestAuditLoggerSingleton:
    """Test the global audit logger."""

    def test_default_path_follows_home(self, chatbridge_home: Path) -> None:
        logger = get_audit_logger(AuditLogConfig())
        assert logger.log_path.resolve() == (chatbridge_home / "audit.jsonl").resolve()
        assert get_audit_logger() is logger

    def test_reset(self, chatbridge_home: Path) -> None:
        first = get_audit_logger(AuditLogConfig(buffer_size=10))
        first.log_system_stop()

        reset_audit_logger()

        assert (chatbridge_home / "audit.jsonl").exists()
        assert get_audit_logger(AuditLogConfig()) is not first
