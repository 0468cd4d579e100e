"""
Audit logging for chatbridge.

This package provides JSON Lines audit logging for platform traffic,
access refusals and adapter lifecycle events.
"""

from chatbridge.audit.logger import (
    AuditEventType,
    AuditLogger,
    get_audit_logger,
    reset_audit_logger,
)

__all__ = ["AuditEventType", "AuditLogger", "get_audit_logger", "reset_audit_logger"]
