"""Structured event logging for gridaudit.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from gridaudit.logging.events import (
    AuditEvent,
    EventLevel,
    EventType,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    make_sheet_event,
    set_log_dir,
)
from gridaudit.logging.sink import EventSink

__all__ = [
    "AuditEvent",
    "EventLevel",
    "EventSink",
    "EventType",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "make_sheet_event",
    "set_log_dir",
]
