"""Audit event schema and the process-wide emit helpers.

An audit run reports what it did as structured events: run lifecycle, every
audited or skipped sheet, the issue cap, and broken named ranges.  Events go
to an ``EventSink`` once ``set_log_dir`` has been called; before that they are
dropped.  Timestamps are UTC ISO-8601 with a ``Z`` suffix.

``emit`` and its helpers never raise: a logging failure must not fail an
audit.  Failures are reported on stderr, at most once a minute.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from gridaudit.logging.sink import EventSink


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    run_started = "run_started"
    run_completed = "run_completed"
    run_failed = "run_failed"
    sheet_audited = "sheet_audited"
    sheet_skipped = "sheet_skipped"
    issue_cap_reached = "issue_cap_reached"
    named_range_invalid = "named_range_invalid"


# Error codes carried in ``AuditEvent.error_code``.
SHEET_LOAD_FAILED = "sheet_load_failed"
SHEET_NO_DATA = "sheet_no_data"
SHEET_LIST_UNAVAILABLE = "sheet_list_unavailable"
AUDIT_COMPUTE_FAILED = "audit_compute_failed"
NAMED_RANGE_REF_ERROR = "named_range_ref_error"


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class AuditEvent(BaseModel):
    """One structured log line."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    message: str = ""
    context: dict[str, Any] = Field(default_factory=dict)
    error_code: str | None = None


# Context keys each event type must carry to be traceable to a run and sheet.
# run_failed may happen before anything is worth attributing.
_REQUIRED_CONTEXT: dict[EventType, frozenset[str]] = {
    EventType.run_started: frozenset({"run_id"}),
    EventType.run_completed: frozenset({"run_id"}),
    EventType.run_failed: frozenset(),
    EventType.sheet_audited: frozenset({"run_id", "sheet_name"}),
    EventType.sheet_skipped: frozenset({"run_id", "sheet_name"}),
    EventType.issue_cap_reached: frozenset({"run_id"}),
    EventType.named_range_invalid: frozenset({"name"}),
}


def _validate_attribution(event: AuditEvent) -> AuditEvent:
    """Return *event*, or a warning-level copy listing missing context keys."""
    missing = _REQUIRED_CONTEXT.get(event.event_type, frozenset()) - set(event.context)
    if not missing:
        return event
    context = {**event.context, "_missing_attribution": sorted(missing)}
    return event.model_copy(update={"level": EventLevel.warning, "context": context})


def make_sheet_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    run_id: str,
    sheet_name: str,
    error_code: str | None = None,
    extra: dict[str, Any] | None = None,
) -> AuditEvent:
    """Build a sheet-scoped event; run id and sheet name are always set."""
    return AuditEvent(
        level=level,
        event_type=event_type,
        message=message,
        context={"run_id": run_id, "sheet_name": sheet_name, **(extra or {})},
        error_code=error_code,
    )


# ---------------------------------------------------------------------------
# Process-wide sink
# ---------------------------------------------------------------------------

_sink: EventSink | None = None


def set_log_dir(log_dir: Path | str | None, *, fsync: bool = False) -> None:
    """Send events to *log_dir* from now on; ``None`` turns logging off."""
    global _sink
    if log_dir is None:
        _sink = None
        return
    from gridaudit.logging.sink import EventSink

    _sink = EventSink(Path(log_dir), fsync=fsync)


_STDERR_INTERVAL_SECS = 60.0
_last_stderr: float | None = None


def _warn_stderr(msg: str) -> None:
    global _last_stderr
    now = time.monotonic()
    if _last_stderr is not None and now - _last_stderr < _STDERR_INTERVAL_SECS:
        return
    _last_stderr = now
    try:
        print(f"[gridaudit] {msg}", file=sys.stderr)
    except Exception:
        pass


# ---------------------------------------------------------------------------
# Emit
# ---------------------------------------------------------------------------


def emit(event: AuditEvent, *, run_id: str | None = None) -> None:
    """Write *event* to the global log (and the run log when *run_id* is given).

    Never raises.
    """
    sink = _sink
    if sink is None:
        return
    try:
        sink.write(_validate_attribution(event), run_id=run_id)
    except Exception:
        _warn_stderr(f"event logging failed: {traceback.format_exc()}")


def _emit_at(
    level: EventLevel,
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None,
    error_code: str | None,
    run_id: str | None,
) -> None:
    emit(
        AuditEvent(
            level=level,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        ),
        run_id=run_id,
    )


def emit_info(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    run_id: str | None = None,
) -> None:
    _emit_at(EventLevel.info, event_type, message, context, None, run_id)


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
    run_id: str | None = None,
) -> None:
    _emit_at(EventLevel.warning, event_type, message, context, error_code, run_id)


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
    run_id: str | None = None,
) -> None:
    _emit_at(EventLevel.error, event_type, message, context, error_code, run_id)
