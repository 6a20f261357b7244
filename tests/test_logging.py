"""Tests for the gridaudit structured event logging system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    return tmp_path / "logs"


@pytest.fixture
def sink(log_dir: Path):
    from gridaudit.logging.sink import EventSink

    return EventSink(log_dir)


# ---------------------------------------------------------------------------
# A) Event schema
# ---------------------------------------------------------------------------


class TestAuditEvent:
    def test_event_defaults(self):
        from gridaudit.logging.events import AuditEvent, EventLevel, EventType

        evt = AuditEvent(
            level=EventLevel.info,
            event_type=EventType.run_started,
            message="hello",
        )
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "run_started"
        assert evt.context == {}
        assert evt.error_code is None

    def test_make_sheet_event(self):
        from gridaudit.logging.events import EventLevel, EventType, make_sheet_event

        evt = make_sheet_event(
            EventType.sheet_skipped,
            EventLevel.warning,
            "gone",
            run_id="r1",
            sheet_name="P&L",
            error_code="sheet_load_failed",
            extra={"attempt": 1},
        )
        assert evt.context == {"run_id": "r1", "sheet_name": "P&L", "attempt": 1}
        assert evt.error_code == "sheet_load_failed"

    def test_all_event_types_exist(self):
        from gridaudit.logging.events import EventType

        assert {e.value for e in EventType} == {
            "run_started",
            "run_completed",
            "run_failed",
            "sheet_audited",
            "sheet_skipped",
            "issue_cap_reached",
            "named_range_invalid",
        }


class TestAttribution:
    def test_missing_keys_downgrade_to_warning(self):
        from gridaudit.logging.events import (
            AuditEvent,
            EventLevel,
            EventType,
            _validate_attribution,
        )

        evt = AuditEvent(
            level=EventLevel.info,
            event_type=EventType.sheet_audited,
            context={"run_id": "r1"},
        )
        out = _validate_attribution(evt)
        assert out.level == EventLevel.warning
        assert out.context["_missing_attribution"] == ["sheet_name"]

    def test_complete_event_unchanged(self):
        from gridaudit.logging.events import (
            AuditEvent,
            EventLevel,
            EventType,
            _validate_attribution,
        )

        evt = AuditEvent(
            level=EventLevel.info,
            event_type=EventType.run_started,
            context={"run_id": "r1"},
        )
        assert _validate_attribution(evt) is evt


# ---------------------------------------------------------------------------
# B) Sink
# ---------------------------------------------------------------------------


class TestEventSink:
    def _event(self, event_type="run_started", level="info", run_id="r1"):
        from gridaudit.logging.events import AuditEvent

        return AuditEvent(level=level, event_type=event_type, context={"run_id": run_id})

    def test_creates_dirs(self, sink, log_dir: Path):
        assert (log_dir / "runs").is_dir()

    def test_write_global_and_run(self, sink, log_dir: Path):
        sink.write(self._event(), run_id="r1")
        lines = (log_dir / "events.ndjson").read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["event_type"] == "run_started"
        assert len(sink.read_run_log("r1")) == 1

    def test_unsafe_run_id_not_written(self, sink, log_dir: Path):
        sink.write(self._event(), run_id="../escape")
        assert list((log_dir / "runs").iterdir()) == []
        assert sink.read_run_log("../escape") == []

    def test_read_global_filters(self, sink):
        sink.write(self._event("run_started", run_id="a"))
        sink.write(self._event("run_failed", level="error", run_id="a"))
        sink.write(self._event("run_started", run_id="b"))

        assert len(sink.read_global()) == 3
        assert [e["event_type"] for e in sink.read_global(level="error")] == ["run_failed"]
        assert len(sink.read_global(run_id="b")) == 1
        assert len(sink.read_global(event_type="run_started")) == 2

    def test_most_recent_first_and_limit(self, sink):
        for rid in ("a", "b", "c"):
            sink.write(self._event(run_id=rid))
        events = sink.read_global(limit=2)
        assert [e["context"]["run_id"] for e in events] == ["c", "b"]

    def test_corrupt_lines_skipped(self, sink, log_dir: Path):
        sink.write(self._event())
        with open(log_dir / "events.ndjson", "a") as f:
            f.write("{not json\n")
        sink.write(self._event())
        assert len(sink.read_global()) == 2

    def test_list_runs_newest_first(self, sink):
        for rid in ("20260101T000000Z_aaaa", "20260301T000000Z_bbbb", "20260201T000000Z_cccc"):
            sink.write(self._event(run_id=rid), run_id=rid)
        assert sink.list_runs() == [
            "20260301T000000Z_bbbb",
            "20260201T000000Z_cccc",
            "20260101T000000Z_aaaa",
        ]

    def test_tail_read(self, log_dir: Path):
        from gridaudit.logging.sink import EventSink

        small = EventSink(log_dir, tail_bytes=400)
        for i in range(20):
            small.write(self._event(run_id=f"r{i}"))
        events = small.read_global()
        assert 0 < len(events) < 20
        assert events[0]["context"]["run_id"] == "r19"


# ---------------------------------------------------------------------------
# C) Module-level emit
# ---------------------------------------------------------------------------


class TestEmit:
    def test_no_sink_discards(self):
        from gridaudit.logging.events import EventType, emit_info, set_log_dir

        set_log_dir(None)
        emit_info(EventType.run_started, "nothing happens", {"run_id": "x"})

    def test_emit_writes(self, log_dir: Path):
        from gridaudit.logging.events import EventType, emit_warning, set_log_dir
        from gridaudit.logging.sink import EventSink

        set_log_dir(log_dir)
        emit_warning(
            EventType.named_range_invalid,
            "broken",
            {"name": "rate"},
            error_code="named_range_ref_error",
            run_id="r1",
        )
        events = EventSink(log_dir).read_run_log("r1")
        assert events[0]["level"] == "warning"
        assert events[0]["error_code"] == "named_range_ref_error"

    def test_emit_never_raises(self, log_dir: Path, monkeypatch):
        from gridaudit.logging import events
        from gridaudit.logging.events import EventType, emit_error, set_log_dir

        set_log_dir(log_dir)

        def boom(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(events._sink, "write", boom)
        monkeypatch.setattr(events, "_last_stderr", None)
        emit_error(EventType.run_failed, "x")
