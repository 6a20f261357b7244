"""NDJSON event sink for audit runs.

Layout under the log directory::

    events.ndjson           every event, in write order
    runs/<run_id>.ndjson    events of one audit run

Each event is one ``json.dumps(..., sort_keys=True)`` line.  Appends hold an
exclusive ``fcntl.flock`` and reads a shared one, so several CLI processes can
audit into the same directory.  Without ``fcntl`` (Windows) no locks are
taken.
"""

from __future__ import annotations

import json
import os
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from gridaudit.logging.events import AuditEvent

try:
    import fcntl
except ImportError:  # pragma: no cover - Windows
    fcntl = None  # type: ignore[assignment]

_RUN_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")

GLOBAL_LOG = "events.ndjson"
RUNS_DIR = "runs"

# Reads look at the last 2 MB of a log at most.
_DEFAULT_TAIL_BYTES = 2 * 1024 * 1024
_MAX_READ_LIMIT = 2000


@contextmanager
def _locked(fd: int, mode: int) -> Iterator[None]:
    if fcntl is None:
        yield
        return
    fcntl.flock(fd, mode)
    try:
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)


def _lock_ex() -> int:
    return fcntl.LOCK_EX if fcntl is not None else 0


def _lock_sh() -> int:
    return fcntl.LOCK_SH if fcntl is not None else 0


class EventSink:
    """Append-only writer and reader for audit event logs.

    Args:
        log_dir: Directory holding the logs; created if missing.
        fsync: Flush every append to disk.
        tail_bytes: How much of a log file reads consider.
    """

    def __init__(self, log_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.log_dir = Path(log_dir)
        self.fsync = fsync
        self.tail_bytes = _DEFAULT_TAIL_BYTES if tail_bytes is None else tail_bytes
        (self.log_dir / RUNS_DIR).mkdir(parents=True, exist_ok=True)

    @property
    def global_log(self) -> Path:
        return self.log_dir / GLOBAL_LOG

    def run_log(self, run_id: str) -> Path | None:
        """Path of a run's log, or None for ids that are not safe file names."""
        if not _RUN_ID_RE.match(run_id):
            return None
        return self.log_dir / RUNS_DIR / f"{run_id}.ndjson"

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(self, event: AuditEvent, *, run_id: str | None = None) -> None:
        """Append *event* to the global log and, given a run id, to the run's log."""
        data = (json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str) + "\n").encode("utf-8")
        targets = [self.global_log]
        run_path = self.run_log(run_id) if run_id else None
        if run_path is not None:
            targets.append(run_path)
        for path in targets:
            self._append(path, data)

    def _append(self, path: Path, data: bytes) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
        try:
            with _locked(fd, _lock_ex()):
                os.write(fd, data)
                if self.fsync:
                    os.fsync(fd)
        finally:
            os.close(fd)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_global(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        run_id: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Events from the global log, newest first, optionally filtered."""
        wanted = {"level": level, "event_type": event_type}
        out: list[dict[str, Any]] = []
        for event in reversed(list(self._events(self.global_log))):
            if any(v and event.get(k) != v for k, v in wanted.items()):
                continue
            if run_id and event.get("context", {}).get("run_id") != run_id:
                continue
            out.append(event)
            if len(out) >= min(limit, _MAX_READ_LIMIT):
                break
        return out

    def read_run_log(self, run_id: str) -> list[dict[str, Any]]:
        """Events of one run in write order; empty for unknown or unsafe ids."""
        path = self.run_log(run_id)
        if path is None:
            return []
        return list(self._events(path))

    def list_runs(self) -> list[str]:
        """Run ids that have a log, newest first (ids start with a UTC stamp)."""
        return sorted((p.stem for p in (self.log_dir / RUNS_DIR).glob("*.ndjson")), reverse=True)

    def _events(self, path: Path) -> Iterator[dict[str, Any]]:
        if not path.exists():
            return
        for line in self._tail(path).splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue

    def _tail(self, path: Path) -> str:
        with open(path, "rb") as f, _locked(f.fileno(), _lock_sh()):
            size = os.fstat(f.fileno()).st_size
            if size <= self.tail_bytes:
                return f.read().decode("utf-8", errors="replace")
            f.seek(size - self.tail_bytes)
            data = f.read()
        # first line is probably cut
        _, _, data = data.partition(b"\n")
        return data.decode("utf-8", errors="replace")
