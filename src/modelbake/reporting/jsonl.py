from __future__ import annotations

import json
import sys
import time
from typing import Any, Dict
from .base import (
    SUMMARY_KINDS,
    Reporter,
    TaskRecord,
    TaskStatus,
    format_summary,
    get_verbosity,
)


class JsonLinesReporter(Reporter):
    """One JSON object per line on stdout, for scripted bakes.

    Every object carries an ``event`` key: ``task_start``, ``task_progress``,
    ``task_end``, ``status`` (with a ``level``), ``summary`` or ``section``.
    """

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._tasks: Dict[str, TaskRecord] = {}

    def _emit(self, event: str, **payload: Any) -> None:
        self.stream.write(json.dumps({"event": event, **payload}, sort_keys=True))
        self.stream.write("\n")

    def _status(self, level: str, message: str, fields: Dict[str, Any]) -> None:
        self._emit("status", message=message, level=level, **fields)

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        self._tasks[task_id] = TaskRecord(task_id, name, total, meta=meta)
        self._emit("task_start", id=task_id, name=name, total=total, **meta)

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        rec = self._tasks.get(task_id)
        if rec is None:
            return
        rec.completed += step
        rec.meta.update(meta)
        self._emit("task_progress", id=task_id, completed=rec.completed, **meta)

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        rec = self._tasks.pop(task_id, None)
        if rec is None:
            return
        rec.status = status
        rec.end_time = time.time()
        rec.meta.update(final_meta)
        self._emit(
            "task_end",
            id=task_id,
            status=status.name.lower(),
            completed=rec.completed,
            total=rec.total,
            duration_seconds=rec.duration,
            **rec.meta,
        )

    def summary(self, kind: str, **stats: Any) -> None:
        if kind not in SUMMARY_KINDS:
            raise ValueError(f"Unknown summary kind '{kind}'")
        self._emit(
            "summary",
            summary_type=kind,
            raw=format_summary(kind, stats),
            **stats,
        )

    def status(self, message: str, **fields: Any) -> None:
        self._status("info", message, fields)

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() >= level:
            self._status(f"verbose{level}", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._status("error", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._status("warning", message, fields)

    def section(self, title: str) -> None:
        self._emit("section", title=title)
