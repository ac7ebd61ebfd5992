from __future__ import annotations

import sys
import time
from typing import Any, Dict
from .base import Reporter, TaskStatus, TaskRecord, get_verbosity

# level -> (label, ANSI color)
_LEVELS = {
    "info": ("INFO", "32"),
    "warning": ("WARN", "33"),
    "error": ("ERROR", "31"),
    "verbose": ("VERB", "36"),
}

# Task meta keys echoed on the completion line, in this order.
_STAT_KEYS = ("meshes", "indices", "vertices", "bytes")


class PlainReporter(Reporter):
    """Line-oriented stderr reporter; ANSI color only on a terminal."""

    def __init__(self, stream=None, use_color: bool | None = None):
        self.stream = stream or sys.stderr
        if use_color is None:
            use_color = getattr(self.stream, "isatty", lambda: False)()
        self.use_color = use_color
        self._tasks: Dict[str, TaskRecord] = {}

    def _emit(self, level: str, message: str, suffix: str = "") -> None:
        label, color = _LEVELS[level]
        label += suffix
        if self.use_color:
            label = f"\x1b[{color}m{label}\x1b[0m"
        self.stream.write(f"{label}: {message}\n")

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        self._tasks[task_id] = TaskRecord(task_id, name, total, meta=meta)

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        rec = self._tasks.get(task_id)
        if rec is None:
            return
        rec.completed += step
        rec.meta.update(meta)
        item = meta.get("current_item", f"#{rec.completed}")
        of = "?" if rec.total is None else rec.total
        self.stream.write(f"   · {rec.name}: {item} ({rec.completed}/{of})\n")

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
        mark = "✔" if status is TaskStatus.SUCCESS else "✖"
        parts = [f" {mark} {rec.name}"]
        if rec.total is not None:
            parts.append(f"{rec.completed}/{rec.total}")
        parts.append(f"({rec.duration:.2f}s)")
        stats = [f"{k}={rec.meta[k]}" for k in _STAT_KEYS if k in rec.meta]
        if stats:
            parts.append(f"[{' '.join(stats)}]")
        self.stream.write(" ".join(parts) + "\n")

    def status(self, message: str, **fields: Any) -> None:
        self._emit("info", message)

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() >= level:
            self._emit("verbose", message, str(level))

    def error(self, message: str, **fields: Any) -> None:
        self._emit("error", message)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit("warning", message)

    def section(self, title: str) -> None:
        self.stream.write(f"\n[{title}]\n")
