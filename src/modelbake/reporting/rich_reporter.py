from __future__ import annotations

import os
import time
from typing import Any, Dict, List

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .base import Reporter, TaskStatus, TaskRecord, get_verbosity

_STATUS_ICON = {
    TaskStatus.SUCCESS: "✔",
    TaskStatus.FAILED: "✖",
}

_STAT_KEYS = ("meshes", "indices", "vertices", "bytes")


class RichReporter(Reporter):
    """Interactive reporter drawing progress bars for counted tasks."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(
            stderr=True, highlight=False, soft_wrap=False
        )
        self._transient = os.getenv(
            "MODELBAKE_PROGRESS_TRANSIENT", "0"
        ).lower() in ("1", "true", "yes")
        self.progress: Progress | None = None
        self._tasks: Dict[str, TaskRecord] = {}
        self._task_ids: Dict[str, Any] = {}
        self._completions: List[str] = []

    def _ensure_progress(self) -> Progress:
        if self.progress is None:
            self.progress = Progress(
                SpinnerColumn(spinner_name="dots"),
                TextColumn("{task.description}", justify="left"),
                BarColumn(bar_width=None),
                TextColumn("{task.completed}/{task.total}"),
                TimeElapsedColumn(),
                transient=self._transient,
                console=self.console,
                expand=True,
            )
            self.progress.start()
        return self.progress

    def _completion_line(self, rec: TaskRecord) -> str:
        icon = _STATUS_ICON.get(rec.status, "")
        total_part = (
            f" {rec.completed}/{rec.total}" if rec.total is not None else ""
        )
        stats = [f"{k}={rec.meta[k]}" for k in _STAT_KEYS if k in rec.meta]
        stats_part = f" [{' '.join(stats)}]" if stats else ""
        return f"{icon} {rec.name}{total_part} ({rec.duration:.2f}s){stats_part}"

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:
        self._tasks[task_id] = TaskRecord(task_id, name, total, meta=meta)
        # Uncounted tasks render as a rule instead of a spinner.
        if total is None:
            self.console.rule(name)
            return
        progress = self._ensure_progress()
        self._task_ids[task_id] = progress.add_task(name, total=total)

    def advance(self, task_id: str, step: int = 1, **meta: Any) -> None:
        rec = self._tasks.get(task_id)
        if not rec:
            return
        rec.completed += step
        rec.meta.update(meta)
        rid = self._task_ids.get(task_id)
        if rid is not None and self.progress:
            item = meta.get("current_item")
            description = f"{rec.name} ↳ {item}" if item else rec.name
            self.progress.update(
                rid, completed=rec.completed, description=description
            )

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        rec = self._tasks.pop(task_id, None)
        if not rec:
            return
        rec.status = status
        rec.end_time = time.time()
        rec.meta.update(final_meta)
        rid = self._task_ids.pop(task_id, None)
        if rid is not None and self.progress and rec.total is not None:
            self.progress.update(rid, completed=rec.total, description=rec.name)
        if self._transient:
            self._completions.append(self._completion_line(rec))
        else:
            self.console.print(self._completion_line(rec))
        if not self._tasks:
            self.flush()

    def status(self, message: str, **fields: Any) -> None:
        self.console.print(f"[green]INFO[/]: {message}")

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() < level:
            return
        self.console.print(f"[cyan]VERB{level}[/]: {message}")

    def error(self, message: str, **fields: Any) -> None:
        self.console.print(f"[bold red]ERROR[/]: {message}")

    def warning(self, message: str, **fields: Any) -> None:
        self.console.print(f"[yellow]WARN[/]: {message}")

    def section(self, title: str) -> None:
        self.console.rule(title)

    def flush(self) -> None:
        if self.progress is None:
            return
        try:
            self.progress.stop()
        finally:
            self.progress = None
            self._task_ids.clear()
            if self._completions:
                self.console.print("\n".join(self._completions))
                self._completions.clear()
