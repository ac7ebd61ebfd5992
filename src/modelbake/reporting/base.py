"""Reporter protocol shared by the CLI backends.

Bake code talks to the active reporter only: tasks (``start_task`` /
``advance`` / ``end_task`` or the :func:`task` context manager), free-form
status lines and ``summary`` records. A summary is a named set of key/value
stats (``model``, ``bake``, ``pak``, ``manifest``, ``inspect``); line based
backends print it as ``"<Kind> summary: k=v ..."`` while the JSON backend
emits it as one structured event.
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "TaskStatus",
    "TaskRecord",
    "Reporter",
    "SilentReporter",
    "SUMMARY_KINDS",
    "format_summary",
    "set_reporter",
    "get_reporter",
    "set_verbosity",
    "get_verbosity",
    "task",
]

SUMMARY_KINDS = ("model", "bake", "pak", "manifest", "inspect")


class TaskStatus(Enum):
    RUNNING = auto()
    SUCCESS = auto()
    FAILED = auto()


@dataclass(slots=True)
class TaskRecord:
    task_id: str
    name: str
    total: Optional[int] = None
    completed: int = 0
    status: TaskStatus = TaskStatus.RUNNING
    start_time: float = field(default_factory=time.time)
    end_time: float | None = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        if self.end_time is None:
            return 0.0
        return self.end_time - self.start_time


def format_summary(kind: str, stats: Mapping[str, Any]) -> str:
    pairs = " ".join(f"{k}={v}" for k, v in stats.items())
    return f"{kind.capitalize()} summary: {pairs}"


_VERBOSITY: int = 0  # set by the CLI (-v repeats)


def set_verbosity(level: int) -> None:
    global _VERBOSITY
    _VERBOSITY = max(0, level)


def get_verbosity() -> int:
    return _VERBOSITY


class Reporter:
    """Sink for bake progress, summaries and diagnostics."""

    def start_task(
        self, task_id: str, name: str, total: int | None = None, **meta: Any
    ) -> None:  # noqa: D401
        raise NotImplementedError

    def advance(
        self, task_id: str, step: int = 1, **meta: Any
    ) -> None:  # noqa: D401
        raise NotImplementedError

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:  # noqa: D401
        raise NotImplementedError

    def status(self, message: str, **fields: Any) -> None:
        raise NotImplementedError

    def summary(self, kind: str, **stats: Any) -> None:
        if kind not in SUMMARY_KINDS:
            raise ValueError(f"Unknown summary kind '{kind}'")
        self.status(format_summary(kind, stats))

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        pass

    def error(self, message: str, **fields: Any) -> None:
        raise NotImplementedError

    def warning(self, message: str, **fields: Any) -> None:
        self.status(message, **fields)

    def section(self, title: str) -> None:  # noqa: D401
        raise NotImplementedError

    def flush(self) -> None:  # noqa: D401
        pass


class SilentReporter(Reporter):
    """Discards everything (quiet mode and tests)."""

    def start_task(self, task_id, name, total=None, **meta):
        pass

    def advance(self, task_id, step=1, **meta):
        pass

    def end_task(self, task_id, status=TaskStatus.SUCCESS, **final_meta):
        pass

    def status(self, message, **fields):
        pass

    def error(self, message, **fields):
        pass

    def section(self, title):
        pass


_ACTIVE_REPORTER: Reporter | None = None


def set_reporter(rep: Reporter) -> None:
    global _ACTIVE_REPORTER
    _ACTIVE_REPORTER = rep


def get_reporter() -> Reporter:
    global _ACTIVE_REPORTER
    if _ACTIVE_REPORTER is None:
        from .plain import PlainReporter  # local import to avoid cycle

        _ACTIVE_REPORTER = PlainReporter(stream=sys.stderr)
    return _ACTIVE_REPORTER


@contextmanager
def task(task_id: str, name: str, total: int | None = None, **meta: Any):
    """Run a block as a reporter task; an escaping exception marks it FAILED."""
    rep = get_reporter()
    rep.start_task(task_id, name, total, **meta)
    try:
        yield
    except Exception:
        rep.end_task(task_id, TaskStatus.FAILED)
        raise
    else:
        rep.end_task(task_id, TaskStatus.SUCCESS)
