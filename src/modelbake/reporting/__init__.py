"""Progress and summary reporting backends.

``--reporter`` picks one of :class:`PlainReporter` (default, stderr lines),
:class:`RichReporter` (progress bars), :class:`JsonLinesReporter` (one JSON
event per line on stdout) or :class:`SilentReporter`.
"""

from .base import (
    SUMMARY_KINDS,
    Reporter,
    SilentReporter,
    TaskRecord,
    TaskStatus,
    format_summary,
    get_reporter,
    get_verbosity,
    set_reporter,
    set_verbosity,
    task,
)
from .plain import PlainReporter
from .jsonl import JsonLinesReporter
from .rich_reporter import RichReporter

__all__ = [
    "SUMMARY_KINDS",
    "Reporter",
    "SilentReporter",
    "TaskRecord",
    "TaskStatus",
    "format_summary",
    "get_reporter",
    "get_verbosity",
    "set_reporter",
    "set_verbosity",
    "task",
    "PlainReporter",
    "JsonLinesReporter",
    "RichReporter",
]
