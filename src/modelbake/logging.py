"""Logging utilities for modelbake.

Records on the ``modelbake`` logger are forwarded to the active reporter so
library warnings (e.g. dropped meshes) show up next to task progress.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator
from .reporting import get_reporter, get_verbosity

_LOGGER_NAME = "modelbake"
_STEP_PREFIX = "  ->"

__all__ = [
    "get_logger",
    "configure_logging",
    "section",
    "step",
]


class _ReporterHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401
        rep = get_reporter()
        msg = self.format(record)
        lvl = record.levelno
        if lvl >= logging.ERROR:
            rep.error(msg)
        elif lvl >= logging.WARNING:
            rep.warning(msg)
        elif lvl >= logging.INFO:
            rep.status(msg)
        else:
            rep.verbose(msg)


def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)


def configure_logging(verbosity: int = 0) -> None:
    logger = get_logger()
    logger.setLevel(logging.DEBUG if verbosity >= 1 else logging.INFO)

    for h in list(logger.handlers):
        if isinstance(h, _ReporterHandler):
            logger.removeHandler(h)

    handler = _ReporterHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)


def step(message: str) -> None:
    get_reporter().status(f"{_STEP_PREFIX} {message}")


@contextmanager
def section(title: str) -> Iterator[logging.Logger]:
    logger = get_logger()
    get_reporter().section(title)
    try:
        yield logger
    finally:
        if get_verbosity() >= 1:
            logger.debug("end section: %s", title)
