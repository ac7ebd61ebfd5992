from __future__ import annotations

import io
import json
import logging

import pytest

from modelbake.logging import configure_logging, get_logger
from modelbake.reporting import (
    JsonLinesReporter,
    PlainReporter,
    SilentReporter,
    TaskStatus,
    set_reporter,
    task,
)


def _events(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_json_summary_keeps_typed_stats():
    stream = io.StringIO()
    rep = JsonLinesReporter(stream=stream)
    rep.summary("model", key="a#b.glb", meshes=2, index_type="U16")
    (summary,) = _events(stream)
    assert summary["event"] == "summary"
    assert summary["summary_type"] == "model"
    assert summary["meshes"] == 2
    assert summary["raw"] == "Model summary: key=a#b.glb meshes=2 index_type=U16"


def test_plain_summary_is_one_status_line():
    stream = io.StringIO()
    PlainReporter(stream=stream, use_color=False).summary("pak", bytes=64, models=1)
    assert "Pak summary: bytes=64 models=1" in stream.getvalue()


def test_unknown_summary_kind_is_rejected():
    with pytest.raises(ValueError):
        SilentReporter().summary("texture", count=1)


def test_task_context_reports_failure():
    stream = io.StringIO()
    set_reporter(JsonLinesReporter(stream=stream))
    try:
        with task("bake.flatten", "Flatten meshes", total=1):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    end = _events(stream)[-1]
    assert end["event"] == "task_end"
    assert end["status"] == TaskStatus.FAILED.name.lower()


def test_log_records_are_forwarded_to_reporter():
    stream = io.StringIO()
    set_reporter(PlainReporter(stream=stream, use_color=False))
    configure_logging(0)
    configure_logging(0)
    logger = get_logger()
    try:
        handlers = [h for h in logger.handlers if type(h).__name__ == "_ReporterHandler"]
        assert len(handlers) == 1
        logger.warning("dropped %d meshes", 3)
        logger.debug("hidden")
    finally:
        for h in list(logger.handlers):
            logger.removeHandler(h)
        logger.setLevel(logging.NOTSET)
    out = stream.getvalue()
    assert "dropped 3 meshes" in out
    assert "hidden" not in out


def test_plain_task_lines():
    stream = io.StringIO()
    rep = PlainReporter(stream=stream, use_color=False)
    rep.start_task("bake.flatten", "Flatten meshes", total=2)
    rep.advance("bake.flatten", current_item="Cube")
    rep.advance("bake.flatten")
    rep.end_task("bake.flatten", meshes=2, indices=12)
    lines = stream.getvalue().splitlines()
    assert lines[0] == "   · Flatten meshes: Cube (1/2)"
    assert lines[1] == "   · Flatten meshes: #2 (2/2)"
    assert lines[2].startswith(" ✔ Flatten meshes 2/2 (")
    assert lines[2].endswith("[meshes=2 indices=12]")


def test_plain_colors_only_the_label():
    stream = io.StringIO()
    PlainReporter(stream=stream, use_color=True).warning("careful")
    assert stream.getvalue() == "\x1b[33mWARN\x1b[0m: careful\n"


def test_json_status_levels():
    stream = io.StringIO()
    rep = JsonLinesReporter(stream=stream)
    rep.warning("dropped", count=3)
    rep.error("broken", path="a.glb")
    warn, err = _events(stream)
    assert (warn["event"], warn["level"], warn["count"]) == ("status", "warning", 3)
    assert (err["level"], err["path"], err["message"]) == ("error", "a.glb", "broken")
