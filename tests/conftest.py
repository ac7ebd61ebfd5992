from __future__ import annotations

import pytest

from modelbake.reporting import SilentReporter, get_reporter, set_reporter, set_verbosity


@pytest.fixture(autouse=True)
def silent_reporter():
    """Run every test against a silent reporter, restoring the previous one."""
    previous = get_reporter()
    rep = SilentReporter()
    set_reporter(rep)
    yield rep
    set_reporter(previous)
    set_verbosity(0)
