"""Shared fakes for liveness, registry and guard tests."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from caffeinate2.errors import SleepToggleError
from caffeinate2.liveness import ProcessProbe
from caffeinate2.power import SleepToggle
from caffeinate2.registry import LockFileStore


class FakeProbe(ProcessProbe):
    """Probe answering from in-memory tables instead of the OS."""

    def __init__(self) -> None:
        self.dead: set[int] = set()
        self.start_times: dict[int, int] = {}
        self.probed: list[int] = []

    def is_alive(self, pid: int) -> bool:
        self.probed.append(pid)
        return pid not in self.dead

    def start_time(self, pid: int) -> int | None:
        return self.start_times.get(pid)


class RecordingToggle(SleepToggle):
    """Sleep toggle that records requested states and can be told to fail."""

    def __init__(self, fail_on: bool | None = None) -> None:
        self.calls: list[bool] = []
        self.fail_on = fail_on

    def set_sleep_disabled(self, disabled: bool) -> None:
        self.calls.append(disabled)
        if self.fail_on is disabled:
            raise SleepToggleError(disabled, code=0xE00002C1)


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def toggle() -> RecordingToggle:
    return RecordingToggle()


@pytest.fixture
def lock_path(tmp_path: Path) -> Path:
    return tmp_path / "caffeinate2.lock"


@pytest.fixture
def store(lock_path: Path, probe: FakeProbe) -> LockFileStore:
    return LockFileStore(lock_path, probe=probe, mode=0o600)


@pytest.fixture
def failing_toggle():
    """Build a RecordingToggle that fails when asked for the given state."""
    return lambda fail_on: RecordingToggle(fail_on=fail_on)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger("caffeinate2")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
