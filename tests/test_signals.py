"""Tests for routing signals into the normal cleanup path."""

from __future__ import annotations

import os
import signal
import time

import pytest

from caffeinate2.errors import Interrupted
from caffeinate2.signals import SignalRouter


def _deliver(signum: int) -> None:
    os.kill(os.getpid(), signum)
    # Give the interpreter a chance to run the Python-level handler.
    for _ in range(100):
        time.sleep(0.01)


def test_first_signal_raises_interrupted() -> None:
    with SignalRouter(signals=(signal.SIGUSR1,)) as router:
        with pytest.raises(Interrupted) as excinfo:
            _deliver(signal.SIGUSR1)
    assert excinfo.value.signum == signal.SIGUSR1
    assert router.exit_status == 128 + signal.SIGUSR1


def test_shielded_block_is_not_interrupted() -> None:
    """A signal during cleanup is recorded, not raised."""
    with SignalRouter(signals=(signal.SIGUSR1,)) as router:
        with router.shielded():
            _deliver(signal.SIGUSR1)
    assert router.received == signal.SIGUSR1


def test_second_signal_does_not_raise() -> None:
    with SignalRouter(signals=(signal.SIGUSR1,)) as router:
        with pytest.raises(Interrupted):
            _deliver(signal.SIGUSR1)
        _deliver(signal.SIGUSR1)
    assert router.received == signal.SIGUSR1


def test_previous_handlers_are_restored() -> None:
    before = signal.getsignal(signal.SIGUSR1)
    with SignalRouter(signals=(signal.SIGUSR1,)):
        assert signal.getsignal(signal.SIGUSR1) is not before
    assert signal.getsignal(signal.SIGUSR1) is before
