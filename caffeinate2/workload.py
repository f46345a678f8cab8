"""What to keep the machine awake for: a command, a PID, a duration, or forever."""

from __future__ import annotations

from datetime import timedelta
import logging
import subprocess
import sys
import threading
import time
from typing import IO, Sequence

from .liveness import ProcessProbe, SystemProcessProbe


logger = logging.getLogger(__name__)

TERMINATE_GRACE_SECONDS = 2.0


def exit_status(returncode: int | None) -> int:
    """Shell-style exit status for a finished child."""
    if returncode is None:
        return 1
    if returncode < 0:
        return 128 - returncode
    return returncode


def _deadline(timeout: timedelta | None) -> float | None:
    if timeout is None:
        return None
    return time.monotonic() + timeout.total_seconds()


def _expired(deadline: float | None) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def _forward(source: IO[str], destination: IO[str]) -> None:
    for line in iter(source.readline, ""):
        destination.write(line)
        destination.flush()
    source.close()


def _stop(process: subprocess.Popen[str]) -> int | None:
    if process.poll() is None:
        process.terminate()
        try:
            process.wait(timeout=TERMINATE_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
    return process.returncode


def run_command(
    argv: Sequence[str],
    *,
    timeout: timedelta | None = None,
    waitfor: int | None = None,
    probe: ProcessProbe | None = None,
    stdout: IO[str] | None = None,
    stderr: IO[str] | None = None,
    poll_interval: float = 0.1,
) -> int:
    """Run ``argv`` forwarding its output; return its exit status.

    The child is terminated early when ``timeout`` elapses or when the
    ``waitfor`` process exits, whichever comes first.
    """
    probe = probe or SystemProcessProbe()
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    deadline = _deadline(timeout)

    process = subprocess.Popen(
        list(argv),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        bufsize=1,
    )
    forwarders = [
        threading.Thread(target=_forward, args=(process.stdout, out), daemon=True),
        threading.Thread(target=_forward, args=(process.stderr, err), daemon=True),
    ]
    for thread in forwarders:
        thread.start()

    try:
        while process.poll() is None:
            if _expired(deadline):
                logger.info("Timeout reached, stopping command.")
                _stop(process)
                break
            if waitfor is not None and not probe.is_alive(waitfor):
                logger.info("Process %d exited, stopping command.", waitfor)
                _stop(process)
                break
            time.sleep(poll_interval)
    except BaseException:
        _stop(process)
        raise
    finally:
        for thread in forwarders:
            thread.join(timeout=TERMINATE_GRACE_SECONDS)

    return exit_status(process.returncode)


def wait_for_pid(
    pid: int,
    *,
    timeout: timedelta | None = None,
    probe: ProcessProbe | None = None,
    poll_interval: float = 1.0,
) -> int:
    """Block until ``pid`` exits or ``timeout`` elapses."""
    probe = probe or SystemProcessProbe()
    deadline = _deadline(timeout)
    while probe.is_alive(pid):
        if _expired(deadline):
            logger.info("Timeout reached before process %d exited.", pid)
            return 0
        time.sleep(poll_interval)
    logger.info("Process %d exited.", pid)
    return 0


def sleep_for(timeout: timedelta) -> int:
    """Block for ``timeout``."""
    time.sleep(max(0.0, timeout.total_seconds()))
    return 0


def wait_forever(poll_interval: float = 3600.0) -> int:
    """Block until a signal interrupts us."""
    while True:
        time.sleep(poll_interval)
