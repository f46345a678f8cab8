"""Per-process power assertions (macOS caffeinate wrapper)."""

from __future__ import annotations

import atexit
from contextlib import AbstractContextManager
import logging
import os
import platform
import shutil
import subprocess
from typing import Any, Iterable


ASSERTION_FLAGS = {
    "display": "d",
    "idle": "i",
    "disk": "m",
    "system": "s",
    "user": "u",
}


class PowerAssertions(AbstractContextManager["PowerAssertions"]):
    """Holds assertions for the lifetime of this process; no-op off macOS.

    The helper is bound to our PID with ``-w``, so the assertions lapse even
    if this process is killed without running any cleanup.
    """

    def __init__(self, kinds: Iterable[str], logger: logging.Logger | None = None) -> None:
        self.kinds = tuple(dict.fromkeys(kinds))
        unknown = [kind for kind in self.kinds if kind not in ASSERTION_FLAGS]
        if unknown:
            raise ValueError(f"Unknown assertion kind(s): {', '.join(unknown)}")
        self.logger = logger or logging.getLogger(__name__)
        self._process: subprocess.Popen[Any] | None = None

    @property
    def flags(self) -> str:
        return "".join(ASSERTION_FLAGS[kind] for kind in self.kinds)

    @property
    def active(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def command(self, pid: int | None = None) -> list[str]:
        """Helper invocation holding our assertions until ``pid`` exits."""
        watched = os.getpid() if pid is None else pid
        return ["caffeinate", f"-{self.flags}", "-w", str(watched)]

    def start(self) -> None:
        """Start the assertion helper when available."""
        if not self.kinds:
            return
        if platform.system() != "Darwin" or shutil.which("caffeinate") is None:
            self.logger.info("Power assertions (%s) unavailable on this platform", ", ".join(self.kinds))
            return

        if self._process is None or self._process.poll() is not None:
            self._process = subprocess.Popen(
                self.command(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            atexit.register(self.stop)
            self.logger.info("Holding power assertions: %s", ", ".join(self.kinds))

    def stop(self) -> None:
        """Terminate the assertion helper."""
        if self._process and self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                self._process.kill()
                self._process.wait()

    def __enter__(self) -> "PowerAssertions":
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.stop()
        return None
