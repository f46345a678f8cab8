"""Route termination signals into the normal cleanup path."""

from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
import logging
import signal
from types import FrameType
from typing import Any, Iterable, Iterator

from .errors import Interrupted


DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


class SignalRouter(AbstractContextManager["SignalRouter"]):
    """Turns the first termination signal into an ``Interrupted`` exception.

    The exception unwinds through the same ``with``/``finally`` blocks as
    normal completion. Signals arriving after the first one, or while a
    ``shielded()`` block runs, are recorded but do not interrupt cleanup.
    Handlers must be installed from the main thread.
    """

    def __init__(self, signals: Iterable[int] = DEFAULT_SIGNALS, logger: logging.Logger | None = None) -> None:
        self.signals = tuple(signals)
        self.logger = logger or logging.getLogger(__name__)
        self.received: int | None = None
        self._shield_depth = 0
        self._previous: dict[int, Any] = {}

    @property
    def exit_status(self) -> int | None:
        """Conventional ``128 + signum`` status, if a signal was received."""
        return None if self.received is None else 128 + self.received

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        if self.received is not None or self._shield_depth:
            if self.received is None:
                self.received = signum
            self.logger.info("Received signal %d during cleanup; finishing cleanup first.", signum)
            return
        self.received = signum
        raise Interrupted(signum)

    @contextmanager
    def shielded(self) -> Iterator[None]:
        """Run a block that a signal must not cut short."""
        self._shield_depth += 1
        try:
            yield
        finally:
            self._shield_depth -= 1

    def __enter__(self) -> "SignalRouter":
        for signum in self.signals:
            self._previous[signum] = signal.signal(signum, self._handle)
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()
        return None
