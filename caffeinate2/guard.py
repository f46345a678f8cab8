"""Process-wide guard holding the system-wide sleep setting.

A guard registers this process in the lock file when acquired and removes it
when released. The first registered instance disables sleep, the last one to
leave re-enables it. Release happens at most once even when a signal-driven
path and the normal exit path race for it.
"""

from __future__ import annotations

import atexit
from contextlib import AbstractContextManager
from enum import Enum
import logging
import threading
from typing import Any

from .errors import RegistryError, SleepToggleError
from .identity import Identity
from .power import SleepToggle
from .registry import LockFileStore
from .toggle import Operation
from .utils.keep_awake import PowerAssertions


class GuardState(str, Enum):
    """Lifecycle of a SleepGuard; RELEASED is terminal."""

    UNINITIALIZED = "uninitialized"
    ACQUIRING = "acquiring"
    HELD = "held"
    RELEASING = "releasing"
    RELEASED = "released"


class SleepGuard(AbstractContextManager["SleepGuard"]):
    """Reference-counted hold on the system-wide "sleep disabled" setting."""

    def __init__(
        self,
        store: LockFileStore | None,
        sleep_toggle: SleepToggle | None,
        *,
        identity: Identity | None = None,
        assertions: PowerAssertions | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if (store is None) != (sleep_toggle is None):
            raise ValueError("store and sleep_toggle must be given together")
        self.store = store
        self.sleep_toggle = sleep_toggle
        if identity is None:
            probe = store.probe if store is not None and store.track_start_time else None
            identity = Identity.current(probe)
        self.identity = identity
        self.assertions = assertions
        self.logger = logger or logging.getLogger(__name__)
        self.state = GuardState.UNINITIALIZED
        self.owns_toggle = False
        # Never released once taken: whoever takes it performs the release.
        self._release_claim = threading.Lock()

    @property
    def held(self) -> bool:
        return self.state is GuardState.HELD

    @property
    def global_toggle(self) -> bool:
        """Whether this guard takes part in the system-wide reference count."""
        return self.store is not None

    def acquire(self) -> "SleepGuard":
        """Register this process; disable sleep if it is the first instance.

        Raises RegistryError or SleepToggleError. On failure nothing stays
        registered and sleep is not assumed to be disabled.
        """
        if self.state is not GuardState.UNINITIALIZED:
            raise RuntimeError(f"SleepGuard cannot be acquired from state '{self.state.value}'")
        self.state = GuardState.ACQUIRING

        should_disable = False
        if self.store is not None:
            try:
                should_disable = self.store.update(self.identity, Operation.ACQUIRE)
            except RegistryError:
                self._abandon()
                raise
            except BaseException:
                # Interrupted mid-update: the rewrite may already include us.
                self.logger.debug("Acquisition interrupted; removing %s", self.identity)
                self._unregister()
                self._abandon()
                raise

        try:
            if should_disable:
                self.logger.info("First instance detected. Disabling system sleep globally.")
                self.sleep_toggle.set_sleep_disabled(True)
                self.owns_toggle = True
            elif self.store is not None:
                self.logger.info("Other instances running. Sleep already disabled.")
            if self.assertions is not None:
                self.assertions.start()
        except BaseException:
            # Undo the registration so no later instance skips disabling sleep.
            self.logger.debug("Acquisition failed after registration; removing %s", self.identity)
            self._unregister()
            self._abandon()
            raise

        self.state = GuardState.HELD
        atexit.register(self.release)
        return self

    def release(self) -> bool:
        """Unregister this process; re-enable sleep if it was the last instance.

        Returns True for the call that performed the release. Failures are
        logged, never raised, so process exit is not blocked.
        """
        if not self._release_claim.acquire(blocking=False):
            return False
        if self.state is not GuardState.HELD:
            self.state = GuardState.RELEASED
            return False

        self.state = GuardState.RELEASING
        try:
            self._unregister()
        finally:
            self.state = GuardState.RELEASED
            atexit.unregister(self.release)
        return True

    def _unregister(self) -> None:
        if self.assertions is not None:
            try:
                self.assertions.stop()
            except OSError as exc:
                self.logger.warning("Error stopping power assertions: %s", exc)

        if self.store is None:
            return
        try:
            should_enable = self.store.update(self.identity, Operation.RELEASE)
        except RegistryError as exc:
            self.logger.error("Error updating lockfile during exit: %s", exc)
            return

        if not should_enable:
            self.logger.info("Other instances still running. Keeping sleep disabled.")
            return

        self.logger.info("Last instance exiting. Re-enabling system sleep globally.")
        try:
            self.sleep_toggle.set_sleep_disabled(False)
        except SleepToggleError as exc:
            self.logger.error("Error: %s", exc)

    def _abandon(self) -> None:
        self._release_claim.acquire(blocking=False)
        self.state = GuardState.RELEASED

    def __enter__(self) -> "SleepGuard":
        return self.acquire()

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.release()
        return None
