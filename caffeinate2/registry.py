"""Lock file registry of instances holding the system-wide sleep setting.

Every update is one read-modify-write cycle under an exclusive ``flock``:
read the recorded identities, drop stale ones, apply the operation, then
truncate and rewrite the whole file. The lock is held only for that cycle.
"""

from __future__ import annotations

from contextlib import contextmanager
import fcntl
import logging
import os
from pathlib import Path
from typing import IO, Iterator

from .errors import RegistryError, RegistryReplacedError
from .identity import Identity, format_registry, parse_registry
from .liveness import ProcessProbe, SystemProcessProbe, filter_live
from .toggle import Operation, apply_operation


ROOT_LOCK_PATH = Path("/var/run/caffeinate2.lock")
ROOT_LOCK_MODE = 0o644
USER_LOCK_MODE = 0o600


def _is_root() -> bool:
    return os.geteuid() == 0


def default_lock_path() -> Path:
    """Privilege-appropriate lock file location."""
    if _is_root():
        return ROOT_LOCK_PATH
    return Path(f"/tmp/caffeinate2_{os.getuid()}.lock")


def default_lock_mode() -> int:
    return ROOT_LOCK_MODE if _is_root() else USER_LOCK_MODE


class LockFileStore:
    """Crash-safe registry of identities persisted in a single lock file."""

    def __init__(
        self,
        path: Path | None = None,
        *,
        probe: ProcessProbe | None = None,
        track_start_time: bool = True,
        mode: int | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else default_lock_path()
        self.probe = probe or SystemProcessProbe()
        self.track_start_time = track_start_time
        self.mode = default_lock_mode() if mode is None else mode
        self.logger = logger or logging.getLogger(__name__)

    def update(self, identity: Identity, operation: Operation) -> bool:
        """Apply ``operation`` for ``identity``; return True if the global setting must flip."""
        with self._locked(fcntl.LOCK_EX) as handle:
            try:
                recorded = parse_registry(handle.read())
            except OSError as exc:
                raise RegistryError(self.path, f"cannot read lockfile: {exc}") from exc

            live = filter_live(
                recorded,
                identity,
                self.probe,
                track_start_time=self.track_start_time,
                logger=self.logger,
            )
            transition = apply_operation(live, identity, operation)
            self.logger.debug(
                "%s %s: %d live before, %d after (toggle=%s)",
                operation.value,
                identity,
                len(live),
                len(transition.registry),
                transition.toggle,
            )

            try:
                handle.seek(0)
                handle.truncate()
                handle.write(format_registry(transition.registry))
                handle.flush()
                os.fsync(handle.fileno())
            except OSError as exc:
                raise RegistryError(self.path, f"cannot rewrite lockfile: {exc}") from exc

        return transition.toggle

    def read(self) -> set[Identity]:
        """Snapshot of the recorded identities, without liveness filtering."""
        if not self.path.exists():
            return set()
        with self._locked(fcntl.LOCK_SH) as handle:
            try:
                return parse_registry(handle.read())
            except OSError as exc:
                raise RegistryError(self.path, f"cannot read lockfile: {exc}") from exc

    @contextmanager
    def _locked(self, lock_operation: int) -> Iterator[IO[str]]:
        flags = os.O_RDWR | os.O_CREAT | os.O_NOFOLLOW | os.O_CLOEXEC
        try:
            fd = os.open(self.path, flags, self.mode)
        except OSError as exc:
            raise RegistryError(self.path, f"cannot open lockfile: {exc.strerror or exc}") from exc

        with os.fdopen(fd, "r+", encoding="utf-8", errors="replace", newline="") as handle:
            try:
                fcntl.flock(handle.fileno(), lock_operation)
            except OSError as exc:
                raise RegistryError(self.path, f"cannot lock lockfile: {exc.strerror or exc}") from exc
            try:
                self._verify_same_file(handle.fileno())
                yield handle
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _verify_same_file(self, fd: int) -> None:
        """Fail if the path no longer names the file we hold the lock on."""
        try:
            opened = os.fstat(fd)
            current = os.stat(self.path)
        except FileNotFoundError as exc:
            raise RegistryReplacedError(self.path) from exc
        except OSError as exc:
            raise RegistryError(self.path, f"cannot stat lockfile: {exc.strerror or exc}") from exc
        if (opened.st_dev, opened.st_ino) != (current.st_dev, current.st_ino):
            raise RegistryReplacedError(self.path)
