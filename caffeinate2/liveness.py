"""Liveness checks used to reclaim stale lock file entries."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
import os
from typing import AbstractSet

import psutil

from .identity import Identity


class ProcessProbe(ABC):
    """Process introspection used by the liveness filter."""

    @abstractmethod
    def is_alive(self, pid: int) -> bool:
        """Return False only when the PID is known not to exist."""

    @abstractmethod
    def start_time(self, pid: int) -> int | None:
        """Creation time of ``pid`` in whole epoch seconds, or None if unknown."""


class SystemProcessProbe(ProcessProbe):
    """Probe backed by ``kill(pid, 0)`` and psutil's process creation time."""

    def is_alive(self, pid: int) -> bool:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except OSError:
            # EPERM and friends: the process exists but belongs to someone else.
            return True
        return True

    def start_time(self, pid: int) -> int | None:
        try:
            return int(psutil.Process(pid).create_time())
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return None


def is_stale(
    identity: Identity,
    probe: ProcessProbe,
    *,
    track_start_time: bool = True,
) -> bool:
    """True when ``identity`` no longer names a running instance."""
    if not probe.is_alive(identity.pid):
        return True
    if not track_start_time or identity.start_time is None:
        return False
    actual = probe.start_time(identity.pid)
    if actual is None:
        return False
    return actual != identity.start_time


def filter_live(
    identities: AbstractSet[Identity],
    current: Identity,
    probe: ProcessProbe,
    *,
    track_start_time: bool = True,
    logger: logging.Logger | None = None,
) -> set[Identity]:
    """Drop dead or recycled entries; ``current`` is always kept."""
    log = logger or logging.getLogger(__name__)
    live: set[Identity] = set()
    for identity in identities:
        if identity == current:
            live.add(identity)
            continue
        if is_stale(identity, probe, track_start_time=track_start_time):
            log.info("Removing stale process %s from lockfile", identity)
            continue
        live.add(identity)
    return live
