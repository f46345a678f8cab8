"""Process identities recorded in the lock file."""

from __future__ import annotations

from dataclasses import dataclass
import os
import re
from typing import Iterable


MAX_PID = 2**31 - 1
MAX_START_TIME = 2**64 - 1

_DECIMAL = re.compile(r"[0-9]+")


@dataclass(frozen=True, slots=True)
class Identity:
    """One running instance, disambiguated across PID reuse by its start time.

    ``start_time`` is ``None`` for bare-PID records, which cannot be told
    apart from an unrelated process that later received the same PID.
    """

    pid: int
    start_time: int | None = None

    def __str__(self) -> str:
        if self.start_time is None:
            return str(self.pid)
        return f"{self.pid}:{self.start_time}"

    @classmethod
    def parse(cls, line: str) -> "Identity | None":
        """Parse ``PID`` or ``PID:START_TIME``; return None for anything else."""
        text = line.strip()
        if not text:
            return None
        pid_text, sep, start_text = text.partition(":")
        if not _DECIMAL.fullmatch(pid_text) or (sep and not _DECIMAL.fullmatch(start_text)):
            return None
        pid = int(pid_text)
        start_time = int(start_text) if sep else None
        if not 0 < pid <= MAX_PID:
            return None
        if start_time is not None and start_time > MAX_START_TIME:
            return None
        return cls(pid=pid, start_time=start_time)

    @classmethod
    def current(cls, probe=None) -> "Identity":
        """Identity of the calling process, using ``probe`` for the start time."""
        pid = os.getpid()
        start_time = probe.start_time(pid) if probe is not None else None
        return cls(pid=pid, start_time=start_time)


def parse_registry(content: str) -> set[Identity]:
    """Parse lock file content, silently skipping malformed lines."""
    identities: set[Identity] = set()
    for line in content.splitlines():
        identity = Identity.parse(line)
        if identity is not None:
            identities.add(identity)
    return identities


def format_registry(identities: Iterable[Identity]) -> str:
    """Serialize identities one per line, sorted so rewrites are stable."""
    ordered = sorted(identities, key=lambda item: (item.pid, item.start_time or 0))
    return "".join(f"{identity}\n" for identity in ordered)
