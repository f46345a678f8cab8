"""Exception types raised by caffeinate2."""

from __future__ import annotations

from pathlib import Path


class Caffeinate2Error(Exception):
    """Base class for all caffeinate2 failures."""


class RegistryError(Caffeinate2Error):
    """The lock file could not be opened, locked, read or rewritten."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class RegistryReplacedError(RegistryError):
    """The lock file path was swapped for another file while we were locking it."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, "Lockfile was replaced during acquisition")


class SleepToggleError(Caffeinate2Error):
    """The system-wide sleep setting could not be changed."""

    def __init__(self, disabled: bool, code: int | None = None, detail: str = "") -> None:
        action = "disable" if disabled else "re-enable"
        message = f"Failed to {action} sleep"
        if code is not None:
            message += f" (error code: {code:X})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.disabled = disabled
        self.code = code


class DurationError(Caffeinate2Error, ValueError):
    """A timeout string could not be turned into a duration."""


class ConfigError(Caffeinate2Error):
    """Configuration file or environment holds an invalid value."""


class Interrupted(Caffeinate2Error):
    """A termination signal arrived; raised so cleanup runs on the normal path."""

    def __init__(self, signum: int) -> None:
        super().__init__(f"Interrupted by signal {signum}")
        self.signum = signum
