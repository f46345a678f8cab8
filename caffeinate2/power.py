"""System-wide sleep toggle capability."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
import subprocess

from .errors import ConfigError, SleepToggleError


class SleepToggle(ABC):
    """Flips the machine-wide "sleep disabled" setting. Idempotent."""

    @abstractmethod
    def set_sleep_disabled(self, disabled: bool) -> None:
        """Apply the setting or raise SleepToggleError."""


class PmsetSleepToggle(SleepToggle):
    """macOS implementation through ``pmset -a disablesleep``; requires root."""

    def __init__(self, executable: str = "pmset", logger: logging.Logger | None = None) -> None:
        self.executable = executable
        self.logger = logger or logging.getLogger(__name__)

    def set_sleep_disabled(self, disabled: bool) -> None:
        command = [self.executable, "-a", "disablesleep", "1" if disabled else "0"]
        try:
            completed = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise SleepToggleError(disabled, detail=str(exc)) from exc

        self.logger.debug("Got result %X when %s sleep", completed.returncode, "disabling" if disabled else "enabling")
        if completed.returncode != 0:
            raise SleepToggleError(disabled, code=completed.returncode, detail=completed.stderr.strip())


class NullSleepToggle(SleepToggle):
    """Records requested states without touching the system (dry runs)."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.calls: list[bool] = []
        self.logger = logger or logging.getLogger(__name__)

    def set_sleep_disabled(self, disabled: bool) -> None:
        self.calls.append(disabled)
        self.logger.info("[dry-run] would %s system sleep", "disable" if disabled else "re-enable")


def make_sleep_toggle(name: str, logger: logging.Logger | None = None) -> SleepToggle:
    """Build the toggle selected in configuration."""
    if name == "pmset":
        return PmsetSleepToggle(logger=logger)
    if name == "none":
        return NullSleepToggle(logger=logger)
    raise ConfigError(f"Unknown sleep_toggle '{name}' (expected 'pmset' or 'none')")
