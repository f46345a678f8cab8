"""Temporarily prevent the system from sleeping, shared safely between instances."""

from .errors import (
    Caffeinate2Error,
    ConfigError,
    DurationError,
    Interrupted,
    RegistryError,
    RegistryReplacedError,
    SleepToggleError,
)
from .guard import GuardState, SleepGuard
from .identity import Identity
from .registry import LockFileStore
from .toggle import Operation, Transition, apply_operation

__all__ = [
    "Caffeinate2Error",
    "ConfigError",
    "DurationError",
    "Interrupted",
    "RegistryError",
    "RegistryReplacedError",
    "SleepToggleError",
    "GuardState",
    "SleepGuard",
    "Identity",
    "LockFileStore",
    "Operation",
    "Transition",
    "apply_operation",
]
