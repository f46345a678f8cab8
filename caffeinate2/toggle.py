"""Reference-count transition over the set of live holders.

Acquire reports a toggle when the holder count leaves zero, release reports
one when it comes back to zero. Counting happens before insertion on acquire
and after removal on release.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet

from .identity import Identity


class Operation(str, Enum):
    """Direction of a registry update."""

    ACQUIRE = "acquire"
    RELEASE = "release"


@dataclass(frozen=True, slots=True)
class Transition:
    """Result of applying one operation to the live set."""

    registry: frozenset[Identity]
    toggle: bool


def apply_operation(live: AbstractSet[Identity], identity: Identity, operation: Operation) -> Transition:
    """Compute the new registry and whether the global setting must flip."""
    if operation is Operation.ACQUIRE:
        if identity in live:
            return Transition(registry=frozenset(live), toggle=False)
        return Transition(registry=frozenset(live) | {identity}, toggle=len(live) == 0)

    remaining = frozenset(live) - {identity}
    return Transition(registry=remaining, toggle=len(remaining) == 0)
