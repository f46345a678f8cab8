"""Parsing of human-readable timeout values such as ``1d 2h 3m 4s``."""

from __future__ import annotations

from datetime import timedelta
import re
import threading

from .errors import DurationError


INVALID_MESSAGE = "Timeout isn't a valid duration or number!"
TOO_LARGE_MESSAGE = "Timeout is too large!"

# Longest wait time.sleep and blocking timeouts accept on this platform.
MAX_SECONDS = threading.TIMEOUT_MAX

_UNIT_SECONDS: dict[str, float] = {}
for _names, _seconds in (
    (("nsec", "ns"), 1e-9),
    (("usec", "us"), 1e-6),
    (("msec", "ms"), 1e-3),
    (("seconds", "second", "secs", "sec", "s"), 1.0),
    (("minutes", "minute", "mins", "min", "m"), 60.0),
    (("hours", "hour", "hrs", "hr", "h"), 3600.0),
    (("days", "day", "d"), 86400.0),
    (("weeks", "week", "w"), 604800.0),
    (("months", "month", "M"), 2630016.0),
    (("years", "year", "y"), 31557600.0),
):
    for _name in _names:
        _UNIT_SECONDS[_name] = _seconds

_COMPONENT = re.compile(r"\s*(\d+)\s*([A-Za-z]+)")


def _parse_components(text: str) -> timedelta | None:
    position = 0
    total = timedelta()
    matched = False
    while position < len(text):
        match = _COMPONENT.match(text, position)
        if match is None:
            return None
        unit = _UNIT_SECONDS.get(match.group(2))
        if unit is None:
            return None
        try:
            total += timedelta(seconds=int(match.group(1)) * unit)
        except OverflowError as exc:
            raise DurationError(TOO_LARGE_MESSAGE) from exc
        matched = True
        position = match.end()
    return total if matched else None


def _bounded(duration: timedelta) -> timedelta:
    if duration.total_seconds() > MAX_SECONDS:
        raise DurationError(TOO_LARGE_MESSAGE)
    return duration


def parse_duration(value: str) -> timedelta:
    """Parse a duration string, falling back to a plain number of seconds.

    Raises DurationError for text that is not a duration and for durations
    longer than the platform can sleep for.
    """
    text = value.strip()
    parsed = _parse_components(text)
    if parsed is not None:
        return _bounded(parsed)

    if not text.isascii() or not text.isdigit():
        raise DurationError(INVALID_MESSAGE)
    try:
        return _bounded(timedelta(seconds=int(text)))
    except OverflowError as exc:
        raise DurationError(TOO_LARGE_MESSAGE) from exc
