"""Companion tool that reports when the machine actually went to sleep.

Sleeps in short intervals and compares wall-clock time before and after;
a much longer gap than requested means the system was suspended.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import signal
import sys
import time
from typing import Callable

from .errors import Interrupted
from .signals import SignalRouter


SLEEP_DURATION = timedelta(seconds=5)
SLEEP_THRESHOLD = SLEEP_DURATION * 2


def detect_sleep_event(
    expected: timedelta,
    threshold: timedelta,
    measure_sleep: Callable[[timedelta], timedelta],
) -> timedelta | None:
    """Return the excess over ``expected`` if the measured sleep exceeded ``threshold``."""
    try:
        elapsed = measure_sleep(expected)
    except ValueError:
        return None
    if elapsed > threshold:
        return max(elapsed - expected, timedelta())
    return None


def wall_clock_sleep(duration: timedelta) -> timedelta:
    """Sleep and measure with the wall clock, which keeps running while suspended."""
    started = time.time()
    time.sleep(duration.total_seconds())
    elapsed = time.time() - started
    if elapsed < 0:
        raise ValueError("clock went backwards")
    return timedelta(seconds=elapsed)


def summarize(events: list[int]) -> str:
    if not events:
        return "No sleep was detected"
    return (
        f"Sleep was detected {len(events)} times\n"
        f"On average, slept for {sum(events) // len(events)} seconds"
    )


def main() -> int:
    """Program entry point."""
    events: list[int] = []
    with SignalRouter(signals=(signal.SIGINT, signal.SIGTERM)):
        try:
            while True:
                excess = detect_sleep_event(SLEEP_DURATION, SLEEP_THRESHOLD, wall_clock_sleep)
                if excess is None:
                    continue
                seconds = int(excess.total_seconds())
                events.append(seconds)
                woke = datetime.now().strftime("%Y-%m-%d %I:%M:%S %p")
                print(f"Sleep detected! Slept for {seconds} seconds, woke at {woke}", flush=True)
        except Interrupted:
            print()
            print(summarize(events))
    return 0


if __name__ == "__main__":
    sys.exit(main())
