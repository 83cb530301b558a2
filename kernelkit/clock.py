"""Tick-driven system clock with second and millisecond resolution."""

from __future__ import annotations

from dataclasses import dataclass

CLICKS_PER_SECOND = 10


@dataclass(frozen=True)
class ClockTime:
    """A point or span of time as whole seconds plus milliseconds."""

    seconds: int
    millis: int

    def total_millis(self) -> int:
        return self.seconds * 1000 + self.millis


def clock_diff(start: ClockTime, stop: ClockTime) -> ClockTime:
    """Return the time elapsed from start to stop."""
    stop_seconds, stop_millis = stop.seconds, stop.millis
    if stop_millis < start.millis:
        stop_millis += 1000
        stop_seconds -= 1
    return ClockTime(stop_seconds - start.seconds, stop_millis - start.millis)


class Clock:
    """Counts timer interrupts and converts them into wall time."""

    def __init__(self, clicks_per_second: int = CLICKS_PER_SECOND) -> None:
        if clicks_per_second < 1:
            raise ValueError("clicks_per_second must be positive")
        self.clicks_per_second = clicks_per_second
        self._clicks = 0
        self._seconds = 0

    def tick(self) -> bool:
        """Advance by one click; return True when a full second elapses."""
        self._clicks += 1
        if self._clicks >= self.clicks_per_second:
            self._clicks = 0
            self._seconds += 1
            return True
        return False

    def read(self) -> ClockTime:
        return ClockTime(self._seconds, 1000 * self._clicks // self.clicks_per_second)