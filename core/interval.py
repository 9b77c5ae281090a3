"""Interval algebra for the calendar core.

Intervals are half-open ``[start, end)``: two meetings where one ends exactly
when the other starts do not overlap. Day boundaries are computed in UTC.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator

from utils.time import ensure_utc

DEFAULT_STEP_MINUTES = 30


class InvalidIntervalError(ValueError):
    """Raised when an interval, duration or working-hours window is malformed."""


@dataclass(frozen=True, slots=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start = ensure_utc(self.start)
        end = ensure_utc(self.end)
        if not start < end:
            raise InvalidIntervalError(
                f"Interval start must be before end (start={start.isoformat()}, end={end.isoformat()})"
            )
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)


@dataclass(frozen=True, slots=True)
class WorkingHours:
    """Daily working window ``[start:00, end:00)``; ``end == 24`` means midnight."""
    start: int = 9
    end: int = 17

    def __post_init__(self) -> None:
        if not (0 <= self.start <= 23 and 1 <= self.end <= 24):
            raise InvalidIntervalError(f"Working hours out of range: {self.start}-{self.end}")
        if self.start >= self.end:
            raise InvalidIntervalError(f"Working hours start must be before end: {self.start}-{self.end}")


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and b.start < a.end


def clip_to_day(day: date) -> Interval:
    """Whole UTC calendar day as ``[00:00, next 00:00)``."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return Interval(start, start + timedelta(days=1))


def working_window(day: date, hours: WorkingHours) -> Interval:
    day_start = clip_to_day(day).start
    return Interval(day_start + timedelta(hours=hours.start), day_start + timedelta(hours=hours.end))


class SlotGrid:
    """Fixed-duration candidates laid on a grid inside ``window``.

    Iterating is lazy and can be repeated; each pass yields the same slots in
    ascending order. A candidate whose end would pass ``window.end`` is dropped,
    never truncated.
    """

    def __init__(self, window: Interval, duration: timedelta, step: timedelta):
        if duration <= timedelta(0):
            raise InvalidIntervalError("Slot duration must be positive")
        if step <= timedelta(0):
            raise InvalidIntervalError("Grid step must be positive")
        self.window = window
        self.duration = duration
        self.step = step

    def __iter__(self) -> Iterator[Interval]:
        current = self.window.start
        while current + self.duration <= self.window.end:
            yield Interval(current, current + self.duration)
            current += self.step

    def __len__(self) -> int:
        span = self.window.duration - self.duration
        if span < timedelta(0):
            return 0
        return span // self.step + 1


def generate_grid(window: Interval, duration_minutes: int, step_minutes: int = DEFAULT_STEP_MINUTES) -> SlotGrid:
    return SlotGrid(window, timedelta(minutes=duration_minutes), timedelta(minutes=step_minutes))
