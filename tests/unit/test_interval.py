"""
Unit tests for interval algebra and slot grids.
"""
import pytest
from datetime import date, datetime, timedelta, timezone

from core.interval import (
    Interval,
    InvalidIntervalError,
    WorkingHours,
    clip_to_day,
    generate_grid,
    overlaps,
    working_window,
)
from tests.conftest import utc


DAY = date(2030, 3, 4)


def iv(h1, m1, h2, m2):
    return Interval(utc(2030, 3, 4, h1, m1), utc(2030, 3, 4, h2, m2))


class TestInterval:
    """Test Interval construction invariants."""

    def test_start_must_precede_end(self):
        with pytest.raises(InvalidIntervalError):
            iv(10, 0, 10, 0)
        with pytest.raises(InvalidIntervalError):
            iv(11, 0, 10, 0)

    def test_naive_datetimes_are_treated_as_utc(self):
        interval = Interval(datetime(2030, 3, 4, 9), datetime(2030, 3, 4, 10))
        assert interval.start.tzinfo == timezone.utc
        assert interval.start == utc(2030, 3, 4, 9)

    def test_duration(self):
        interval = iv(9, 0, 10, 30)
        assert interval.duration == timedelta(minutes=90)
        assert interval.duration_minutes == 90


class TestOverlaps:
    """Test half-open overlap semantics."""

    def test_back_to_back_do_not_overlap(self):
        assert overlaps(iv(9, 0, 10, 0), iv(10, 0, 11, 0)) is False
        assert overlaps(iv(10, 0, 11, 0), iv(9, 0, 10, 0)) is False

    def test_one_minute_overlap(self):
        assert overlaps(iv(9, 0, 10, 0), iv(9, 59, 10, 30)) is True

    def test_containment_overlaps(self):
        assert overlaps(iv(9, 0, 12, 0), iv(10, 0, 11, 0)) is True

    def test_disjoint(self):
        assert overlaps(iv(9, 0, 10, 0), iv(13, 0, 14, 0)) is False

    @pytest.mark.parametrize("a,b", [
        ((9, 0, 10, 0), (10, 0, 11, 0)),
        ((9, 0, 10, 0), (9, 30, 10, 30)),
        ((9, 0, 12, 0), (10, 0, 11, 0)),
        ((8, 0, 9, 0), (13, 0, 14, 0)),
        ((9, 0, 10, 0), (9, 0, 10, 0)),
    ])
    def test_symmetry(self, a, b):
        assert overlaps(iv(*a), iv(*b)) == overlaps(iv(*b), iv(*a))


class TestDayWindows:
    """Test UTC day clipping and working windows."""

    def test_clip_to_day_covers_whole_utc_day(self):
        day = clip_to_day(DAY)
        assert day.start == utc(2030, 3, 4)
        assert day.end == utc(2030, 3, 5)
        assert day.duration == timedelta(days=1)

    def test_working_window_default_hours(self):
        window = working_window(DAY, WorkingHours())
        assert window.start == utc(2030, 3, 4, 9)
        assert window.end == utc(2030, 3, 4, 17)

    def test_working_window_until_midnight(self):
        window = working_window(DAY, WorkingHours(20, 24))
        assert window.end == utc(2030, 3, 5)

    @pytest.mark.parametrize("start,end", [(17, 9), (9, 9), (-1, 5), (8, 25)])
    def test_invalid_working_hours(self, start, end):
        with pytest.raises(InvalidIntervalError):
            WorkingHours(start, end)


class TestGenerateGrid:
    """Test slot grid generation."""

    def test_full_day_hourly_slots_on_half_hour_grid(self):
        window = working_window(DAY, WorkingHours(9, 17))
        slots = list(generate_grid(window, 60))
        assert len(slots) == 15
        assert slots[0] == iv(9, 0, 10, 0)
        assert slots[-1] == iv(16, 0, 17, 0)
        assert all(s.end <= window.end for s in slots)

    def test_partial_final_slot_is_dropped(self):
        window = iv(9, 0, 10, 0)
        slots = list(generate_grid(window, 45))
        assert slots == [iv(9, 0, 9, 45)]

    def test_duration_longer_than_window_yields_nothing(self):
        window = iv(9, 0, 10, 0)
        grid = generate_grid(window, 90)
        assert list(grid) == []
        assert len(grid) == 0

    def test_duration_not_multiple_of_step(self):
        slots = list(generate_grid(iv(9, 0, 11, 0), 50))
        assert [s.start for s in slots] == [utc(2030, 3, 4, 9), utc(2030, 3, 4, 9, 30), utc(2030, 3, 4, 10)]

    def test_grid_is_restartable_and_deterministic(self):
        grid = generate_grid(working_window(DAY, WorkingHours()), 30)
        first = list(grid)
        second = list(grid)
        assert first == second
        assert len(grid) == len(first) == 16
        assert [s.start for s in first] == sorted(s.start for s in first)

    def test_custom_step(self):
        slots = list(generate_grid(iv(9, 0, 10, 0), 15, step_minutes=15))
        assert len(slots) == 4

    @pytest.mark.parametrize("duration,step", [(0, 30), (-15, 30), (30, 0)])
    def test_rejects_non_positive_sizes(self, duration, step):
        with pytest.raises(InvalidIntervalError):
            generate_grid(iv(9, 0, 10, 0), duration, step)
