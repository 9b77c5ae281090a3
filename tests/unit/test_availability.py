"""
Unit tests for the availability scanner.
"""
from datetime import date

from core.availability import find_available_slots
from core.interval import Interval, WorkingHours, overlaps
from core.meeting import MeetingStatus
from tests.conftest import make_snapshot, utc

DAY = date(2030, 3, 4)


def starts(slots):
    return [(s.start.hour, s.start.minute) for s in slots]


class TestFindAvailableSlots:
    """Test free slot enumeration."""

    def test_empty_calendar_returns_every_grid_slot(self):
        slots = find_available_slots(DAY, {"alice"}, 60, WorkingHours(9, 17), [])
        assert len(slots) == 15
        assert starts(slots)[0] == (9, 0)
        assert starts(slots)[1] == (9, 30)
        assert starts(slots)[-1] == (16, 0)
        assert all(s.duration_minutes == 60 for s in slots)

    def test_existing_meeting_is_excluded(self):
        busy = make_snapshot("M", utc(2030, 3, 4, 10), utc(2030, 3, 4, 11), participants=["alice"])
        slots = find_available_slots(DAY, {"alice"}, 60, WorkingHours(9, 17), [busy])
        assert not any(overlaps(s, busy.interval) for s in slots)
        assert (9, 0) in starts(slots)
        assert (9, 30) not in starts(slots)
        assert (10, 30) not in starts(slots)
        assert (11, 0) in starts(slots)
        assert len(slots) == 12

    def test_other_peoples_meetings_do_not_block(self):
        busy = make_snapshot("M", utc(2030, 3, 4, 10), utc(2030, 3, 4, 11), organizer="bob")
        slots = find_available_slots(DAY, {"alice"}, 60, WorkingHours(9, 17), [busy])
        assert len(slots) == 15

    def test_cancelled_meeting_does_not_block(self):
        busy = make_snapshot("M", utc(2030, 3, 4, 10), utc(2030, 3, 4, 11),
                             participants=["alice"], status=MeetingStatus.CANCELLED)
        assert len(find_available_slots(DAY, {"alice"}, 60, WorkingHours(9, 17), [busy])) == 15

    def test_duration_longer_than_window(self):
        assert find_available_slots(DAY, {"alice"}, 9 * 60, WorkingHours(9, 17), []) == []

    def test_unaligned_gap_is_not_reported(self):
        # Free between 10:15 and 11:00, but the grid only offers :00 and :30 starts.
        early = make_snapshot("E", utc(2030, 3, 4, 9), utc(2030, 3, 4, 10, 15), participants=["alice"])
        late = make_snapshot("L", utc(2030, 3, 4, 11), utc(2030, 3, 4, 17), participants=["alice"])
        slots = find_available_slots(DAY, {"alice"}, 45, WorkingHours(9, 17), [early, late])
        assert slots == []

    def test_union_of_participants_calendars(self):
        a = make_snapshot("A", utc(2030, 3, 4, 9), utc(2030, 3, 4, 12), participants=["alice"])
        b = make_snapshot("B", utc(2030, 3, 4, 12), utc(2030, 3, 4, 16), participants=["bob"])
        slots = find_available_slots(DAY, {"alice", "bob"}, 60, WorkingHours(9, 17), [a, b])
        assert slots == [Interval(utc(2030, 3, 4, 16), utc(2030, 3, 4, 17))]

    def test_meeting_spanning_midnight_blocks_morning(self):
        overnight = make_snapshot("N", utc(2030, 3, 3, 22), utc(2030, 3, 4, 9, 30), participants=["alice"])
        slots = find_available_slots(DAY, {"alice"}, 30, WorkingHours(9, 17), [overnight])
        assert starts(slots)[0] == (9, 30)

    def test_results_are_ascending_and_deterministic(self):
        busy = make_snapshot("M", utc(2030, 3, 4, 13), utc(2030, 3, 4, 14), participants=["alice"])
        first = find_available_slots(DAY, {"alice"}, 30, WorkingHours(9, 17), [busy])
        second = find_available_slots(DAY, {"alice"}, 30, WorkingHours(9, 17), [busy])
        assert first == second
        assert [s.start for s in first] == sorted(s.start for s in first)
