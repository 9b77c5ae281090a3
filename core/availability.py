from __future__ import annotations
from datetime import date
from typing import Iterable, List, Sequence

from core.conflicts import find_conflicts
from core.interval import DEFAULT_STEP_MINUTES, Interval, WorkingHours, generate_grid, working_window
from core.meeting import MeetingSnapshot


def find_available_slots(
    day: date,
    participant_ids: Iterable[str],
    duration_minutes: int,
    working_hours: WorkingHours,
    existing_meetings: Sequence[MeetingSnapshot],
    step_minutes: int = DEFAULT_STEP_MINUTES,
) -> List[Interval]:
    """Free grid-aligned slots of ``duration_minutes`` inside the day's working window.

    Slots start on ``step_minutes`` boundaries from the window start. A free
    stretch that does not line up with the grid may not be reported.
    """
    ids = frozenset(str(pid) for pid in participant_ids)
    window = working_window(day, working_hours)
    # Meetings outside the window can never touch a slot.
    relevant = [m for m in existing_meetings if m.is_active and m.start_time < window.end and window.start < m.end_time]
    return [
        slot
        for slot in generate_grid(window, duration_minutes, step_minutes)
        if not find_conflicts(slot, ids, relevant)
    ]
