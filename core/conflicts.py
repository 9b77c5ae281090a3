"""Conflict detection over meeting snapshots.

Callers usually pass meetings already narrowed by the repository, but the
status, overlap and attendee tests are always re-applied here.
"""
from __future__ import annotations
from typing import Iterable, List, Optional

from core.interval import Interval, overlaps
from core.meeting import MeetingSnapshot


def find_conflicts(
    candidate: Interval,
    participant_ids: Iterable[str],
    existing_meetings: Iterable[MeetingSnapshot],
    exclude_meeting_id: Optional[str] = None,
) -> List[MeetingSnapshot]:
    """Return every active meeting that overlaps ``candidate`` and shares an attendee.

    An empty list means the candidate is free for all participants.
    """
    wanted = frozenset(str(pid) for pid in participant_ids)
    if not wanted:
        return []
    conflicts: List[MeetingSnapshot] = []
    for meeting in existing_meetings:
        if exclude_meeting_id is not None and meeting.id == str(exclude_meeting_id):
            continue
        if not meeting.is_active:
            continue
        if overlaps(candidate, meeting.interval) and not wanted.isdisjoint(meeting.attendee_ids):
            conflicts.append(meeting)
    return conflicts


def has_conflict(
    candidate: Interval,
    participant_ids: Iterable[str],
    existing_meetings: Iterable[MeetingSnapshot],
    exclude_meeting_id: Optional[str] = None,
) -> bool:
    return bool(find_conflicts(candidate, participant_ids, existing_meetings, exclude_meeting_id))
