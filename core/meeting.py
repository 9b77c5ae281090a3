from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from core.interval import Interval


class MeetingStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (MeetingStatus.COMPLETED, MeetingStatus.CANCELLED)


# Only these statuses can block a time range.
ACTIVE_STATUSES: FrozenSet[MeetingStatus] = frozenset({MeetingStatus.SCHEDULED, MeetingStatus.IN_PROGRESS})

ALLOWED_TRANSITIONS: Dict[MeetingStatus, FrozenSet[MeetingStatus]] = {
    MeetingStatus.SCHEDULED: frozenset({MeetingStatus.IN_PROGRESS, MeetingStatus.CANCELLED}),
    MeetingStatus.IN_PROGRESS: frozenset({MeetingStatus.COMPLETED, MeetingStatus.CANCELLED}),
    MeetingStatus.COMPLETED: frozenset(),
    MeetingStatus.CANCELLED: frozenset(),
}


class AttendanceStatus(str, Enum):
    INVITED = "invited"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    TENTATIVE = "tentative"


@dataclass(frozen=True, slots=True)
class Participant:
    user_id: str
    status: AttendanceStatus = AttendanceStatus.INVITED
    name: Optional[str] = None
    email: Optional[str] = None
    notified: bool = False


@dataclass(frozen=True, slots=True)
class MeetingSnapshot:
    """Read-only view of a persisted meeting handed to the calendar core."""
    id: str
    organizer_id: str
    interval: Interval
    status: MeetingStatus = MeetingStatus.SCHEDULED
    participants: Tuple[Participant, ...] = ()
    title: str = ""
    details: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    organizer_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def start_time(self) -> datetime:
        return self.interval.start

    @property
    def end_time(self) -> datetime:
        return self.interval.end

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def attendee_ids(self) -> FrozenSet[str]:
        """Organizer plus every listed participant."""
        return frozenset({self.organizer_id, *(p.user_id for p in self.participants)})

    def can_transition_to(self, target: MeetingStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]


@dataclass(frozen=True, slots=True)
class MeetingDraft:
    """A meeting that passed validation and is waiting to be persisted."""
    organizer_id: str
    participant_ids: Tuple[str, ...]
    interval: Interval
    title: str
    details: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def attendee_ids(self) -> FrozenSet[str]:
        return frozenset({self.organizer_id, *self.participant_ids})
