"""Application layer: meeting scheduling and lifecycle.

Every public operation returns a ``Result``; failures are never raised to the
caller. The scheduler holds no state between calls.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.application.authorization import Authorizer, RoleAuthorizer
from app.domain.errors import (
    AuthorizationError,
    CalendarError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    Result,
    ScheduleOutcome,
    ValidationError,
)
from app.domain.events import (
    EventDispatcher,
    MeetingCancelled,
    MeetingRescheduled,
    MeetingScheduled,
    MeetingUpdated,
)
from app.infrastructure.repositories import MeetingRepository, UserRepository
from core.conflicts import find_conflicts
from core.interval import Interval, InvalidIntervalError
from core.meeting import ALLOWED_TRANSITIONS, AttendanceStatus, MeetingDraft, MeetingSnapshot, MeetingStatus
from utils.time import utc_now

logger = logging.getLogger(__name__)

MEETING_TYPES = ("in-person", "online", "hybrid")
EDITABLE_FIELDS = ("title", "description", "location", "meeting_type", "online_meeting_link", "agenda")


def build_interval(start: Optional[datetime], end: Optional[datetime]) -> Interval:
    if start is None or end is None:
        raise ValidationError("startTime and endTime are required")
    try:
        return Interval(start, end)
    except InvalidIntervalError as e:
        raise ValidationError("Start time must be before end time") from e


class MeetingScheduler:
    """Owns meeting creation, rescheduling and status transitions."""

    def __init__(
        self,
        meeting_repo: MeetingRepository,
        user_repo: UserRepository,
        dispatcher: Optional[EventDispatcher] = None,
        authorizer: Optional[Authorizer] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.meeting_repo = meeting_repo
        self.user_repo = user_repo
        self.dispatcher = dispatcher or EventDispatcher()
        self.authorizer = authorizer or RoleAuthorizer()
        self.clock = clock

    # ------------------------------------------------------------------ helpers

    def _future_interval(self, start, end) -> Interval:
        interval = build_interval(start, end)
        if interval.start < self.clock():
            raise ValidationError("Cannot schedule a meeting in the past")
        return interval

    def _load(self, meeting_id: str) -> MeetingSnapshot:
        meeting = self.meeting_repo.get(meeting_id)
        if meeting is None:
            raise NotFoundError(f"Meeting {meeting_id} not found")
        return meeting

    def _authorize(self, actor_id: Optional[str], meeting: MeetingSnapshot) -> None:
        actor = self.user_repo.get_by_id(actor_id) if actor_id else None
        if not self.authorizer.can_manage(actor, meeting):
            raise AuthorizationError("Only the organizer or an elevated role may modify this meeting")

    async def _notify(self, event) -> List[str]:
        return await self.dispatcher.dispatch(event)

    # --------------------------------------------------------------- operations

    async def schedule(
        self,
        organizer_id: str,
        participants: Sequence[str],
        start: Optional[datetime],
        end: Optional[datetime],
        title: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> Result[ScheduleOutcome]:
        """Create a meeting if every attendee is free for ``[start, end)``.

        ``participants`` may mix emails and user ids. The organizer always
        attends, so their calendar is checked as well.
        """
        try:
            if not title or not str(title).strip():
                raise ValidationError("title is required")
            interval = self._future_interval(start, end)
            details = dict(details or {})
            meeting_type = details.get("meeting_type") or "in-person"
            if meeting_type not in MEETING_TYPES:
                raise ValidationError(f"meetingType must be one of: {', '.join(MEETING_TYPES)}")

            organizer = self.user_repo.get_by_id(organizer_id)
            if organizer is None:
                raise NotFoundError(f"Organizer {organizer_id} not found")
            users, unresolved = self.user_repo.resolve(participants)
            if unresolved:
                raise ValidationError(
                    f"No user found for: {', '.join(unresolved)}", unresolved=unresolved
                )
            participant_ids = tuple(str(u.id) for u in users)
            draft = MeetingDraft(
                organizer_id=str(organizer.id),
                participant_ids=participant_ids,
                interval=interval,
                title=str(title).strip(),
                details=details,
            )

            # Fast rejection with full detail; the guarded insert below re-checks atomically.
            candidates = self.meeting_repo.find_overlapping(interval, draft.attendee_ids)
            conflicts = find_conflicts(interval, draft.attendee_ids, candidates)
            if not conflicts:
                meeting, conflicts = self.meeting_repo.insert_if_no_conflict(draft)
            if conflicts:
                logger.info(f"⛔ Conflict scheduling '{draft.title}': {len(conflicts)} overlapping meeting(s)")
                raise ConflictError(conflicts)
        except CalendarError as e:
            return Result.failure(e)

        logger.info(f"✅ Meeting scheduled: '{meeting.title}' {meeting.start_time.isoformat()} ({len(participant_ids)} participants)")
        failures = await self._notify(MeetingScheduled(meeting))
        return Result.success(ScheduleOutcome(meeting=meeting, notifications_sent=not failures, notification_errors=failures))

    async def cancel(self, meeting_id: str, actor_id: Optional[str]) -> Result[MeetingSnapshot]:
        """Cancel a scheduled or running meeting; cancelling twice is a no-op."""
        try:
            meeting = self._load(meeting_id)
            self._authorize(actor_id, meeting)
            if meeting.status == MeetingStatus.CANCELLED:
                return Result.success(meeting)
            updated, changed = self._transition(meeting, MeetingStatus.CANCELLED)
        except CalendarError as e:
            return Result.failure(e)
        if not changed:
            return Result.success(updated)
        logger.info(f"🗑️ Meeting cancelled: '{updated.title}' by {actor_id}")
        await self._notify(MeetingCancelled(updated, cancelled_by=actor_id))
        return Result.success(updated)

    async def start(self, meeting_id: str, actor_id: Optional[str]) -> Result[MeetingSnapshot]:
        return self._change_status(meeting_id, actor_id, MeetingStatus.IN_PROGRESS)

    async def complete(self, meeting_id: str, actor_id: Optional[str]) -> Result[MeetingSnapshot]:
        return self._change_status(meeting_id, actor_id, MeetingStatus.COMPLETED)

    def _change_status(self, meeting_id, actor_id, target: MeetingStatus) -> Result[MeetingSnapshot]:
        try:
            meeting = self._load(meeting_id)
            self._authorize(actor_id, meeting)
            updated, _ = self._transition(meeting, target)
            return Result.success(updated)
        except CalendarError as e:
            return Result.failure(e)

    def _transition(self, meeting: MeetingSnapshot, target: MeetingStatus) -> Tuple[MeetingSnapshot, bool]:
        """Apply a status change; the flag is False when another request already made it."""
        if not meeting.can_transition_to(target):
            raise InvalidTransitionError(f"Cannot change meeting from {meeting.status.value} to {target.value}")
        allowed_from = [s for s in MeetingStatus if target in ALLOWED_TRANSITIONS[s]]
        updated = self.meeting_repo.set_status(meeting.id, target, allowed_from)
        if updated is None:
            # Status changed underneath us; judge against the fresh state.
            current = self._load(meeting.id)
            if current.status == target == MeetingStatus.CANCELLED:
                return current, False
            raise InvalidTransitionError(f"Cannot change meeting from {current.status.value} to {target.value}")
        return updated, True

    async def reschedule(
        self,
        meeting_id: str,
        start: Optional[datetime],
        end: Optional[datetime],
        actor_id: Optional[str] = None,
    ) -> Result[MeetingSnapshot]:
        """Move a meeting to ``[start, end)``; its own previous slot never blocks it.

        When ``actor_id`` is given the actor must be allowed to manage the meeting.
        """
        try:
            interval = self._future_interval(start, end)
            meeting = self._load(meeting_id)
            if actor_id is not None:
                self._authorize(actor_id, meeting)
            if not meeting.is_active:
                raise InvalidTransitionError(f"Cannot reschedule a {meeting.status.value} meeting")
            previous = meeting.interval
            updated, conflicts = self.meeting_repo.update_interval_if_no_conflict(meeting.id, interval)
            if conflicts:
                logger.info(f"⛔ Conflict rescheduling '{meeting.title}': {len(conflicts)} overlapping meeting(s)")
                raise ConflictError(conflicts)
            if updated is None:
                raise NotFoundError(f"Meeting {meeting_id} not found")
        except CalendarError as e:
            return Result.failure(e)
        logger.info(f"🔁 Meeting rescheduled: '{updated.title}' -> {updated.start_time.isoformat()}")
        await self._notify(MeetingRescheduled(updated, previous=previous))
        return Result.success(updated)

    async def update_details(
        self,
        meeting_id: str,
        actor_id: Optional[str],
        fields: Dict[str, Any],
    ) -> Result[MeetingSnapshot]:
        """Edit an active meeting's details and, with ``participants``, its attendee list.

        Time changes go through ``reschedule`` and status changes through the
        lifecycle operations. New attendees must be free for the meeting's slot.
        """
        try:
            changes = dict(fields)
            participants = changes.pop("participants", None)
            unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
            if unknown:
                raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")
            if "title" in changes:
                if not changes["title"] or not str(changes["title"]).strip():
                    raise ValidationError("title cannot be empty")
                changes["title"] = str(changes["title"]).strip()
            if "meeting_type" in changes and changes["meeting_type"] not in MEETING_TYPES:
                raise ValidationError(f"meetingType must be one of: {', '.join(MEETING_TYPES)}")

            meeting = self._load(meeting_id)
            self._authorize(actor_id, meeting)
            if not meeting.is_active:
                raise InvalidTransitionError(f"Cannot edit a {meeting.status.value} meeting")
            participant_ids = None
            if participants is not None:
                users, unresolved = self.user_repo.resolve(participants)
                if unresolved:
                    raise ValidationError(
                        f"No user found for: {', '.join(unresolved)}", unresolved=unresolved
                    )
                participant_ids = tuple(str(u.id) for u in users)
            updated, conflicts = self.meeting_repo.update_details_if_no_conflict(meeting.id, changes, participant_ids)
            if conflicts:
                logger.info(f"⛔ Conflict updating participants of '{meeting.title}': {len(conflicts)} overlapping meeting(s)")
                raise ConflictError(conflicts)
            if updated is None:
                raise NotFoundError(f"Meeting {meeting_id} not found")
        except CalendarError as e:
            return Result.failure(e)
        logger.info(f"✏️ Meeting updated: '{updated.title}' by {actor_id}")
        await self._notify(MeetingUpdated(updated))
        return Result.success(updated)

    async def respond(self, meeting_id: str, user_id: str, status: str) -> Result[MeetingSnapshot]:
        """Record a participant's own answer to an invitation."""
        try:
            try:
                answer = AttendanceStatus(status)
            except ValueError:
                answer = None
            if answer is None or answer == AttendanceStatus.INVITED:
                raise ValidationError("status must be one of: accepted, declined, tentative")
            meeting = self._load(meeting_id)
            if meeting.status.is_terminal:
                raise InvalidTransitionError(f"Cannot respond to a {meeting.status.value} meeting")
            updated = self.meeting_repo.set_participant_status(meeting.id, user_id, answer)
            if updated is None:
                raise NotFoundError("You are not a participant of this meeting")
        except CalendarError as e:
            return Result.failure(e)
        return Result.success(updated)

    def get_meeting(self, meeting_id: str, actor_id: Optional[str]) -> Result[MeetingSnapshot]:
        try:
            meeting = self._load(meeting_id)
            actor = self.user_repo.get_by_id(actor_id) if actor_id else None
            if not self.authorizer.can_view(actor, meeting):
                raise AuthorizationError("No access to this meeting")
        except CalendarError as e:
            return Result.failure(e)
        return Result.success(meeting)
