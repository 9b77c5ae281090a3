"""Read-side calendar queries: free slots, schedules and calendar views."""
import logging
from collections import OrderedDict
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from app.domain.errors import CalendarError, NotFoundError, Result, ValidationError
from app.infrastructure.repositories import MeetingRepository, UserRepository
from core.availability import find_available_slots
from core.interval import DEFAULT_STEP_MINUTES, Interval, InvalidIntervalError, WorkingHours, working_window
from core.meeting import ACTIVE_STATUSES, MeetingSnapshot, MeetingStatus
from database.models import User
from utils.time import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class CalendarQueries:
    def __init__(self, meeting_repo: MeetingRepository, user_repo: UserRepository,
                 step_minutes: int = DEFAULT_STEP_MINUTES):
        self.meeting_repo = meeting_repo
        self.user_repo = user_repo
        self.step_minutes = step_minutes

    def _resolve_all(self, identifiers: Sequence[str]) -> List[User]:
        users, unresolved = self.user_repo.resolve(identifiers)
        if unresolved:
            raise ValidationError(f"No user found for: {', '.join(unresolved)}", unresolved=unresolved)
        return users

    def _find_user(self, identifier: str) -> User:
        user = self.user_repo.get_by_email(identifier) if "@" in identifier else self.user_repo.get_by_id(identifier)
        if user is None:
            raise NotFoundError(f"User {identifier} not found")
        return user

    def available_slots(
        self,
        participants: Sequence[str],
        day: date,
        duration_minutes: int = 60,
        working_hours: Optional[WorkingHours] = None,
    ) -> Result[List[Interval]]:
        """Grid-aligned free slots on ``day`` for everyone in ``participants``."""
        try:
            if duration_minutes <= 0:
                raise ValidationError("duration must be a positive number of minutes")
            hours = working_hours or WorkingHours()
            users = self._resolve_all(participants)
            ids = [str(u.id) for u in users]
            window = working_window(day, hours)
            existing = self.meeting_repo.find_overlapping(window, ids)
            slots = find_available_slots(day, ids, duration_minutes, hours, existing, self.step_minutes)
        except InvalidIntervalError as e:
            return Result.failure(ValidationError(str(e)))
        except CalendarError as e:
            return Result.failure(e)
        logger.info(f"🔎 {len(slots)} free slot(s) on {day.isoformat()} for {len(ids)} participant(s)")
        return Result.success(slots)

    def user_schedule(self, identifier: str, start: Optional[datetime] = None, days: int = 7) -> Result[Dict]:
        """Active meetings for a user over ``days`` days from ``start`` (default now)."""
        try:
            if days <= 0:
                raise ValidationError("days must be positive")
            user = self._find_user(identifier)
            start = ensure_utc(start) if start else utc_now()
            end = start + timedelta(days=days)
            meetings = self.meeting_repo.find_for_participant(str(user.id), start, end, ACTIVE_STATUSES)
        except CalendarError as e:
            return Result.failure(e)
        return Result.success({"user": user, "start": start, "end": end, "meetings": meetings})

    def list_meetings(self, user_id: str, status: Optional[str] = None, upcoming: bool = False,
                      now: Optional[datetime] = None) -> Result[List[MeetingSnapshot]]:
        try:
            statuses = None
            if status:
                try:
                    statuses = [MeetingStatus(status)]
                except ValueError:
                    raise ValidationError(f"Unknown status: {status}")
            start = None
            if upcoming:
                start = now or utc_now()
                statuses = [MeetingStatus.SCHEDULED]
            meetings = self.meeting_repo.find_for_participant(user_id, start=start, statuses=statuses)
            if upcoming:
                meetings = [m for m in meetings if m.start_time > start]
        except CalendarError as e:
            return Result.failure(e)
        return Result.success(meetings)

    def upcoming_meetings(self, user_id: str, now: Optional[datetime] = None) -> Result[List[MeetingSnapshot]]:
        return self.list_meetings(user_id, upcoming=True, now=now)

    def today_meetings(self, user_id: str, now: Optional[datetime] = None) -> Result[List[MeetingSnapshot]]:
        """Scheduled meetings starting on the current UTC day."""
        now = ensure_utc(now) if now else utc_now()
        day_start = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
        try:
            meetings = self.meeting_repo.find_for_participant(
                user_id, day_start, day_start + timedelta(days=1), [MeetingStatus.SCHEDULED]
            )
        except CalendarError as e:
            return Result.failure(e)
        return Result.success(meetings)

    def monthly_calendar(self, user_id: str, year: int, month: int) -> Result[Dict[str, List[MeetingSnapshot]]]:
        """All of a user's meetings in a month grouped by UTC date key, in date order."""
        try:
            if not 1 <= year <= 9998:
                raise ValidationError("year out of range")
            if not 1 <= month <= 12:
                raise ValidationError("month must be between 1 and 12")
            first = datetime(year, month, 1, tzinfo=timezone.utc)
            following = datetime(year + (month == 12), month % 12 + 1, 1, tzinfo=timezone.utc)
            meetings = self.meeting_repo.find_for_participant(user_id, first, following)
        except CalendarError as e:
            return Result.failure(e)
        calendar: Dict[str, List[MeetingSnapshot]] = OrderedDict()
        for meeting in meetings:
            calendar.setdefault(meeting.start_time.date().isoformat(), []).append(meeting)
        return Result.success(calendar)
