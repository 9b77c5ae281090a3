"""Infrastructure layer: Repository interfaces and implementations."""
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.errors import InvalidTransitionError, RepositoryError
from core.conflicts import find_conflicts
from core.interval import Interval
from core.meeting import (
    ACTIVE_STATUSES,
    AttendanceStatus,
    MeetingDraft,
    MeetingSnapshot,
    MeetingStatus,
    Participant,
)
from database.models import MailboxMessage, Meeting, MeetingParticipant, User
from utils.time import ensure_utc

logger = logging.getLogger(__name__)

# Outcome of a guarded write: the stored meeting, or the meetings that blocked it.
GuardedWrite = Tuple[Optional[MeetingSnapshot], List[MeetingSnapshot]]


def as_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def to_snapshot(meeting: Meeting) -> MeetingSnapshot:
    """Copy an ORM meeting into an immutable snapshot for the calendar core."""
    participants = tuple(
        Participant(
            user_id=str(p.user_id),
            status=AttendanceStatus(p.status),
            name=p.user.name if p.user else None,
            email=p.user.email if p.user else None,
            notified=bool(p.notified),
        )
        for p in meeting.participants
    )
    return MeetingSnapshot(
        id=str(meeting.id),
        organizer_id=str(meeting.organizer_id),
        interval=Interval(ensure_utc(meeting.start_time), ensure_utc(meeting.end_time)),
        status=MeetingStatus(meeting.status),
        participants=participants,
        title=meeting.title,
        details={
            "description": meeting.description,
            "location": meeting.location,
            "meeting_type": meeting.meeting_type,
            "online_meeting_link": meeting.online_meeting_link,
            "agenda": list(meeting.agenda or []),
        },
        organizer_name=meeting.organizer.name if meeting.organizer else None,
        created_at=ensure_utc(meeting.created_at) if meeting.created_at else None,
    )


class ParticipantLocks:
    """Process-wide advisory locks keyed by user identity.

    Locks are always taken in sorted order so two writers sharing attendees
    cannot deadlock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def hold(self, user_ids: Iterable[str]) -> Iterator[None]:
        locks = [self._lock_for(key) for key in sorted({str(u) for u in user_ids})]
        acquired: List[threading.Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


participant_locks = ParticipantLocks()

EDITABLE_COLUMNS = frozenset({"title", "description", "location", "meeting_type", "online_meeting_link", "agenda"})


class UserRepository(ABC):
    """Repository interface for directory lookups."""

    @abstractmethod
    def get_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    def resolve(self, identifiers: Sequence[str]) -> Tuple[List[User], List[str]]:
        """Map emails or ids to users, returning (found in input order, unresolved)."""
        pass

    @abstractmethod
    def list_all(self) -> List[User]:
        pass

    @abstractmethod
    def create(self, **fields) -> User:
        pass


class MeetingRepository(ABC):
    """Repository interface for Meeting operations.

    Writes that claim a time range go through the ``*_if_no_conflict`` methods,
    which re-check conflicts and write as one atomic step.
    """

    @abstractmethod
    def get(self, meeting_id: str) -> Optional[MeetingSnapshot]:
        pass

    @abstractmethod
    def find_overlapping(self, interval: Interval, participant_ids: Iterable[str]) -> List[MeetingSnapshot]:
        """Active meetings overlapping ``interval`` that involve any of the participants."""
        pass

    @abstractmethod
    def find_for_participant(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        statuses: Optional[Iterable[MeetingStatus]] = None,
    ) -> List[MeetingSnapshot]:
        """Meetings organized or attended by the user with start in ``[start, end)``, by start time."""
        pass

    @abstractmethod
    def insert_if_no_conflict(self, draft: MeetingDraft) -> GuardedWrite:
        pass

    @abstractmethod
    def update_interval_if_no_conflict(self, meeting_id: str, interval: Interval) -> GuardedWrite:
        """Move an active meeting; raises InvalidTransitionError once it is no longer active."""
        pass

    @abstractmethod
    def update_details_if_no_conflict(
        self,
        meeting_id: str,
        fields: Dict[str, Any],
        participant_ids: Optional[Sequence[str]] = None,
    ) -> GuardedWrite:
        """Apply detail changes and, when given, replace the participant list."""
        pass

    @abstractmethod
    def set_status(self, meeting_id: str, status: MeetingStatus, allowed_from: Iterable[MeetingStatus]) -> Optional[MeetingSnapshot]:
        """Change status only if the current one is in ``allowed_from``; None when it was not."""
        pass

    @abstractmethod
    def set_participant_status(self, meeting_id: str, user_id: str, status: AttendanceStatus) -> Optional[MeetingSnapshot]:
        pass

    @abstractmethod
    def mark_notified(self, meeting_id: str, user_ids: Iterable[str]) -> None:
        pass


class MailboxRepository(ABC):
    """Repository interface for in-app mailbox messages."""

    @abstractmethod
    def add_message(self, owner_id: str, title: str, content: str, sender_id: Optional[str] = None,
                    type: str = "notification", reference_id: Optional[str] = None,
                    labels: Optional[List[str]] = None) -> MailboxMessage:
        pass

    @abstractmethod
    def list_for_owner(self, owner_id: str, unread_only: bool = False) -> List[MailboxMessage]:
        pass


class SqlAlchemyUserRepository(UserRepository):
    """SQLAlchemy implementation of UserRepository."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[User]:
        uid = as_uuid(user_id)
        if uid is None:
            return None
        try:
            return self.db.query(User).filter(User.id == uid).first()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to load user: {e}") from e

    def get_by_email(self, email: str) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.email == email.strip().lower()).first()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to load user: {e}") from e

    def resolve(self, identifiers: Sequence[str]) -> Tuple[List[User], List[str]]:
        found: List[User] = []
        unresolved: List[str] = []
        seen = set()
        for ident in identifiers:
            ident = str(ident).strip()
            user = self.get_by_email(ident) if "@" in ident else self.get_by_id(ident)
            if user is None:
                unresolved.append(ident)
            elif user.id not in seen:
                seen.add(user.id)
                found.append(user)
        return found, unresolved

    def list_all(self) -> List[User]:
        try:
            return self.db.query(User).order_by(User.department, User.name).all()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to list users: {e}") from e

    def create(self, **fields) -> User:
        if fields.get("email"):
            fields["email"] = fields["email"].strip().lower()
        user = User(**fields)
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to create user: {e}") from e
        return user


class SqlAlchemyMeetingRepository(MeetingRepository):
    """SQLAlchemy implementation of MeetingRepository."""

    def __init__(self, db: Session, locks: ParticipantLocks = participant_locks):
        self.db = db
        self.locks = locks

    def _load(self, meeting_id: str) -> Optional[Meeting]:
        mid = as_uuid(meeting_id)
        if mid is None:
            return None
        return (
            self.db.query(Meeting)
            .filter(Meeting.id == mid)
            .populate_existing()
            .first()
        )

    def _involving(self, query, uuids: List[uuid.UUID]):
        attending = select(MeetingParticipant.meeting_id).where(MeetingParticipant.user_id.in_(uuids))
        return query.filter(or_(Meeting.organizer_id.in_(uuids), Meeting.id.in_(attending)))

    def _query_overlapping(self, interval: Interval, participant_ids: Iterable[str]) -> List[Meeting]:
        uuids = [u for u in (as_uuid(p) for p in participant_ids) if u is not None]
        if not uuids:
            return []
        query = self.db.query(Meeting).filter(
            Meeting.status.in_([s.value for s in ACTIVE_STATUSES]),
            Meeting.start_time < interval.end,
            Meeting.end_time > interval.start,
        )
        return self._involving(query, uuids).populate_existing().all()

    def _lock_users(self, user_ids: Iterable[str]) -> None:
        # Row locks for backends that support them; SQLite relies on the advisory locks.
        uuids = [u for u in (as_uuid(p) for p in user_ids) if u is not None]
        if uuids:
            self.db.query(User.id).filter(User.id.in_(uuids)).with_for_update().all()

    def get(self, meeting_id: str) -> Optional[MeetingSnapshot]:
        try:
            meeting = self._load(meeting_id)
            return to_snapshot(meeting) if meeting else None
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to load meeting: {e}") from e

    def find_overlapping(self, interval: Interval, participant_ids: Iterable[str]) -> List[MeetingSnapshot]:
        try:
            return [to_snapshot(m) for m in self._query_overlapping(interval, participant_ids)]
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to query meetings: {e}") from e

    def find_for_participant(self, user_id, start=None, end=None, statuses=None) -> List[MeetingSnapshot]:
        uid = as_uuid(user_id)
        if uid is None:
            return []
        try:
            query = self._involving(self.db.query(Meeting), [uid])
            if start is not None:
                query = query.filter(Meeting.start_time >= ensure_utc(start))
            if end is not None:
                query = query.filter(Meeting.start_time < ensure_utc(end))
            if statuses is not None:
                query = query.filter(Meeting.status.in_([MeetingStatus(s).value for s in statuses]))
            return [to_snapshot(m) for m in query.order_by(Meeting.start_time).all()]
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to query meetings: {e}") from e

    def insert_if_no_conflict(self, draft: MeetingDraft) -> GuardedWrite:
        with self.locks.hold(draft.attendee_ids):
            try:
                self._lock_users(draft.attendee_ids)
                existing = [to_snapshot(m) for m in self._query_overlapping(draft.interval, draft.attendee_ids)]
                conflicts = find_conflicts(draft.interval, draft.attendee_ids, existing)
                if conflicts:
                    self.db.rollback()
                    return None, conflicts
                details = draft.details
                meeting = Meeting(
                    organizer_id=as_uuid(draft.organizer_id),
                    title=draft.title,
                    description=details.get("description"),
                    location=details.get("location"),
                    meeting_type=details.get("meeting_type") or "in-person",
                    online_meeting_link=details.get("online_meeting_link"),
                    agenda=list(details.get("agenda") or []),
                    start_time=draft.interval.start,
                    end_time=draft.interval.end,
                    status=MeetingStatus.SCHEDULED.value,
                )
                for position, user_id in enumerate(draft.participant_ids):
                    meeting.participants.append(
                        MeetingParticipant(user_id=as_uuid(user_id), position=position, status=AttendanceStatus.INVITED.value)
                    )
                self.db.add(meeting)
                self.db.commit()
                self.db.refresh(meeting)
                return to_snapshot(meeting), []
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Failed to persist meeting '{draft.title}': {e}")
                raise RepositoryError(f"Failed to persist meeting: {e}") from e

    def update_interval_if_no_conflict(self, meeting_id: str, interval: Interval) -> GuardedWrite:
        current = self.get(meeting_id)
        if current is None:
            return None, []
        with self.locks.hold(current.attendee_ids):
            try:
                self._lock_users(current.attendee_ids)
                meeting = self._load(meeting_id)
                if meeting is None:
                    self.db.rollback()
                    return None, []
                self._ensure_active(meeting, "reschedule")
                attendees = to_snapshot(meeting).attendee_ids
                existing = [to_snapshot(m) for m in self._query_overlapping(interval, attendees)]
                conflicts = find_conflicts(interval, attendees, existing, exclude_meeting_id=str(meeting.id))
                if conflicts:
                    self.db.rollback()
                    return None, conflicts
                meeting.start_time = interval.start
                meeting.end_time = interval.end
                self.db.commit()
                self.db.refresh(meeting)
                return to_snapshot(meeting), []
            except SQLAlchemyError as e:
                self.db.rollback()
                raise RepositoryError(f"Failed to update meeting: {e}") from e

    def update_details_if_no_conflict(self, meeting_id, fields, participant_ids=None) -> GuardedWrite:
        unknown = set(fields) - EDITABLE_COLUMNS
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        current = self.get(meeting_id)
        if current is None:
            return None, []
        new_ids = tuple(str(p) for p in participant_ids) if participant_ids is not None else None
        involved = current.attendee_ids | set(new_ids or ())
        with self.locks.hold(involved):
            try:
                self._lock_users(involved)
                meeting = self._load(meeting_id)
                if meeting is None:
                    self.db.rollback()
                    return None, []
                self._ensure_active(meeting, "edit")
                if new_ids is not None:
                    interval = to_snapshot(meeting).interval
                    attendees = frozenset({str(meeting.organizer_id), *new_ids})
                    existing = [to_snapshot(m) for m in self._query_overlapping(interval, attendees)]
                    conflicts = find_conflicts(interval, attendees, existing, exclude_meeting_id=str(meeting.id))
                    if conflicts:
                        self.db.rollback()
                        return None, conflicts
                    self._replace_participants(meeting, new_ids)
                for name, value in fields.items():
                    setattr(meeting, name, value)
                self.db.commit()
                self.db.refresh(meeting)
                return to_snapshot(meeting), []
            except SQLAlchemyError as e:
                self.db.rollback()
                raise RepositoryError(f"Failed to update meeting: {e}") from e

    def _ensure_active(self, meeting: Meeting, action: str) -> None:
        if MeetingStatus(meeting.status) not in ACTIVE_STATUSES:
            self.db.rollback()
            raise InvalidTransitionError(f"Cannot {action} a {meeting.status} meeting")

    def _replace_participants(self, meeting: Meeting, user_ids: Sequence[str]) -> None:
        # Existing rows keep their attendance status and notified flag.
        kept = {str(p.user_id): p for p in meeting.participants}
        rows = []
        for position, user_id in enumerate(user_ids):
            row = kept.get(user_id) or MeetingParticipant(
                user_id=as_uuid(user_id), status=AttendanceStatus.INVITED.value, notified=False
            )
            row.position = position
            rows.append(row)
        meeting.participants = rows

    def set_status(self, meeting_id, status, allowed_from) -> Optional[MeetingSnapshot]:
        mid = as_uuid(meeting_id)
        if mid is None:
            return None
        try:
            updated = (
                self.db.query(Meeting)
                .filter(Meeting.id == mid, Meeting.status.in_([MeetingStatus(s).value for s in allowed_from]))
                .update({Meeting.status: MeetingStatus(status).value}, synchronize_session=False)
            )
            self.db.commit()
            if not updated:
                return None
            return self.get(meeting_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to update meeting status: {e}") from e

    def set_participant_status(self, meeting_id, user_id, status) -> Optional[MeetingSnapshot]:
        mid, uid = as_uuid(meeting_id), as_uuid(user_id)
        if mid is None or uid is None:
            return None
        try:
            updated = (
                self.db.query(MeetingParticipant)
                .filter(MeetingParticipant.meeting_id == mid, MeetingParticipant.user_id == uid)
                .update({MeetingParticipant.status: AttendanceStatus(status).value}, synchronize_session=False)
            )
            self.db.commit()
            if not updated:
                return None
            return self.get(meeting_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to update participant status: {e}") from e

    def mark_notified(self, meeting_id, user_ids) -> None:
        mid = as_uuid(meeting_id)
        uuids = [u for u in (as_uuid(p) for p in user_ids) if u is not None]
        if mid is None or not uuids:
            return
        try:
            (
                self.db.query(MeetingParticipant)
                .filter(MeetingParticipant.meeting_id == mid, MeetingParticipant.user_id.in_(uuids))
                .update({MeetingParticipant.notified: True}, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to mark participants notified: {e}") from e


class SqlAlchemyMailboxRepository(MailboxRepository):
    """SQLAlchemy implementation of MailboxRepository."""

    def __init__(self, db: Session):
        self.db = db

    def add_message(self, owner_id, title, content, sender_id=None, type="notification",
                    reference_id=None, labels=None) -> MailboxMessage:
        message = MailboxMessage(
            owner_id=as_uuid(owner_id),
            sender_id=as_uuid(sender_id) if sender_id else None,
            type=type,
            title=title,
            content=content,
            reference_id=as_uuid(reference_id) if reference_id else None,
            labels=list(labels or []),
        )
        try:
            self.db.add(message)
            self.db.commit()
            self.db.refresh(message)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to store mailbox message: {e}") from e
        return message

    def list_for_owner(self, owner_id, unread_only=False) -> List[MailboxMessage]:
        uid = as_uuid(owner_id)
        if uid is None:
            return []
        try:
            query = self.db.query(MailboxMessage).filter(MailboxMessage.owner_id == uid)
            if unread_only:
                query = query.filter(MailboxMessage.is_read.is_(False))
            return query.order_by(MailboxMessage.created_at.desc()).all()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to list mailbox messages: {e}") from e
