"""Domain layer: error taxonomy and explicit operation results."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Generic, List, Optional, Sequence, TypeVar

from core.meeting import MeetingSnapshot

T = TypeVar("T")


class CalendarError(Exception):
    """Base class for failures reported by the scheduling services."""
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CalendarError):
    """Malformed or logically invalid input."""

    def __init__(self, message: str, unresolved: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.unresolved: List[str] = list(unresolved or [])


class InvalidTransitionError(ValidationError):
    """Requested status change is not allowed from the meeting's current status."""


class ConflictError(CalendarError):
    """Requested interval overlaps existing commitments of at least one participant."""
    retryable = True

    def __init__(self, conflicts: Sequence[MeetingSnapshot], message: str = "Schedule conflicts with existing meetings"):
        super().__init__(message)
        self.conflicts: List[MeetingSnapshot] = list(conflicts)


class AuthorizationError(CalendarError):
    pass


class NotFoundError(CalendarError):
    pass


class RepositoryError(CalendarError):
    """Storage failure; no retry is attempted at this layer."""


@dataclass
class Result(Generic[T]):
    """Success value or a ``CalendarError``, never both."""
    value: Optional[T] = None
    error: Optional[CalendarError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CalendarError) -> "Result[T]":
        return cls(error=error)


@dataclass
class ScheduleOutcome:
    meeting: MeetingSnapshot
    notifications_sent: bool = False
    notification_errors: List[str] = field(default_factory=list)
