"""Application layer: who may manage a meeting."""
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from core.meeting import MeetingSnapshot
from database.models import User


class Authorizer(ABC):
    """Authorization collaborator consulted before mutating a meeting."""

    @abstractmethod
    def can_manage(self, actor: Optional[User], meeting: MeetingSnapshot) -> bool:
        pass

    def can_view(self, actor: Optional[User], meeting: MeetingSnapshot) -> bool:
        return actor is not None and (str(actor.id) in meeting.attendee_ids or self.can_manage(actor, meeting))


class RoleAuthorizer(Authorizer):
    """Organizer, or a user holding an elevated role or department."""

    def __init__(self, elevated_roles: Iterable[str] = ("admin",), elevated_departments: Iterable[str] = ("Operations",)):
        self.elevated_roles = {r.lower() for r in elevated_roles}
        self.elevated_departments = {d.lower() for d in elevated_departments}

    def is_elevated(self, actor: User) -> bool:
        return (
            (actor.role or "").lower() in self.elevated_roles
            or (actor.department or "").lower() in self.elevated_departments
        )

    def can_manage(self, actor, meeting) -> bool:
        if actor is None:
            return False
        return str(actor.id) == meeting.organizer_id or self.is_elevated(actor)
