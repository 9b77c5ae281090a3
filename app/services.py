"""Service wiring used across routers.

Long-lived collaborators are created once at import; per-request services are
built around the request's database session. Keeps construction logic away
from `main.py` for cleaner testing.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.application.authorization import RoleAuthorizer
from app.application.calendar_queries import CalendarQueries
from app.application.notifications import MailboxNotifier, WebhookNotifier
from app.application.scheduler import MeetingScheduler
from app.config import get_settings
from app.domain.events import EventDispatcher, MeetingCancelled, MeetingRescheduled, MeetingScheduled, MeetingUpdated
from app.infrastructure.repositories import (
    SqlAlchemyMailboxRepository,
    SqlAlchemyMeetingRepository,
    SqlAlchemyUserRepository,
)

settings = get_settings()
logger = logging.getLogger(__name__)

authorizer = RoleAuthorizer(settings.elevated_roles, settings.elevated_departments)

webhook_notifier: Optional[WebhookNotifier] = None
if settings.notify_webhook_url:
    webhook_notifier = WebhookNotifier(settings.notify_webhook_url, timeout=settings.notify_webhook_timeout)
    logger.info("🔔 Notification webhook enabled")


def build_dispatcher(db: Session) -> EventDispatcher:
    dispatcher = EventDispatcher()
    mailbox = MailboxNotifier(SqlAlchemyMailboxRepository(db), SqlAlchemyMeetingRepository(db))
    for event_type in (MeetingScheduled, MeetingCancelled, MeetingRescheduled, MeetingUpdated):
        dispatcher.register_handler(event_type, mailbox)
        if webhook_notifier is not None:
            dispatcher.register_handler(event_type, webhook_notifier)
    return dispatcher


def build_scheduler(db: Session) -> MeetingScheduler:
    return MeetingScheduler(
        meeting_repo=SqlAlchemyMeetingRepository(db),
        user_repo=SqlAlchemyUserRepository(db),
        dispatcher=build_dispatcher(db),
        authorizer=authorizer,
    )


def build_calendar_queries(db: Session) -> CalendarQueries:
    return CalendarQueries(
        meeting_repo=SqlAlchemyMeetingRepository(db),
        user_repo=SqlAlchemyUserRepository(db),
        step_minutes=settings.slot_step_minutes,
    )
