"""Notification collaborators wired to meeting domain events."""
import logging
from typing import List, Optional

import requests

from app.domain.events import DomainEvent, MeetingCancelled, MeetingRescheduled, MeetingScheduled, MeetingUpdated
from app.infrastructure.repositories import MailboxRepository, MeetingRepository
from core.meeting import MeetingSnapshot, Participant
from utils.time import iso_utc

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    pass


def _when(meeting: MeetingSnapshot) -> str:
    return meeting.start_time.strftime("%A, %B %d %Y at %H:%M UTC")


def describe(event: DomainEvent) -> tuple:
    """(mailbox title, message body) for a meeting event."""
    meeting = event.meeting
    if isinstance(event, (MeetingScheduled, MeetingUpdated)):
        return (f"New Meeting: {meeting.title}",
                f'You have been invited to a meeting "{meeting.title}" scheduled for {_when(meeting)}')
    if isinstance(event, MeetingCancelled):
        return (f"Meeting Cancelled: {meeting.title}",
                f'The meeting "{meeting.title}" scheduled for {_when(meeting)} has been cancelled')
    if isinstance(event, MeetingRescheduled):
        return (f"Meeting Rescheduled: {meeting.title}",
                f'The meeting "{meeting.title}" has moved to {_when(meeting)}')
    raise ValueError(f"Unsupported event: {type(event).__name__}")


def is_invitation(event: DomainEvent) -> bool:
    return isinstance(event, (MeetingScheduled, MeetingUpdated))


def recipients(event: DomainEvent) -> List[Participant]:
    """Invitations go to participants not yet notified; other events go to everyone."""
    invitation = is_invitation(event)
    return [p for p in event.meeting.participants if not (invitation and p.notified)]


class MailboxNotifier:
    """Drops a message into each participant's in-app mailbox."""

    def __init__(self, mailbox_repo: MailboxRepository, meeting_repo: MeetingRepository):
        self.mailbox_repo = mailbox_repo
        self.meeting_repo = meeting_repo

    async def handle(self, event: DomainEvent) -> None:
        meeting = event.meeting
        title, content = describe(event)
        delivered = []
        for participant in recipients(event):
            self.mailbox_repo.add_message(
                owner_id=participant.user_id,
                sender_id=meeting.organizer_id,
                type="meeting",
                title=title,
                content=content,
                reference_id=meeting.id,
                labels=["work"],
            )
            delivered.append(participant.user_id)
        if is_invitation(event) and delivered:
            self.meeting_repo.mark_notified(meeting.id, delivered)
        logger.info(f"📬 Mailbox notified {len(delivered)} participant(s) for '{meeting.title}'")


class WebhookNotifier:
    """POSTs meeting events to an external endpoint."""

    def __init__(self, url: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def payload(self, event: DomainEvent) -> dict:
        meeting = event.meeting
        title, content = describe(event)
        return {
            "event": type(event).__name__,
            "title": title,
            "content": content,
            "meeting": {
                "id": meeting.id,
                "title": meeting.title,
                "startTime": iso_utc(meeting.start_time),
                "endTime": iso_utc(meeting.end_time),
                "status": meeting.status.value,
            },
            "recipients": [p.email or p.user_id for p in recipients(event)],
        }

    async def handle(self, event: DomainEvent) -> None:
        try:
            response = self.session.post(self.url, json=self.payload(event), timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error(f"❌ Notification webhook timeout: {e}")
            raise NotificationError(f"webhook timeout: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Notification webhook error: {e}")
            raise NotificationError(f"webhook error: {e}") from e
        if response.status_code not in (200, 201, 202, 204):
            logger.error(f"❌ Notification webhook returned {response.status_code}: {response.text}")
            raise NotificationError(f"webhook returned {response.status_code}")
        logger.info(f"✅ Notification webhook accepted {type(event).__name__}")
