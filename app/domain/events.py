"""Domain layer: Domain events and event dispatcher."""
import logging
from abc import ABC
from typing import Protocol, List, Dict, Optional
from dataclasses import dataclass

from core.interval import Interval
from core.meeting import MeetingSnapshot

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent(ABC):
    """Base class for domain events."""
    pass


@dataclass
class MeetingScheduled(DomainEvent):
    """Event fired when a meeting is scheduled."""
    meeting: MeetingSnapshot


@dataclass
class MeetingCancelled(DomainEvent):
    """Event fired when a meeting is cancelled."""
    meeting: MeetingSnapshot
    cancelled_by: Optional[str] = None


@dataclass
class MeetingRescheduled(DomainEvent):
    """Event fired when a meeting moves to a new time window."""
    meeting: MeetingSnapshot
    previous: Interval


@dataclass
class MeetingUpdated(DomainEvent):
    """Event fired when a meeting's details or participant list change."""
    meeting: MeetingSnapshot


class EventHandler(Protocol):
    """Interface for event handlers."""

    async def handle(self, event: DomainEvent) -> None:
        """Handle the domain event."""
        pass


class EventDispatcher:
    """Dispatches domain events to registered handlers.

    Every handler runs even if an earlier one fails; failures are logged and
    returned so the caller can report them.
    """

    def __init__(self):
        self._handlers: Dict[type, List[EventHandler]] = {}

    def register_handler(self, event_type: type, handler: EventHandler) -> None:
        """Register an event handler for a specific event type."""
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def handlers_for(self, event_type: type) -> List[EventHandler]:
        return list(self._handlers.get(event_type, []))

    async def dispatch(self, event: DomainEvent) -> List[str]:
        """Dispatch an event to all registered handlers, returning failure messages."""
        failures: List[str] = []
        for handler in self.handlers_for(type(event)):
            try:
                await handler.handle(event)
            except Exception as e:
                name = type(handler).__name__
                logger.error(f"❌ {name} failed for {type(event).__name__}: {e}", exc_info=True)
                failures.append(f"{name}: {e}")
        return failures
