"""Pydantic models for request/response bodies.

Wire names are camelCase; Python attributes stay snake_case.
"""
from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.interval import Interval
from core.meeting import MeetingSnapshot
from utils.time import iso_utc


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AgendaItem(CamelModel):
    topic: str
    duration: Optional[int] = Field(default=None, gt=0, description="Minutes")
    presenter: Optional[str] = None


class ScheduleMeetingRequest(CamelModel):
    # Required fields are checked in missing_fields so gaps surface as 400s, not 422s.
    title: Optional[str] = None
    description: Optional[str] = None
    participant_emails: List[str] = Field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    meeting_type: str = "in-person"
    online_meeting_link: Optional[str] = None
    agenda: List[AgendaItem] = Field(default_factory=list)

    def missing_fields(self) -> List[str]:
        """Wire names of required fields that are absent or blank."""
        required = {"title": self.title, "description": self.description, "startTime": self.start_time,
                    "endTime": self.end_time, "location": self.location}
        return [name for name, value in required.items() if value is None or (isinstance(value, str) and not value.strip())]

    def details(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "location": self.location,
            "meeting_type": self.meeting_type,
            "online_meeting_link": self.online_meeting_link,
            "agenda": [item.model_dump(by_alias=True, exclude_none=True) for item in self.agenda],
        }


class UpdateMeetingRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    meeting_type: Optional[str] = None
    online_meeting_link: Optional[str] = None
    agenda: Optional[List[AgendaItem]] = None
    participant_emails: Optional[List[str]] = None

    def changes(self) -> Dict[str, Any]:
        """Only the fields the caller sent, keyed the way the scheduler expects."""
        sent = self.model_dump(exclude_unset=True)
        if "agenda" in sent:
            sent["agenda"] = [item.model_dump(by_alias=True, exclude_none=True) for item in self.agenda or []]
        if "participant_emails" in sent:
            sent["participants"] = sent.pop("participant_emails") or []
        return sent


class WorkingHoursModel(CamelModel):
    start: int = Field(default=9, ge=0, le=23)
    end: int = Field(default=17, ge=1, le=24)


class AvailableSlotsRequest(CamelModel):
    participant_emails: List[str] = Field(default_factory=list)
    day: Optional[date] = Field(default=None, alias="date", description="YYYY-MM-DD")
    duration: Optional[int] = Field(default=None, gt=0, le=24 * 60, description="Minutes")
    working_hours: Optional[WorkingHoursModel] = None


class RescheduleRequest(CamelModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class ParticipantStatusRequest(CamelModel):
    status: str


class CreateUserRequest(CamelModel):
    email: str = Field(min_length=3, max_length=255)
    name: str = Field(min_length=1, max_length=100)
    department: Optional[str] = None
    position: Optional[str] = None
    role: str = "user"


def serialize_slot(slot: Interval) -> Dict[str, Any]:
    return {"startTime": iso_utc(slot.start), "endTime": iso_utc(slot.end), "duration": slot.duration_minutes}


def serialize_meeting(meeting: MeetingSnapshot) -> Dict[str, Any]:
    details = meeting.details or {}
    return {
        "id": meeting.id,
        "title": meeting.title,
        "description": details.get("description"),
        "organizer": {"id": meeting.organizer_id, "name": meeting.organizer_name},
        "participants": [
            {"id": p.user_id, "name": p.name, "email": p.email, "status": p.status.value}
            for p in meeting.participants
        ],
        "startTime": iso_utc(meeting.start_time),
        "endTime": iso_utc(meeting.end_time),
        "durationMinutes": meeting.interval.duration_minutes,
        "status": meeting.status.value,
        "location": details.get("location"),
        "meetingType": details.get("meeting_type"),
        "onlineMeetingLink": details.get("online_meeting_link"),
        "agenda": details.get("agenda", []),
        "createdAt": iso_utc(meeting.created_at) if meeting.created_at else None,
    }


def serialize_conflict(meeting: MeetingSnapshot) -> Dict[str, Any]:
    names = [meeting.organizer_name] if meeting.organizer_name else []
    names += [p.name or p.user_id for p in meeting.participants]
    return {
        "id": meeting.id,
        "title": meeting.title,
        "startTime": iso_utc(meeting.start_time),
        "endTime": iso_utc(meeting.end_time),
        "participants": names,
    }
