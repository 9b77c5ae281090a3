"""Calendar endpoints: scheduling, free-slot search and user schedules."""
from datetime import datetime, time, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
import logging

from app.application.calendar_queries import CalendarQueries
from app.application.scheduler import MeetingScheduler
from app.config import get_settings
from app.dependencies import error_response, get_calendar_queries, get_current_user_id, get_scheduler
from app.domain.errors import ValidationError
from app.schemas import AvailableSlotsRequest, ScheduleMeetingRequest, serialize_meeting, serialize_slot
from core.interval import WorkingHours, InvalidIntervalError
from utils.time import iso_utc, parse_date

router = APIRouter(prefix="/calendar", tags=["calendar"])
logger = logging.getLogger(__name__)


@router.post("/schedule")
async def schedule_meeting(
    payload: ScheduleMeetingRequest,
    user_id: str = Depends(get_current_user_id),
    scheduler: MeetingScheduler = Depends(get_scheduler),
):
    missing = payload.missing_fields()
    if missing:
        return error_response(ValidationError(f"Missing required fields: {', '.join(missing)}"))
    result = await scheduler.schedule(
        organizer_id=user_id,
        participants=payload.participant_emails,
        start=payload.start_time,
        end=payload.end_time,
        title=payload.title,
        details=payload.details(),
    )
    if not result.ok:
        return error_response(result.error)
    outcome = result.value
    meeting = outcome.meeting
    return JSONResponse(
        status_code=201,
        content={
            "message": "Meeting created",
            "meeting": serialize_meeting(meeting),
            "summary": {
                "title": meeting.title,
                "startTime": iso_utc(meeting.start_time),
                "endTime": iso_utc(meeting.end_time),
                "location": meeting.details.get("location"),
                "participantCount": len(meeting.participants),
                "notificationsSent": outcome.notifications_sent,
            },
        },
    )


@router.post("/available-slots")
async def available_slots(
    payload: AvailableSlotsRequest,
    user_id: str = Depends(get_current_user_id),
    queries: CalendarQueries = Depends(get_calendar_queries),
):
    settings = get_settings()
    if payload.day is None:
        return error_response(ValidationError("Please provide the date to check (YYYY-MM-DD)"))
    hours_in = payload.working_hours
    try:
        hours = WorkingHours(
            start=hours_in.start if hours_in else settings.working_hours_start,
            end=hours_in.end if hours_in else settings.working_hours_end,
        )
    except InvalidIntervalError as e:
        return error_response(ValidationError(str(e)))
    duration = payload.duration or settings.default_slot_duration

    result = queries.available_slots(payload.participant_emails, payload.day, duration, hours)
    if not result.ok:
        return error_response(result.error)
    slots = [serialize_slot(s) for s in result.value]
    return {
        "date": payload.day.isoformat(),
        "availableSlots": slots,
        "totalSlots": len(slots),
        "workingHours": {"start": hours.start, "end": hours.end},
    }


@router.get("/user-schedule/{identifier}")
async def user_schedule(
    identifier: str,
    date: Optional[str] = None,
    days: int = Query(default=7, gt=0, le=366),
    user_id: str = Depends(get_current_user_id),
    queries: CalendarQueries = Depends(get_calendar_queries),
):
    start = None
    if date:
        try:
            start = datetime.combine(parse_date(date), time.min, tzinfo=timezone.utc)
        except ValueError:
            return error_response(ValidationError("date must be YYYY-MM-DD"))
    result = queries.user_schedule(identifier, start=start, days=days)
    if not result.ok:
        return error_response(result.error)
    data = result.value
    user = data["user"]
    return {
        "user": {"id": str(user.id), "name": user.name, "email": user.email, "department": user.department},
        "schedule": {
            "startDate": iso_utc(data["start"]),
            "endDate": iso_utc(data["end"]),
            "meetings": [
                {
                    "id": m.id,
                    "title": m.title,
                    "startTime": iso_utc(m.start_time),
                    "endTime": iso_utc(m.end_time),
                    "location": m.details.get("location"),
                    "meetingType": m.details.get("meeting_type"),
                    "organizer": m.organizer_name,
                    "participantCount": len(m.participants),
                    "status": m.status.value,
                }
                for m in data["meetings"]
            ],
        },
    }
