"""Meeting lifecycle and calendar views for the calling user."""
from typing import Optional

from fastapi import APIRouter, Depends
import logging

from app.application.calendar_queries import CalendarQueries
from app.application.scheduler import MeetingScheduler
from app.dependencies import error_response, get_calendar_queries, get_current_user_id, get_scheduler
from app.schemas import ParticipantStatusRequest, RescheduleRequest, UpdateMeetingRequest, serialize_meeting

router = APIRouter(prefix="/meetings", tags=["meetings"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_meetings(
    status: Optional[str] = None,
    upcoming: bool = False,
    user_id: str = Depends(get_current_user_id),
    queries: CalendarQueries = Depends(get_calendar_queries),
):
    result = queries.list_meetings(user_id, status=status, upcoming=upcoming)
    if not result.ok:
        return error_response(result.error)
    return {"meetings": [serialize_meeting(m) for m in result.value]}


@router.get("/upcoming")
async def upcoming_meetings(
    user_id: str = Depends(get_current_user_id),
    queries: CalendarQueries = Depends(get_calendar_queries),
):
    result = queries.upcoming_meetings(user_id)
    if not result.ok:
        return error_response(result.error)
    return {"meetings": [serialize_meeting(m) for m in result.value]}


@router.get("/today")
async def today_meetings(
    user_id: str = Depends(get_current_user_id),
    queries: CalendarQueries = Depends(get_calendar_queries),
):
    result = queries.today_meetings(user_id)
    if not result.ok:
        return error_response(result.error)
    return {"meetings": [serialize_meeting(m) for m in result.value]}


@router.get("/calendar/{year}/{month}")
async def monthly_calendar(
    year: int,
    month: int,
    user_id: str = Depends(get_current_user_id),
    queries: CalendarQueries = Depends(get_calendar_queries),
):
    result = queries.monthly_calendar(user_id, year, month)
    if not result.ok:
        return error_response(result.error)
    return {
        "year": year,
        "month": month,
        "calendar": {day: [serialize_meeting(m) for m in meetings] for day, meetings in result.value.items()},
    }


@router.get("/{meeting_id}")
async def get_meeting(
    meeting_id: str,
    user_id: str = Depends(get_current_user_id),
    scheduler: MeetingScheduler = Depends(get_scheduler),
):
    result = scheduler.get_meeting(meeting_id, user_id)
    if not result.ok:
        return error_response(result.error)
    return {"meeting": serialize_meeting(result.value)}


@router.put("/{meeting_id}")
async def update_meeting(
    meeting_id: str,
    payload: UpdateMeetingRequest,
    user_id: str = Depends(get_current_user_id),
    scheduler: MeetingScheduler = Depends(get_scheduler),
):
    """Edit title, description, location, type, link, agenda or participants."""
    result = await scheduler.update_details(meeting_id, user_id, payload.changes())
    if not result.ok:
        return error_response(result.error)
    return {"message": "Meeting updated", "meeting": serialize_meeting(result.value)}


@router.post("/{meeting_id}/cancel")
async def cancel_meeting(
    meeting_id: str,
    user_id: str = Depends(get_current_user_id),
    scheduler: MeetingScheduler = Depends(get_scheduler),
):
    result = await scheduler.cancel(meeting_id, user_id)
    if not result.ok:
        return error_response(result.error)
    return {"message": "Meeting cancelled", "meeting": serialize_meeting(result.value)}


@router.post("/{meeting_id}/start")
async def start_meeting(
    meeting_id: str,
    user_id: str = Depends(get_current_user_id),
    scheduler: MeetingScheduler = Depends(get_scheduler),
):
    result = await scheduler.start(meeting_id, user_id)
    if not result.ok:
        return error_response(result.error)
    return {"meeting": serialize_meeting(result.value)}


@router.post("/{meeting_id}/complete")
async def complete_meeting(
    meeting_id: str,
    user_id: str = Depends(get_current_user_id),
    scheduler: MeetingScheduler = Depends(get_scheduler),
):
    result = await scheduler.complete(meeting_id, user_id)
    if not result.ok:
        return error_response(result.error)
    return {"meeting": serialize_meeting(result.value)}


@router.put("/{meeting_id}/reschedule")
async def reschedule_meeting(
    meeting_id: str,
    payload: RescheduleRequest,
    user_id: str = Depends(get_current_user_id),
    scheduler: MeetingScheduler = Depends(get_scheduler),
):
    result = await scheduler.reschedule(meeting_id, payload.start_time, payload.end_time, actor_id=user_id)
    if not result.ok:
        return error_response(result.error)
    return {"message": "Meeting rescheduled", "meeting": serialize_meeting(result.value)}


@router.put("/{meeting_id}/participants/status")
async def update_participant_status(
    meeting_id: str,
    payload: ParticipantStatusRequest,
    user_id: str = Depends(get_current_user_id),
    scheduler: MeetingScheduler = Depends(get_scheduler),
):
    result = await scheduler.respond(meeting_id, user_id, payload.status)
    if not result.ok:
        return error_response(result.error)
    return {"message": f"Meeting {payload.status}", "meeting": serialize_meeting(result.value)}
