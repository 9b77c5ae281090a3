"""Aggregate FastAPI routers for inclusion in the application."""
from . import health, calendar, meetings, admin

all_routers = [
    health.router,
    calendar.router,
    meetings.router,
    admin.router,
]
