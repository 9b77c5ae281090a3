from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging

from app.dependencies import error_response, require_admin_key
from app.domain.errors import RepositoryError
from app.infrastructure.repositories import SqlAlchemyMailboxRepository, SqlAlchemyUserRepository
from app.schemas import CreateUserRequest
from database.connection import get_db
from database.models import User
from utils.time import iso_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


def _user_dict(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "department": user.department,
        "position": user.position,
        "role": user.role,
    }


@router.post("/users")
async def add_user(payload: CreateUserRequest, db: Session = Depends(get_db)):
    users = SqlAlchemyUserRepository(db)
    if "@" not in payload.email:
        return JSONResponse(status_code=400, content={"error": "email is invalid"})
    try:
        existing = users.get_by_email(payload.email)
        if existing:
            return JSONResponse(status_code=400, content={"error": f"{existing.name} with email {existing.email} already exists"})
        user = users.create(
            email=payload.email,
            name=payload.name,
            department=payload.department,
            position=payload.position,
            role=payload.role,
        )
    except RepositoryError as e:
        logger.error(f"Error adding user: {e}")
        return error_response(e)
    logger.info(f"👤 Created user: {user.name} ({user.email})")
    return JSONResponse(status_code=201, content={"success": True, "user": _user_dict(user)})


@router.get("/users")
async def list_users(db: Session = Depends(get_db)):
    try:
        users = SqlAlchemyUserRepository(db).list_all()
    except RepositoryError as e:
        return error_response(e)
    return {"users": [_user_dict(u) for u in users]}


@router.get("/users/{user_id}/mailbox")
async def user_mailbox(user_id: str, unread_only: bool = False, db: Session = Depends(get_db)):
    """Inspect notifications delivered to a user's in-app mailbox."""
    try:
        messages = SqlAlchemyMailboxRepository(db).list_for_owner(user_id, unread_only=unread_only)
    except RepositoryError as e:
        return error_response(e)
    return {
        "count": len(messages),
        "messages": [
            {
                "id": str(m.id),
                "type": m.type,
                "title": m.title,
                "content": m.content,
                "reference": str(m.reference_id) if m.reference_id else None,
                "isRead": m.is_read,
                "labels": m.labels or [],
                "createdAt": iso_utc(m.created_at) if m.created_at else None,
            }
            for m in messages
        ],
    }
