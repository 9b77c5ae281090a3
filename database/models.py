from sqlalchemy import Column, String, Integer, DateTime, Text, Boolean, ForeignKey, JSON, UniqueConstraint, Index
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator, CHAR
import uuid

from utils.time import utc_now


class GUID(TypeDecorator):
    """Platform-independent GUID/UUID type.

    Uses PostgreSQL UUID when available; otherwise stores as CHAR(36).
    """
    impl = CHAR(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):  # pragma: no cover - trivial
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):  # pragma: no cover - trivial
        if value is None:
            return value
        return uuid.UUID(str(value))

Base = declarative_base()

class User(Base):
    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    department = Column(String(50))
    position = Column(String(100))
    role = Column(String(20), default="user")
    created_at = Column(DateTime(timezone=True), default=utc_now)

class Meeting(Base):
    __tablename__ = "meetings"
    __table_args__ = (
        Index("ix_meetings_start_status", "start_time", "status"),
        Index("ix_meetings_organizer_status", "organizer_id", "status"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    organizer_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    location = Column(String(200))
    meeting_type = Column(String(20), default="in-person")
    online_meeting_link = Column(String(500))
    agenda = Column(JSON, default=list)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    organizer = relationship("User", lazy="joined")
    participants = relationship(
        "MeetingParticipant",
        back_populates="meeting",
        cascade="all, delete-orphan",
        order_by="MeetingParticipant.position",
        lazy="selectin",
    )

class MeetingParticipant(Base):
    __tablename__ = "meeting_participants"
    __table_args__ = (
        UniqueConstraint("meeting_id", "user_id", name="uq_meeting_participant"),
        Index("ix_meeting_participants_user", "user_id"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    meeting_id = Column(GUID(), ForeignKey("meetings.id"), nullable=False)
    user_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    # Invitation order, kept for display.
    position = Column(Integer, default=0)
    status = Column(String(20), nullable=False, default="invited")
    notified = Column(Boolean, default=False)

    meeting = relationship("Meeting", back_populates="participants")
    user = relationship("User", lazy="joined")

class MailboxMessage(Base):
    __tablename__ = "mailbox_messages"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    owner_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    sender_id = Column(GUID(), ForeignKey("users.id"))
    type = Column(String(20), nullable=False, default="notification")
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    reference_id = Column(GUID())
    is_read = Column(Boolean, default=False)
    labels = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=utc_now)
