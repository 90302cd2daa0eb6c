import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from .database import Base


def generate_id():
    """Generate a unique id for a new row"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current time as naive UTC, the form every timestamp is stored in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EventStatus(str, enum.Enum):
    BUSY = "BUSY"
    SWAPPABLE = "SWAPPABLE"
    SWAP_PENDING = "SWAP_PENDING"


class SwapStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


def _enum_column(enum_cls, name: str):
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(50), nullable=False)
    email = Column(String(254), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    events = relationship("Event", back_populates="owner")


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_events_end_after_start"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(100), nullable=False)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    status = Column(
        _enum_column(EventStatus, "event_status"),
        default=EventStatus.BUSY,
        nullable=False,
        index=True,
    )
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="events")

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id

    def can_be_modified(self, now: Optional[datetime] = None) -> bool:
        """Pending swaps and events that already started are frozen"""
        now = now or utcnow()
        return self.status != EventStatus.SWAP_PENDING and self.start_time > now


class SwapRequest(Base):
    __tablename__ = "swap_requests"
    __table_args__ = (
        CheckConstraint("requester_user_id <> target_user_id", name="ck_swap_requests_no_self_swap"),
        CheckConstraint("requester_slot_id <> target_slot_id", name="ck_swap_requests_distinct_slots"),
        # At most one PENDING request per target slot
        Index(
            "uq_swap_requests_pending_target",
            "target_slot_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    requester_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    requester_slot_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    target_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    target_slot_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    status = Column(
        _enum_column(SwapStatus, "swap_status"),
        default=SwapStatus.PENDING,
        nullable=False,
        index=True,
    )
    message = Column(Text, default="", nullable=False)
    response_message = Column(Text, default="", nullable=False)
    responded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    requester = relationship("User", foreign_keys=[requester_user_id])
    target_user = relationship("User", foreign_keys=[target_user_id])
    requester_slot = relationship("Event", foreign_keys=[requester_slot_id])
    target_slot = relationship("Event", foreign_keys=[target_slot_id])
