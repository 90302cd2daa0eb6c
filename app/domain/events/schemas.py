"""Event domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import EventStatus
from ...schemas import UserSummary, user_summary
from ...shared.validators import as_utc, to_naive_utc, validate_title


def _normalize_status(v):
    if isinstance(v, str):
        return v.strip().upper()
    return v


class EventCreate(BaseModel):
    """Schema for creating a new event"""

    title: str
    startTime: datetime
    endTime: datetime
    status: Optional[EventStatus] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v):
        return validate_title(v)

    @field_validator("startTime", "endTime")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_status(v)


class EventUpdate(BaseModel):
    """Schema for updating an existing event - every field optional"""

    title: Optional[str] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    status: Optional[EventStatus] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v):
        if v is None:
            return v
        return validate_title(v)

    @field_validator("startTime", "endTime")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_status(v)


class EventStatusUpdate(BaseModel):
    """Schema for toggling an event between BUSY and SWAPPABLE"""

    status: EventStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_status(v)


class EventResponse(BaseModel):
    """Schema for event response"""

    id: str
    title: str
    startTime: datetime
    endTime: datetime
    status: EventStatus
    userId: str
    owner: Optional[UserSummary] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


def event_response(event, include_owner: bool = False) -> EventResponse:
    return EventResponse(
        id=event.id,
        title=event.title,
        startTime=as_utc(event.start_time),
        endTime=as_utc(event.end_time),
        status=event.status,
        userId=event.user_id,
        owner=user_summary(event.owner) if include_owner else None,
        createdAt=as_utc(event.created_at),
        updatedAt=as_utc(event.updated_at),
    )
