from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from .shared.validators import as_utc


class UserSummary(BaseModel):
    id: str
    name: str
    email: str


class UserResponse(UserSummary):
    createdAt: Optional[datetime] = None


class EventSummary(BaseModel):
    id: str
    title: str
    startTime: datetime
    endTime: datetime


def user_summary(user) -> Optional[UserSummary]:
    if user is None:
        return None
    return UserSummary(id=user.id, name=user.name, email=user.email)


def user_response(user) -> UserResponse:
    """Public view of a user - never includes the password hash"""
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        createdAt=as_utc(user.created_at),
    )


def event_summary(event) -> Optional[EventSummary]:
    if event is None:
        return None
    return EventSummary(
        id=event.id,
        title=event.title,
        startTime=as_utc(event.start_time),
        endTime=as_utc(event.end_time),
    )


def success_response(data: Any = None, message: Optional[str] = None) -> dict[str, Any]:
    """Standard success envelope shared by every endpoint"""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body
