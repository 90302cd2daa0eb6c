"""Event router - FastAPI endpoints for calendar events"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...schemas import success_response
from .schemas import EventCreate, EventStatusUpdate, EventUpdate, event_response
from .service import EventService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["Events"])


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Dependency injection for EventService"""
    return EventService(db)


@router.get("")
async def get_events(
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Get the current user's events, earliest first"""
    events = service.get_events(current_user)
    return success_response(
        {"events": [event_response(e) for e in events], "count": len(events)},
        "Events retrieved successfully",
    )


@router.get("/marketplace")
async def get_marketplace(
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Swappable events owned by other users"""
    events = service.get_marketplace(current_user)
    return success_response(
        {"events": [event_response(e, include_owner=True) for e in events], "count": len(events)},
        "Swappable events retrieved successfully",
    )


@router.post("", status_code=201)
async def create_event(
    data: EventCreate,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    event = service.create_event(data, current_user)
    return success_response({"event": event_response(event)}, "Event created successfully")


@router.put("/{event_id}")
async def update_event(
    event_id: str,
    data: EventUpdate,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    event = service.update_event(event_id, data, current_user)
    return success_response({"event": event_response(event)}, "Event updated successfully")


@router.patch("/{event_id}/status")
async def update_event_status(
    event_id: str,
    data: EventStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Toggle an event between BUSY and SWAPPABLE"""
    event = service.update_status(event_id, data, current_user)
    return success_response({"event": event_response(event)}, "Event status updated successfully")


@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Delete an event along with every swap request that references it"""
    result = service.delete_event(event_id, current_user)
    return success_response(result, "Event deleted successfully")
