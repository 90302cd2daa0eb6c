"""
Ownership checks consumed by the event and swap services

Each check resolves an id plus the acting user to the resource, or raises
the matching AppError. Nothing here mutates state.
"""

from sqlalchemy.orm import Session, joinedload

from .errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from .models import Event, SwapRequest, SwapStatus
from .shared.validators import validate_uuid


def require_valid_id(value: str, name: str) -> str:
    if not validate_uuid(value):
        raise ValidationError(f"Invalid {name} format", details={name: f"Invalid {name} format"})
    return value


def require_event_owner(db: Session, event_id: str, user_id: str, for_update: bool = False) -> Event:
    """Resolve (event_id, user_id) to the event, or NotFound / Unauthorized"""
    require_valid_id(event_id, "eventId")

    query = db.query(Event).filter(Event.id == event_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    event = query.first()
    if not event:
        raise NotFoundError("Event not found")
    if not event.is_owned_by(user_id):
        raise UnauthorizedError("You can only modify your own events")
    return event


def require_swap_responder(db: Session, request_id: str, user_id: str) -> SwapRequest:
    """Resolve a swap request the user may answer: theirs to receive and still PENDING"""
    require_valid_id(request_id, "requestId")

    swap_request = db.query(SwapRequest).filter(SwapRequest.id == request_id).first()
    if not swap_request:
        raise NotFoundError("Swap request not found")
    if swap_request.target_user_id != user_id:
        raise UnauthorizedError("You can only respond to swap requests for your own slots")
    if swap_request.status != SwapStatus.PENDING:
        raise ConflictError("This swap request has already been processed")
    return swap_request


def require_swap_participant(db: Session, request_id: str, user_id: str) -> SwapRequest:
    """Resolve a swap request visible to the user; strangers get NotFound"""
    require_valid_id(request_id, "requestId")

    swap_request = (
        db.query(SwapRequest)
        .options(
            joinedload(SwapRequest.requester),
            joinedload(SwapRequest.target_user),
            joinedload(SwapRequest.requester_slot),
            joinedload(SwapRequest.target_slot),
        )
        .filter(SwapRequest.id == request_id)
        .first()
    )
    if not swap_request or user_id not in (swap_request.requester_user_id, swap_request.target_user_id):
        raise NotFoundError("Swap request not found")
    return swap_request
