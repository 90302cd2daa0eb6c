"""Swap router - FastAPI endpoints for the swap marketplace"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...access_control import require_swap_participant, require_swap_responder
from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...schemas import success_response
from ..events.schemas import event_response
from .schemas import (
    SwapAction,
    SwapRequestCreate,
    SwapResponseCreate,
    parse_status_filter,
    swap_request_response,
)
from .service import SwapService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Swaps"])

RESPONSE_MESSAGES = {
    SwapAction.ACCEPT: "Swap request accepted successfully",
    SwapAction.REJECT: "Swap request rejected successfully",
}


def get_swap_service(db: Session = Depends(get_db)) -> SwapService:
    """Dependency injection for SwapService"""
    return SwapService(db)


@router.get("/swappable-slots")
async def get_swappable_slots(
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    slots = service.get_swappable_slots(current_user.id)
    return success_response(
        {"slots": [event_response(s, include_owner=True) for s in slots], "count": len(slots)},
        "Swappable slots retrieved successfully",
    )


@router.post("/swap-request", status_code=201)
async def create_swap_request(
    data: SwapRequestCreate,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    swap_request = service.create_swap_request(
        current_user.id, data.requesterSlotId, data.targetSlotId, data.message
    )
    return success_response(
        {"swapRequest": swap_request_response(swap_request)}, "Swap request created successfully"
    )


@router.post("/swap-response/{request_id}")
async def respond_to_swap_request(
    request_id: str,
    data: SwapResponseCreate,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    """Accept or reject a swap request addressed to the current user"""
    require_swap_responder(service.db, request_id, current_user.id)
    swap_request = service.respond_to_swap_request(request_id, data.action, data.responseMessage)
    return success_response(
        {"swapRequest": swap_request_response(swap_request)},
        RESPONSE_MESSAGES[data.action],
    )


@router.get("/swap-requests/incoming")
async def get_incoming_requests(
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    requests = service.get_incoming_requests(current_user.id, parse_status_filter(status))
    return success_response(
        {"requests": [swap_request_response(r) for r in requests], "count": len(requests)},
        "Incoming swap requests retrieved successfully",
    )


@router.get("/swap-requests/outgoing")
async def get_outgoing_requests(
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    requests = service.get_outgoing_requests(current_user.id, parse_status_filter(status))
    return success_response(
        {"requests": [swap_request_response(r) for r in requests], "count": len(requests)},
        "Outgoing swap requests retrieved successfully",
    )


@router.get("/swap-requests/{request_id}")
async def get_swap_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    service: SwapService = Depends(get_swap_service),
):
    swap_request = require_swap_participant(service.db, request_id, current_user.id)
    return success_response({"swapRequest": swap_request_response(swap_request)})
