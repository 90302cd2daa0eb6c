"""Swap domain schemas - Pydantic models for validation"""

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import SwapStatus
from ...schemas import EventSummary, UserSummary, event_summary, user_summary
from ...shared.validators import as_utc


class SwapAction(str, enum.Enum):
    """The two ways a recipient can answer a swap request"""

    ACCEPT = "accept"
    REJECT = "reject"


class SwapRequestCreate(BaseModel):
    requesterSlotId: str
    targetSlotId: str
    message: Optional[str] = None

    @field_validator("requesterSlotId", "targetSlotId")
    @classmethod
    def strip_ids(cls, v):
        return v.strip()

    @field_validator("message")
    @classmethod
    def trim_message(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) > 500:
            raise ValueError("Message cannot exceed 500 characters")
        return v


class SwapResponseCreate(BaseModel):
    action: SwapAction
    responseMessage: Optional[str] = None

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("responseMessage")
    @classmethod
    def trim_message(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) > 500:
            raise ValueError("Response message cannot exceed 500 characters")
        return v


class SwapRequestResponse(BaseModel):
    """Schema for swap request response, with both parties and slots summarized"""

    id: str
    requesterUserId: str
    requesterSlotId: str
    targetUserId: str
    targetSlotId: str
    status: SwapStatus
    message: str = ""
    responseMessage: str = ""
    respondedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    requester: Optional[UserSummary] = None
    targetUser: Optional[UserSummary] = None
    requesterSlot: Optional[EventSummary] = None
    targetSlot: Optional[EventSummary] = None


def parse_status_filter(value: Optional[str]) -> Optional[SwapStatus]:
    """Case-insensitive status filter; unknown values mean no filter"""
    if not value:
        return None
    try:
        return SwapStatus(value.strip().upper())
    except ValueError:
        return None


def swap_request_response(swap_request) -> SwapRequestResponse:
    return SwapRequestResponse(
        id=swap_request.id,
        requesterUserId=swap_request.requester_user_id,
        requesterSlotId=swap_request.requester_slot_id,
        targetUserId=swap_request.target_user_id,
        targetSlotId=swap_request.target_slot_id,
        status=swap_request.status,
        message=swap_request.message or "",
        responseMessage=swap_request.response_message or "",
        respondedAt=as_utc(swap_request.responded_at),
        createdAt=as_utc(swap_request.created_at),
        updatedAt=as_utc(swap_request.updated_at),
        requester=user_summary(swap_request.requester),
        targetUser=user_summary(swap_request.target_user),
        requesterSlot=event_summary(swap_request.requester_slot),
        targetSlot=event_summary(swap_request.target_slot),
    )
