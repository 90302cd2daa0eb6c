"""
Swap negotiation engine

Creating a request and answering one are each a single transaction: both
events and the request row commit together or not at all. Preconditions are
checked up front for clear errors, then re-verified inside the transaction
by compare-and-set status updates and the partial unique index on PENDING
target slots, so two racing callers cannot both claim the same slot.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...access_control import require_valid_id
from ...errors import AppError, ConflictError, NotFoundError, TransactionFailure, UnauthorizedError
from ...models import Event, EventStatus, SwapRequest, SwapStatus, utcnow
from ..events.repository import EventRepository
from .repository import SwapRequestRepository
from .schemas import SwapAction

logger = logging.getLogger(__name__)


class SwapService:
    """Service layer for the swap request lifecycle"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SwapRequestRepository()
        self.event_repo = EventRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_swappable_slots(self, excluding_user_id: str) -> list[Event]:
        """Every SWAPPABLE event not owned by the viewer, earliest first"""
        return self.event_repo.get_swappable_events(self.db, excluding_user_id)

    def get_incoming_requests(
        self, user_id: str, status: Optional[SwapStatus] = None
    ) -> list[SwapRequest]:
        return self.repo.get_incoming_requests(self.db, user_id, status)

    def get_outgoing_requests(
        self, user_id: str, status: Optional[SwapStatus] = None
    ) -> list[SwapRequest]:
        return self.repo.get_outgoing_requests(self.db, user_id, status)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_swap_request(
        self,
        requester_user_id: str,
        requester_slot_id: str,
        target_slot_id: str,
        message: Optional[str] = None,
    ) -> SwapRequest:
        """Offer requester_slot in exchange for target_slot"""
        require_valid_id(requester_slot_id, "requesterSlotId")
        require_valid_id(target_slot_id, "targetSlotId")

        target_slot = self.event_repo.get_event_by_id(self.db, target_slot_id)
        if not target_slot:
            raise NotFoundError("Target slot not found")

        if target_slot.user_id == requester_user_id:
            raise ConflictError("You cannot swap with your own slots")

        requester_slot = self.event_repo.get_event_by_id(self.db, requester_slot_id)
        if not requester_slot or requester_slot.user_id != requester_user_id:
            raise UnauthorizedError("You can only offer your own slots for swapping")

        if requester_slot.status != EventStatus.SWAPPABLE:
            raise ConflictError("Your slot must be marked as swappable to create a swap request")

        if target_slot.status != EventStatus.SWAPPABLE:
            raise ConflictError("Target slot is not available for swapping")

        if self.repo.find_pending_for_target(self.db, target_slot_id):
            raise ConflictError("This slot already has a pending swap request")

        if self.repo.find_pending_duplicate(self.db, requester_user_id, target_slot_id):
            raise ConflictError("You already have a pending request for this slot")

        target_user_id = target_slot.user_id

        try:
            self._lock_events(requester_slot_id, target_slot_id)

            # Another request may have claimed either slot since the checks above
            for slot_id in (requester_slot_id, target_slot_id):
                if not self.event_repo.claim_status(
                    self.db, slot_id, EventStatus.SWAPPABLE, EventStatus.SWAP_PENDING
                ):
                    raise ConflictError("Slot is no longer available for swapping")

            if self.repo.find_pending_for_target(self.db, target_slot_id):
                raise ConflictError("This slot already has a pending swap request")

            swap_request = self.repo.add_request(
                self.db,
                requester_user_id=requester_user_id,
                requester_slot_id=requester_slot_id,
                target_user_id=target_user_id,
                target_slot_id=target_slot_id,
                status=SwapStatus.PENDING,
                message=message or "",
            )
            request_id = swap_request.id
            self.db.commit()
        except AppError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Pending swap constraint hit for slot {target_slot_id}: {e.orig}")
            raise ConflictError("This slot already has a pending swap request") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Swap request transaction failed: {e}")
            raise TransactionFailure("Failed to create swap request") from e

        logger.info(
            f"Swap request {request_id} created: slot {requester_slot_id} -> slot {target_slot_id}"
        )
        return self.repo.get_populated_request(self.db, request_id)

    # ------------------------------------------------------------------
    # Respond
    # ------------------------------------------------------------------

    def respond_to_swap_request(
        self,
        swap_request_id: str,
        action: SwapAction,
        response_message: Optional[str] = None,
    ) -> SwapRequest:
        """
        Accept or reject a PENDING request.

        The caller has already resolved the responder through
        access_control.require_swap_responder.
        """
        action = SwapAction(action)

        try:
            swap_request = self.repo.get_request_by_id(self.db, swap_request_id, for_update=True)
            if not swap_request:
                raise NotFoundError("Swap request not found")

            # A concurrent responder may have won the race
            if swap_request.status != SwapStatus.PENDING:
                raise ConflictError("This swap request has already been processed")

            requester_event, target_event = self._lock_events(
                swap_request.requester_slot_id, swap_request.target_slot_id
            )
            if requester_event is None or target_event is None:
                raise TransactionFailure("One or both events not found")

            if action is SwapAction.ACCEPT:
                requester_start, requester_end = requester_event.start_time, requester_event.end_time
                target_start, target_end = target_event.start_time, target_event.end_time

                requester_event.start_time = target_start
                requester_event.end_time = target_end
                requester_event.status = EventStatus.BUSY

                target_event.start_time = requester_start
                target_event.end_time = requester_end
                target_event.status = EventStatus.BUSY

                swap_request.status = SwapStatus.ACCEPTED
            else:
                requester_event.status = EventStatus.SWAPPABLE
                target_event.status = EventStatus.SWAPPABLE
                swap_request.status = SwapStatus.REJECTED

            swap_request.response_message = response_message or ""
            swap_request.responded_at = utcnow()
            self.db.commit()
        except AppError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Swap response transaction failed for {swap_request_id}: {e}")
            raise TransactionFailure("Failed to process swap response") from e

        logger.info(f"Swap request {swap_request_id} {swap_request.status.value.lower()}")
        return self.repo.get_populated_request(self.db, swap_request_id)

    def _lock_events(self, first_id: str, second_id: str) -> tuple[Optional[Event], Optional[Event]]:
        """Lock both events in id order so concurrent swaps cannot deadlock"""
        locked = {}
        for event_id in sorted((first_id, second_id)):
            locked[event_id] = self.event_repo.get_event_by_id(self.db, event_id, for_update=True)
        return locked[first_id], locked[second_id]
