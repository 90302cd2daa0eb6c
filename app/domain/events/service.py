"""Event service - Business logic for calendar events"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...access_control import require_event_owner
from ...errors import AppError, LockedError, TransactionFailure, ValidationError
from ...models import Event, EventStatus, SwapStatus, User, utcnow
from ..swaps.repository import SwapRequestRepository
from .repository import EventRepository
from .schemas import EventCreate, EventStatusUpdate, EventUpdate

logger = logging.getLogger(__name__)


def validate_time_range(start_time: datetime, end_time: datetime) -> None:
    if end_time <= start_time:
        raise ValidationError(
            "End time must be after start time",
            details={"endTime": "End time must be after start time"},
        )


def validate_future_start(start_time: datetime) -> None:
    if start_time <= utcnow():
        raise ValidationError(
            "Start time must be in the future",
            details={"startTime": "Start time must be in the future"},
        )


def reject_swap_pending(status) -> None:
    """SWAP_PENDING is only ever set by the swap engine"""
    if status == EventStatus.SWAP_PENDING:
        raise LockedError("SWAP_PENDING can only be set by creating a swap request")


class EventService:
    """Service layer for event business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EventRepository()
        self.swap_repo = SwapRequestRepository()

    def get_events(self, user: User) -> list[Event]:
        """Get all events for a user"""
        return self.repo.get_events_for_user(self.db, user.id)

    def get_marketplace(self, user: User) -> list[Event]:
        return self.repo.get_swappable_events(self.db, user.id)

    def get_event(self, event_id: str, user: User, for_update: bool = False) -> Event:
        return require_event_owner(self.db, event_id, user.id, for_update=for_update)

    def create_event(self, data: EventCreate, user: User) -> Event:
        """Create a new event with validation"""
        reject_swap_pending(data.status)
        validate_future_start(data.startTime)
        validate_time_range(data.startTime, data.endTime)

        event = self.repo.create_event(
            self.db,
            user.id,
            title=data.title,
            start_time=data.startTime,
            end_time=data.endTime,
            status=data.status or EventStatus.BUSY,
        )
        logger.info(f"Created event {event.id} for user {user.id}")
        return event

    def update_event(self, event_id: str, data: EventUpdate, user: User) -> Event:
        """Update title/time/status of an event that is not frozen"""
        event = self.get_event(event_id, user, for_update=True)

        if not event.can_be_modified():
            raise LockedError("Event cannot be modified (has pending swap requests or is in the past)")
        reject_swap_pending(data.status)

        if data.startTime is not None:
            validate_future_start(data.startTime)
        validate_time_range(data.startTime or event.start_time, data.endTime or event.end_time)

        if data.status is not None and self.swap_repo.has_pending_for_event(self.db, event.id):
            raise LockedError("Cannot change status of events with pending swap requests")

        return self._write_unlocked(
            event,
            "Event cannot be modified (has pending swap requests or is in the past)",
            now=utcnow(),
            title=data.title,
            start_time=data.startTime,
            end_time=data.endTime,
            status=data.status,
        )

    def update_status(self, event_id: str, data: EventStatusUpdate, user: User) -> Event:
        """Toggle BUSY <-> SWAPPABLE"""
        event = self.get_event(event_id, user, for_update=True)

        reject_swap_pending(data.status)
        if event.status == EventStatus.SWAP_PENDING or self.swap_repo.has_pending_for_event(
            self.db, event.id
        ):
            raise LockedError("Cannot change status of events with pending swap requests")

        event = self._write_unlocked(
            event, "Cannot change status of events with pending swap requests", status=data.status
        )
        logger.info(f"Event {event.id} status set to {event.status.value}")
        return event

    def delete_event(self, event_id: str, user: User) -> dict:
        """
        Delete an event and every swap request referencing it, atomically.

        A deleted request that was still PENDING releases the other slot
        back to SWAPPABLE so it does not stay frozen.
        """
        event = self.get_event(event_id, user, for_update=True)

        try:
            requests = self.swap_repo.get_requests_for_event(self.db, event.id)
            for swap_request in requests:
                if swap_request.status != SwapStatus.PENDING:
                    continue
                other_id = (
                    swap_request.target_slot_id
                    if swap_request.requester_slot_id == event.id
                    else swap_request.requester_slot_id
                )
                self.repo.claim_status(
                    self.db, other_id, EventStatus.SWAP_PENDING, EventStatus.SWAPPABLE
                )

            removed = self.swap_repo.delete_requests(self.db, requests)
            self.db.flush()
            self.repo.delete_event(self.db, event)
            self.db.commit()
        except AppError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete event {event_id}: {e}")
            raise TransactionFailure("Failed to delete event") from e

        logger.info(f"Deleted event {event_id} and {removed} related swap request(s)")
        return {"deletedSwapRequests": removed}

    def _write_unlocked(self, event: Event, locked_message: str, now=None, **updates) -> Event:
        """Commit updates only if the row is still unlocked when the UPDATE runs"""
        try:
            if not self.repo.update_if_unlocked(self.db, event.id, now=now, **updates):
                raise LockedError(locked_message)
            self.db.commit()
        except AppError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError(
                "End time must be after start time",
                details={"endTime": "End time must be after start time"},
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update event {event.id}: {e}")
            raise TransactionFailure("Failed to update event") from e

        self.db.refresh(event)
        return event
