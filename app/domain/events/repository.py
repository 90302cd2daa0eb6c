"""Event repository - Database operations for events"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Event, EventStatus, utcnow

UNLOCKED_STATUSES = (EventStatus.BUSY, EventStatus.SWAPPABLE)


class EventRepository:
    """Repository for event database operations"""

    @staticmethod
    def get_event_by_id(db: Session, event_id: str, for_update: bool = False) -> Optional[Event]:
        """Get an event by ID, optionally locking the row for the current transaction"""
        query = db.query(Event).filter(Event.id == event_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    @staticmethod
    def get_events_for_user(db: Session, user_id: str) -> list[Event]:
        """Get all events owned by a user, earliest first"""
        return (
            db.query(Event)
            .filter(Event.user_id == user_id)
            .order_by(Event.start_time.asc(), Event.id.asc())
            .all()
        )

    @staticmethod
    def get_swappable_events(db: Session, exclude_user_id: str) -> list[Event]:
        """Marketplace listing: other users' SWAPPABLE events with owners loaded"""
        return (
            db.query(Event)
            .options(joinedload(Event.owner))
            .filter(Event.user_id != exclude_user_id, Event.status == EventStatus.SWAPPABLE)
            .order_by(Event.start_time.asc(), Event.id.asc())
            .all()
        )

    @staticmethod
    def create_event(db: Session, user_id: str, **event_data) -> Event:
        """Create a new event"""
        event = Event(user_id=user_id, **event_data)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def update_if_unlocked(db: Session, event_id: str, now: Optional[datetime] = None, **updates) -> bool:
        """
        Write the provided fields only while the row is BUSY or SWAPPABLE and,
        when now is given, has not started yet.
        Returns False when the guard no longer holds; the caller commits.
        """
        values = {getattr(Event, key): value for key, value in updates.items() if value is not None}
        values[Event.updated_at] = utcnow()

        query = db.query(Event).filter(Event.id == event_id, Event.status.in_(UNLOCKED_STATUSES))
        if now is not None:
            query = query.filter(Event.start_time > now)
        return query.update(values, synchronize_session=False) == 1

    @staticmethod
    def claim_status(db: Session, event_id: str, expected: EventStatus, new_status: EventStatus) -> bool:
        """
        Compare-and-set an event's status inside the caller's transaction.
        Returns False when the row no longer holds the expected status.
        """
        updated = (
            db.query(Event)
            .filter(Event.id == event_id, Event.status == expected)
            .update({Event.status: new_status, Event.updated_at: utcnow()}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def delete_event(db: Session, event: Event) -> None:
        """Stage an event for deletion; the caller commits"""
        db.delete(event)
