"""Swap request repository - Database operations for swap requests"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session, joinedload

from ...models import SwapRequest, SwapStatus


class SwapRequestRepository:
    """Repository for swap request database operations"""

    @staticmethod
    def _populated(db: Session) -> Query:
        return db.query(SwapRequest).options(
            joinedload(SwapRequest.requester),
            joinedload(SwapRequest.target_user),
            joinedload(SwapRequest.requester_slot),
            joinedload(SwapRequest.target_slot),
        )

    @staticmethod
    def get_request_by_id(
        db: Session, request_id: str, for_update: bool = False
    ) -> Optional[SwapRequest]:
        """Get a swap request by ID, optionally locking the row"""
        query = db.query(SwapRequest).filter(SwapRequest.id == request_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    @classmethod
    def get_populated_request(cls, db: Session, request_id: str) -> Optional[SwapRequest]:
        """Get a swap request with both users and both events loaded"""
        return cls._populated(db).filter(SwapRequest.id == request_id).first()

    @staticmethod
    def find_pending_for_target(db: Session, target_slot_id: str) -> Optional[SwapRequest]:
        return (
            db.query(SwapRequest)
            .filter(
                SwapRequest.target_slot_id == target_slot_id,
                SwapRequest.status == SwapStatus.PENDING,
            )
            .first()
        )

    @staticmethod
    def find_pending_duplicate(
        db: Session, requester_user_id: str, target_slot_id: str
    ) -> Optional[SwapRequest]:
        """A PENDING request from this requester for this target slot"""
        return (
            db.query(SwapRequest)
            .filter(
                SwapRequest.requester_user_id == requester_user_id,
                SwapRequest.target_slot_id == target_slot_id,
                SwapRequest.status == SwapStatus.PENDING,
            )
            .first()
        )

    @staticmethod
    def has_pending_for_event(db: Session, event_id: str) -> bool:
        """True when the event is either endpoint of a PENDING request"""
        return (
            db.query(SwapRequest.id)
            .filter(
                or_(SwapRequest.requester_slot_id == event_id, SwapRequest.target_slot_id == event_id),
                SwapRequest.status == SwapStatus.PENDING,
            )
            .first()
            is not None
        )

    @staticmethod
    def get_requests_for_event(db: Session, event_id: str) -> list[SwapRequest]:
        """Every request referencing the event on either side, any status"""
        return (
            db.query(SwapRequest)
            .filter(or_(SwapRequest.requester_slot_id == event_id, SwapRequest.target_slot_id == event_id))
            .all()
        )

    @classmethod
    def get_incoming_requests(
        cls, db: Session, user_id: str, status: Optional[SwapStatus] = None
    ) -> list[SwapRequest]:
        """Requests where the user is the target, newest first"""
        query = cls._populated(db).filter(SwapRequest.target_user_id == user_id)
        if status:
            query = query.filter(SwapRequest.status == status)
        return query.order_by(SwapRequest.created_at.desc()).all()

    @classmethod
    def get_outgoing_requests(
        cls, db: Session, user_id: str, status: Optional[SwapStatus] = None
    ) -> list[SwapRequest]:
        """Requests the user sent, newest first"""
        query = cls._populated(db).filter(SwapRequest.requester_user_id == user_id)
        if status:
            query = query.filter(SwapRequest.status == status)
        return query.order_by(SwapRequest.created_at.desc()).all()

    @staticmethod
    def add_request(db: Session, **request_data) -> SwapRequest:
        """Stage a new swap request and flush so constraint violations surface now"""
        swap_request = SwapRequest(**request_data)
        db.add(swap_request)
        db.flush()
        return swap_request

    @staticmethod
    def delete_requests(db: Session, requests: list[SwapRequest]) -> int:
        """Stage requests for deletion; the caller commits"""
        for swap_request in requests:
            db.delete(swap_request)
        return len(requests)
