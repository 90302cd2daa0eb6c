#!/usr/bin/env python3
"""
Seed the marketplace with demo users and SWAPPABLE events
Usage: python seed_marketplace.py

Re-running replaces the previous demo accounts; other users are untouched.
"""

import random
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import or_  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from app.database import Base, SessionLocal, engine  # noqa: E402
from app.models import Event, EventStatus, SwapRequest, SwapStatus, User, utcnow  # noqa: E402
from app.security_utils import hash_password_bcrypt  # noqa: E402

SAMPLE_PASSWORD = "Password123"

SAMPLE_USERS = [
    ("Alice Johnson", "alice.johnson@example.com"),
    ("Bob Smith", "bob.smith@example.com"),
    ("Carol Davis", "carol.davis@example.com"),
    ("David Wilson", "david.wilson@example.com"),
    ("Emma Brown", "emma.brown@example.com"),
    ("Frank Miller", "frank.miller@example.com"),
]

# (title, duration in minutes)
SAMPLE_EVENTS = [
    ("Team Standup Meeting", 30),
    ("Client Presentation", 60),
    ("Code Review Session", 45),
    ("Product Planning Meeting", 90),
    ("Design Workshop", 120),
    ("Training Session", 60),
    ("Sprint Retrospective", 45),
    ("Architecture Discussion", 75),
    ("User Research Interview", 30),
    ("Marketing Strategy Meeting", 60),
    ("Technical Deep Dive", 90),
    ("Quarterly Business Review", 120),
    ("Customer Feedback Session", 45),
    ("Innovation Brainstorm", 60),
    ("Security Audit Meeting", 90),
]

MAX_PLACEMENT_ATTEMPTS = 10


def random_future_start(rng: random.Random, now: datetime) -> datetime:
    """A quarter-hour start between 9:00 and 16:45 within the next 30 days"""
    start = (now + timedelta(days=rng.randrange(30))).replace(
        hour=rng.randrange(9, 17), minute=rng.randrange(4) * 15, second=0, microsecond=0
    )
    if start <= now:
        start += timedelta(days=1)
    return start


def overlaps(start: datetime, end: datetime, taken: list[tuple[datetime, datetime]]) -> bool:
    return any(start < taken_end and end > taken_start for taken_start, taken_end in taken)


def clear_seed_data(db) -> int:
    """Remove demo users with their events and swap requests; returns users removed"""
    emails = [email for _, email in SAMPLE_USERS]
    user_ids = [user_id for (user_id,) in db.query(User.id).filter(User.email.in_(emails))]
    if not user_ids:
        return 0

    event_ids = {event_id for (event_id,) in db.query(Event.id).filter(Event.user_id.in_(user_ids))}
    touching = or_(SwapRequest.requester_user_id.in_(user_ids), SwapRequest.target_user_id.in_(user_ids))

    # Slots of other users paired with a demo slot must not stay frozen
    pending = db.query(SwapRequest).filter(touching, SwapRequest.status == SwapStatus.PENDING).all()
    released = {slot_id for r in pending for slot_id in (r.requester_slot_id, r.target_slot_id)} - event_ids
    if released:
        db.query(Event).filter(Event.id.in_(released), Event.status == EventStatus.SWAP_PENDING).update(
            {Event.status: EventStatus.SWAPPABLE, Event.updated_at: utcnow()}, synchronize_session=False
        )

    db.query(SwapRequest).filter(touching).delete(synchronize_session=False)
    db.query(Event).filter(Event.user_id.in_(user_ids)).delete(synchronize_session=False)
    db.query(User).filter(User.id.in_(user_ids)).delete(synchronize_session=False)
    return len(user_ids)


def seed_marketplace(db, rng: Optional[random.Random] = None, now: Optional[datetime] = None) -> dict:
    """
    Replace the demo accounts and give each 2-4 non-overlapping SWAPPABLE events.

    Everything is committed in one transaction.
    """
    rng = rng or random.Random()
    now = now or utcnow()

    removed = clear_seed_data(db)
    if removed:
        print(f"🧹 Cleared {removed} existing demo users")

    users = []
    for name, email in SAMPLE_USERS:
        user = User(name=name, email=email, password_hash=hash_password_bcrypt(SAMPLE_PASSWORD))
        db.add(user)
        users.append(user)
        print(f"👤 Created user: {name}")
    db.flush()

    event_count = 0
    for user in users:
        taken: list[tuple[datetime, datetime]] = []
        for _ in range(rng.randint(2, 4)):
            title, minutes = rng.choice(SAMPLE_EVENTS)

            for _attempt in range(MAX_PLACEMENT_ATTEMPTS):
                start = random_future_start(rng, now)
                end = start + timedelta(minutes=minutes)
                if not overlaps(start, end, taken):
                    break
            else:
                continue

            db.add(
                Event(user_id=user.id, title=title, start_time=start, end_time=end, status=EventStatus.SWAPPABLE)
            )
            taken.append((start, end))
            event_count += 1
            print(f'📅 Created event: "{title}" for {user.name}')

    db.commit()
    return {"users": len(users), "events": event_count}


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        print("🌱 Starting marketplace seeding...\n")
        summary = seed_marketplace(db)
    except SQLAlchemyError as e:
        db.rollback()
        print(f"❌ Seeding failed: {e}")
        sys.exit(1)
    finally:
        db.close()

    print("\n🎉 Marketplace seeding completed!")
    print(f"👥 Created {summary['users']} users")
    print(f"📅 Created {summary['events']} events")
    print("\n📋 Sample login credentials:")
    for index, (_, email) in enumerate(SAMPLE_USERS, 1):
        print(f"   {index}. {email} / {SAMPLE_PASSWORD}")


if __name__ == "__main__":
    main()
