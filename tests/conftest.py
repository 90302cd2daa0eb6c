import itertools
import os
from datetime import timedelta

# Must be set before the app modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, build_engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Event, EventStatus, SwapRequest, SwapStatus, User, utcnow  # noqa: E402
from app.rate_limiter import reset_rate_limits  # noqa: E402
from app.security_utils import create_jwt_token, hash_password_bcrypt  # noqa: E402

TEST_PASSWORD = "Password1"


@pytest.fixture
def engine():
    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def clear_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    counter = itertools.count(1)

    def _make(name=None, email=None, password=TEST_PASSWORD):
        n = next(counter)
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@example.com",
            password_hash=hash_password_bcrypt(password),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_event(db_session):
    """Insert an event directly, bypassing the service's future-start rule"""

    def _make(owner, title="Team sync", starts_in=timedelta(days=1), duration=timedelta(hours=1),
              status=EventStatus.BUSY):
        start = utcnow() + starts_in
        event = Event(
            user_id=owner.id,
            title=title,
            start_time=start,
            end_time=start + duration,
            status=status,
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make


@pytest.fixture
def make_swap_request(db_session):
    """Insert a swap request row directly, without the engine's status side effects"""

    def _make(requester_slot, target_slot, status=SwapStatus.PENDING):
        swap_request = SwapRequest(
            requester_user_id=requester_slot.user_id,
            requester_slot_id=requester_slot.id,
            target_user_id=target_slot.user_id,
            target_slot_id=target_slot.id,
            status=status,
        )
        db_session.add(swap_request)
        db_session.commit()
        db_session.refresh(swap_request)
        return swap_request

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_jwt_token(user.id)}"}

    return _headers
