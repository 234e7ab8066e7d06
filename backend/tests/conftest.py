from datetime import date, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from courtqueue.database import get_session, import_models
from courtqueue.main import app
from courtqueue.services import availability_service, court_service, queue_service
from courtqueue.services.queue_service import Guest
from courtqueue.utils import clock

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models imported before create_all() (see session_fixture)
# 4. Tables dropped after every test so each test starts empty
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

OWNER_ID = 100
PLAYER_ID = 200

# A Monday; booking tests pass it as "today"
TODAY = date(2026, 3, 2)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on freshly created tables"""
    import_models()
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Test client with the session dependency pointed at the test engine"""
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def other_session(session: Session):
    """A second, independent session on the same database"""
    with Session(test_engine) as second:
        yield second


@pytest.fixture
def court(session: Session):
    return court_service.create_court(
        session,
        owner_id=OWNER_ID,
        name="Court 1",
        hourly_rate=300,
        reservation_fee_percentage=20,
    )


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def open_all_week(session: Session, court):
    """08:00-22:00 on every day of the week"""
    for dow in range(7):
        availability_service.create_availability(session, court.id, dow, time(8, 0), time(22, 0))
    return court


@pytest.fixture
def queue_session(session: Session):
    return queue_service.create_session(session, OWNER_ID, TODAY, time(18, 0), time(22, 0))


@pytest.fixture
def queue_courts(session: Session):
    """Two playable courts owned by the queue session owner"""
    return [
        court_service.create_court(session, owner_id=OWNER_ID, name=f"Court {n}")
        for n in (1, 2)
    ]


@pytest.fixture
def add_guests(session: Session, queue_session):
    """Add guests with the given levels, in arrival order"""

    def _add(*levels):
        entries = []
        for index, level in enumerate(levels):
            entry = queue_service.add_entry(session, queue_session.id, Guest(name=f"Guest {index + 1}", level=level))
            entries.append(entry)
        return entries

    return _add


@pytest.fixture
def booking_day() -> date:
    """Tomorrow, inside the real booking window, for API-level tests"""
    return clock.today() + timedelta(days=1)
