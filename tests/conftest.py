"""Shared fixtures: in-memory database, fixed clock, seeded catalogue and users"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECURITY_HEADERS_ENABLED", "true")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from wellness_portal.auth import CurrentSession, get_current_session, get_verified_claims  # noqa: E402
from wellness_portal.database import Base, get_db  # noqa: E402
from wellness_portal.firebase_accounts import AuthAccount, get_account_provider  # noqa: E402
from wellness_portal.models import Appointment, Centre, Service, User  # noqa: E402
from wellness_portal.rate_limiter import (  # noqa: E402
    reset_counters,
    signup_lookup_rate_limit,
    signup_rate_limit,
)
from wellness_portal.shared.clock import get_clock  # noqa: E402

# Monday 2 June 2025, 08:00 in Johannesburg
FIXED_NOW = datetime(2025, 6, 2, 6, 0, tzinfo=timezone.utc)


def fixed_clock():
    return FIXED_NOW


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def centre(db):
    centre = Centre(id="centre-sandton", name="Sandton Centre", timezone="Africa/Johannesburg", services=[])
    db.add(centre)
    db.commit()
    return centre


@pytest.fixture
def other_centre(db):
    centre = Centre(id="centre-durban", name="Durban Centre", timezone="Africa/Johannesburg", services=[])
    db.add(centre)
    db.commit()
    return centre


@pytest.fixture
def service(db, centre):
    service = Service(
        id="svc-consult",
        name="Initial Consultation",
        duration=60,
        price=85000,
        available_at_centres=[centre.id],
    )
    centre.services = [service.id]
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def staff_user(db, centre):
    user = User(
        id="staff-1",
        email="thandi@wellness.example.com",
        first_name="Thandi",
        last_name="Mokoena",
        role="staff",
        centre_ids=[centre.id],
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def client_user(db):
    user = User(id="client-1", email="jane@example.com", first_name="Jane", last_name="Smith", role="client")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin_user(db):
    user = User(id="admin-1", email="admin@wellness.example.com", first_name="Ada", last_name="Admin", role="admin")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def make_appointment(db, centre, service, staff_user, client_user):
    """Factory for appointments starting at a given offset from FIXED_NOW"""

    def _make(start_offset: timedelta = timedelta(days=3), status: str = "scheduled", **overrides):
        start = FIXED_NOW + start_offset
        data = dict(
            client_id=client_user.id,
            client_name=client_user.full_name,
            client_email=client_user.email,
            staff_id=staff_user.id,
            staff_name=staff_user.full_name,
            centre_id=centre.id,
            centre_name=centre.name,
            service_id=service.id,
            service_name=service.name,
            start_time=start,
            end_time=start + timedelta(minutes=service.duration),
            duration=service.duration,
            price=service.price,
            status=status,
            reschedule_history=[],
        )
        data.update(overrides)
        appointment = Appointment(**data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make


class FakeAccountProvider:
    """Stands in for the Identity Toolkit; records calls and can be told to fail"""

    def __init__(self):
        self.calls = []
        self.error = None

    async def create_account(self, email, password, display_name):
        self.calls.append((email, display_name))
        if self.error:
            raise self.error
        return AuthAccount(uid=f"uid-{len(self.calls)}", email=email, id_token="token")


@pytest.fixture
def account_provider():
    return FakeAccountProvider()


@pytest.fixture
def session_holder():
    """Mutable slot for the session the API test client authenticates as"""
    return {"session": None, "claims": None}


@pytest.fixture
def api(db, session_holder, account_provider):
    from wellness_portal.main import app

    def override_get_db():
        yield db

    def override_session():
        if session_holder["session"] is None:
            from fastapi import HTTPException

            raise HTTPException(status_code=401, detail="Not authenticated")
        return session_holder["session"]

    def override_claims():
        if session_holder["claims"] is None:
            from fastapi import HTTPException

            raise HTTPException(status_code=401, detail="Not authenticated")
        return session_holder["claims"]

    async def no_limit():
        return None

    reset_counters()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    app.dependency_overrides[get_current_session] = override_session
    app.dependency_overrides[get_verified_claims] = override_claims
    app.dependency_overrides[get_account_provider] = lambda: account_provider
    app.dependency_overrides[signup_lookup_rate_limit] = no_limit
    app.dependency_overrides[signup_rate_limit] = no_limit

    client = TestClient(app)
    try:
        yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def login(session_holder):
    """Authenticate the API test client as a user"""

    def _login(user):
        session_holder["session"] = CurrentSession.from_user(user)

    return _login


@pytest.fixture
def sign_in_token(session_holder):
    """Present verified token claims for an account that may have no user row yet"""

    def _sign_in(uid, email):
        session_holder["claims"] = {"sub": uid, "uid": uid, "email": email}

    return _sign_in
