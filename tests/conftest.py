"""
Shared fixtures for the backend tests.

Every test runs against a fresh in-memory SQLite database shared through a
``StaticPool`` so that the FastAPI ``TestClient`` threads see the same data.
The client is created without entering its context manager, so the app's
lifespan (and the realtime registry) is not started.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import marketplace.models  # noqa: E402,F401
from marketplace.database import Base, get_db, new_id  # noqa: E402
from marketplace.main import app  # noqa: E402
from marketplace.models import Booking, Milestone, Profile, Service, Task  # noqa: E402
from marketplace.utils.security import hash_password, issue_token  # noqa: E402

PASSWORD = "Secret123!"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Profiles and auth headers
# ---------------------------------------------------------------------------


def _profile(db, username: str, role: str, full_name: str) -> Profile:
    profile = Profile(
        id=new_id(),
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(PASSWORD),
        full_name=full_name,
        role=role,
        is_active=True,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@pytest.fixture
def admin(db):
    return _profile(db, "admin", "admin", "Admin User")


@pytest.fixture
def provider(db):
    return _profile(db, "provider", "provider", "Provider User")


@pytest.fixture
def other_provider(db):
    return _profile(db, "provider2", "provider", "Second Provider")


@pytest.fixture
def customer(db):
    return _profile(db, "client", "client", "Client User")


def auth_headers(profile: Profile) -> dict[str, str]:
    token = issue_token(profile.id, profile.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def provider_headers(provider):
    return auth_headers(provider)


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def other_provider_headers(other_provider):
    return auth_headers(other_provider)


# ---------------------------------------------------------------------------
# Catalog and bookings
# ---------------------------------------------------------------------------


@pytest.fixture
def service(db, provider):
    service = Service(
        id=new_id(),
        provider_id=provider.id,
        title="Content package",
        description="Monthly content calendar and copywriting.",
        category="content_creation",
        status="active",
        approval_status="approved",
        base_price=Decimal("200.000"),
        currency="OMR",
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def booking(db, service, customer, provider):
    booking = Booking(
        id=new_id(),
        booking_number="BK-20261018-000001",
        title=service.title,
        client_id=customer.id,
        provider_id=provider.id,
        service_id=service.id,
        status="confirmed",
        project_progress=0,
        total_cost=Decimal("200.000"),
        currency="OMR",
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


@pytest.fixture
def make_milestone(db, booking):
    """Factory inserting a milestone on the ``booking`` fixture."""

    def _make(title="Phase", weight=1, status="pending", **kwargs) -> Milestone:
        milestone = Milestone(
            id=new_id(),
            booking_id=kwargs.pop("booking_id", booking.id),
            title=title,
            weight=weight,
            status=status,
            **kwargs,
        )
        db.add(milestone)
        db.commit()
        db.refresh(milestone)
        return milestone

    return _make


@pytest.fixture
def make_task(db):
    def _make(milestone, title="Task", status="pending", **kwargs) -> Task:
        task = Task(
            id=new_id(),
            milestone_id=milestone.id,
            title=title,
            status=status,
            progress_percentage=kwargs.pop("progress_percentage", 100 if status == "completed" else 0),
            **kwargs,
        )
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    return _make


@pytest.fixture
def now():
    return datetime(2026, 10, 18, 12, 0, 0)
