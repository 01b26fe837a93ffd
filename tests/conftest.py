"""Shared fixtures for the trip_booking test suite.

Every test gets its own SQLite file under ``tmp_path``; the app's ``get_db``
dependency and the status scheduler are both bound to it. The lifespan is
never entered, so the background job runner stays off and tests drive
``run_pending`` themselves.
"""

from __future__ import annotations

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from trip_booking import models
from trip_booking.auth.permissions import PermissionFlag, ALL_PERMISSIONS
from trip_booking.auth.utils import create_access_token
from trip_booking.database import Base, build_engine, get_db
from trip_booking.main import create_app
from trip_booking.scheduler import StatusScheduler
from trip_booking.timeutils import utcnow
from trip_booking.trips.lifecycle import register_status_jobs


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'trips.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def scheduler(session_factory):
    scheduler = StatusScheduler(session_factory)
    register_status_jobs(scheduler)
    return scheduler


@pytest.fixture
def app(session_factory):
    app = create_app(session_factory)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


def _add_user(db, name, email, flags):
    # Password hashes are not checked outside the auth tests
    user = models.User(name=name, email=email, password="not-a-hash", permission_flags=int(flags))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db):
    return _add_user(db, "Admin", "admin@example.com", ALL_PERMISSIONS)


@pytest.fixture
def guide(db):
    return _add_user(db, "Guide", "guide@example.com", PermissionFlag.TRIP_GUIDE)


@pytest.fixture
def traveller(db):
    return _add_user(db, "Traveller", "traveller@example.com", PermissionFlag.USER)


@pytest.fixture
def other_traveller(db):
    return _add_user(db, "Other", "other@example.com", PermissionFlag.USER)


@pytest.fixture
def cities(db):
    rabat = models.City(city_name="Rabat")
    fes = models.City(city_name="Fes")
    db.add_all([rabat, fes])
    db.commit()
    return rabat, fes


@pytest.fixture
def bus(db):
    bus = models.Bus(bus_model="Volvo 9700", seats=20, bus_type="coach")
    db.add(bus)
    db.commit()
    db.refresh(bus)
    return bus


@pytest.fixture
def trip_payload(cities, bus):
    """Valid creation body for a trip departing tomorrow and lasting 8 hours"""
    departure = (utcnow() + timedelta(days=1)).replace(microsecond=0)
    return {
        "departure_city_id": cities[0].id,
        "arrival_city_id": cities[1].id,
        "departure_time": departure,
        "arrival_time": departure + timedelta(hours=8),
        "price": Decimal("120.50"),
        "bus_id": bus.id,
    }


def auth_headers(user) -> dict:
    token = create_access_token({"sub": str(user.id), "permission_flags": user.permission_flags})
    return {"Authorization": f"Bearer {token}"}


def as_json(payload: dict) -> dict:
    """Render a trip payload for an HTTP body"""
    body = dict(payload)
    for key in ("departure_time", "arrival_time"):
        if key in body:
            body[key] = body[key].isoformat()
    if "price" in body:
        body["price"] = str(body["price"])
    return body
