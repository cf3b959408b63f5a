"""Shared fixtures: in-memory database, pinned clock, and a customer/valet/vehicle trio."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from valet_app.database import Base
from valet_app.models.user import User
from valet_app.models.vehicle import Vehicle
from valet_app.models.parking_session import ParkingSession, SessionStatus, TERMINAL_STATUSES
from valet_app.utils.auth_context import AuthContext
from valet_app.utils.identifiers import new_id
import valet_app.models  # noqa


class FakeClock:
    def __init__(self, start=datetime(2026, 3, 1, 10, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


def _add_user(db, phone, role, name, venue_name=None):
    user = User(id=new_id(), phone=phone, name=name, role=role,
                venue_name=venue_name, created_at=datetime(2026, 1, 1))
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def customer(db):
    return _add_user(db, "+919900000001", "customer", "Asha")


@pytest.fixture
def other_customer(db):
    return _add_user(db, "+919900000002", "customer", "Ravi")


@pytest.fixture
def valet(db):
    return _add_user(db, "+918800000001", "valet", "Vikram", venue_name="Grand Hotel")


@pytest.fixture
def customer_ctx(customer):
    return AuthContext(user_id=customer.id, role="customer", phone=customer.phone)


@pytest.fixture
def other_customer_ctx(other_customer):
    return AuthContext(user_id=other_customer.id, role="customer", phone=other_customer.phone)


@pytest.fixture
def valet_ctx(valet):
    return AuthContext(user_id=valet.id, role="valet", phone=valet.phone)


@pytest.fixture
def make_vehicle(db, customer):
    def _make(registration="KA01AB1234", owner=None):
        vehicle = Vehicle(
            id=new_id(), owner_id=(owner or customer).id, registration_number=registration,
            make="Honda", model="City", color="Grey", vehicle_type="car",
            photos=[], created_at=datetime(2026, 1, 2),
        )
        db.add(vehicle)
        db.commit()
        return vehicle
    return _make


@pytest.fixture
def vehicle(make_vehicle):
    return make_vehicle()


@pytest.fixture
def make_session(db, customer, valet, make_vehicle):
    """Insert a session directly in a given status, bypassing the lifecycle engine."""
    counter = {"n": 0}

    def _make(status=SessionStatus.PENDING, vehicle=None, parked_at=None, **fields):
        counter["n"] += 1
        vehicle = vehicle or make_vehicle(registration=f"TEST{counter['n']:04d}")
        session = ParkingSession(
            id=new_id(),
            ticket_number=f"20260301-{counter['n']}",
            vehicle_id=vehicle.id,
            customer_id=fields.pop("customer_id", customer.id),
            valet_id=fields.pop("valet_id", valet.id),
            venue_name="Grand Hotel",
            status=status,
            active_vehicle_id=fields.pop(
                "active_vehicle_id", None if status in TERMINAL_STATUSES else vehicle.id
            ),
            parked_at=parked_at or datetime(2026, 3, 1, 9, 0) + timedelta(minutes=counter["n"]),
            **fields,
        )
        db.add(session)
        db.commit()
        return session
    return _make
