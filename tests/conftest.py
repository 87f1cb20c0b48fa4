"""
Test configuration and shared fixtures for the dental booking test suite.

Uses an in-memory SQLite database per test; tables are created from the
SQLAlchemy metadata, including the partial unique index on booked slots.
"""

import os

# Must be set before the application modules read their configuration
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite://")

import pytest
from datetime import date, datetime, timedelta
from typing import Any, Dict, Generator, List, Optional

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dental_booking.core.database import Base, get_db
# Import all models to ensure they're registered with SQLAlchemy before any relationships are resolved
from dental_booking.models import Appointment, Doctor, DoctorLeave
from dental_booking.utils.datetime_utils import clinic_now, weekday_name


@pytest.fixture(scope="function")
def db_engine():
    """
    Create a fresh in-memory database for one test.

    StaticPool keeps the single in-memory connection alive across sessions
    and the TestClient's worker thread.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session bound to the test database."""
    TestingSession = sessionmaker(bind=db_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = TestingSession()

    yield session

    session.close()


@pytest.fixture
def client(db_session) -> Generator[TestClient, None, None]:
    """TestClient with the database dependency pointed at the test session."""
    from dental_booking.main import app

    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            # Don't close the session as it's managed by the test fixture
            pass

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


# Helper functions

def weekly_availability(
    morning: Optional[tuple] = ("09:00", "13:00"),
    evening: Optional[tuple] = ("17:00", "21:00"),
    days_off: tuple = ("Sunday",),
) -> List[Dict[str, Any]]:
    """Build a stored availability list; a period given as None is off."""
    def period(hours: Optional[tuple]) -> Dict[str, Any]:
        if hours is None:
            return {"start": None, "end": None, "is_off": True}
        return {"start": hours[0], "end": hours[1], "is_off": False}

    days = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
    return [
        {
            "day": day,
            "morning": period(None if day in days_off else morning),
            "evening": period(None if day in days_off else evening),
        }
        for day in days
    ]


def upcoming_date(day: str = "Monday", min_days_ahead: int = 2) -> date:
    """First date with the given weekday at least ``min_days_ahead`` days after clinic today."""
    candidate = clinic_now().date() + timedelta(days=min_days_ahead)
    while weekday_name(candidate) != day:
        candidate += timedelta(days=1)
    return candidate


def create_doctor(
    db_session: Session,
    full_name: str = "Dr. Test",
    availability: Optional[List[Dict[str, Any]]] = None,
    slot_duration_minutes: int = 30,
    leave: Optional[List[Dict[str, Any]]] = None,
    clinic_id: Optional[int] = None,
) -> Doctor:
    """Create a doctor directly in the database."""
    doctor = Doctor(
        full_name=full_name,
        availability=availability if availability is not None else weekly_availability(),
        slot_duration_minutes=slot_duration_minutes,
        leave=leave or [],
        clinic_id=clinic_id,
        is_active=True,
    )
    db_session.add(doctor)
    db_session.commit()
    db_session.refresh(doctor)
    return doctor


def create_appointment(
    db_session: Session,
    doctor: Doctor,
    appointment_date: date,
    appointment_time: str,
    status: str = "scheduled",
    patient_id: str = "P-1",
) -> Appointment:
    """Insert an appointment row directly, bypassing the booking checks."""
    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=patient_id,
        full_name="Test Patient",
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        status=status,
    )
    db_session.add(appointment)
    db_session.commit()
    db_session.refresh(appointment)
    return appointment


def create_leave(
    db_session: Session,
    doctor: Doctor,
    start: date,
    end: date,
    reason: Optional[str] = None,
    is_active: bool = True,
) -> DoctorLeave:
    """Insert a range leave record directly."""
    leave = DoctorLeave(
        doctor_id=doctor.id,
        leave_start_date=start,
        leave_end_date=end,
        reason=reason,
        is_active=is_active,
    )
    db_session.add(leave)
    db_session.commit()
    db_session.refresh(leave)
    return leave


@pytest.fixture
def sample_patient_payload() -> Dict[str, Any]:
    """Sample patient fields for booking requests."""
    return {
        "patient_id": "P-1001",
        "full_name": "Test Patient",
        "contact_number": "+919800000000",
    }


@pytest.fixture
def fixed_now() -> datetime:
    """A clinic-local Monday morning used by composition tests."""
    return datetime(2025, 7, 21, 9, 20)
