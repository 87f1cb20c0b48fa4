"""
Doctor profile model holding the scheduling configuration.

The weekly availability template and the profile-embedded single-day leave
entries are stored as JSON documents on the profile, the way the clinic
settings screens write them. Range leave lives in the doctor_leaves table.
"""

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import String, Integer, Boolean, TIMESTAMP, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dental_booking.core.constants import MAX_STRING_LENGTH
from dental_booking.core.database import Base


class Doctor(Base):
    """
    Doctor profile entity.

    Owns the weekly availability template, slot duration and single-day leave
    entries consumed by the availability engine. The engine only reads these;
    they are edited through the schedule and leave endpoints.
    """

    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the doctor."""

    clinic_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    """Clinic the doctor works at. Clinics themselves are managed elsewhere."""

    full_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name of the doctor."""

    availability: Mapped[Optional[List[Any]]] = mapped_column(JSON, nullable=True)
    """
    Weekly availability template in the stored list shape:
    [{"day": "Monday", "morning": {"start": "09:00", "end": "13:00", "is_off": false},
      "evening": {...}}, ...]
    """

    leave: Mapped[Optional[List[Any]]] = mapped_column(JSON, nullable=True)
    """Profile-embedded single-day leave entries: [{"day": "Thursday", "date": "2025-07-24", "reason": ...}]."""

    slot_duration_minutes: Mapped[int] = mapped_column(Integer, default=15)
    """Step between consecutive appointment start times."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    """Inactive doctors cannot be booked."""

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    # Relationships
    leaves = relationship("DoctorLeave", back_populates="doctor", cascade="all, delete-orphan")
    appointments = relationship("Appointment", back_populates="doctor")

    def __repr__(self) -> str:
        return f"<Doctor(id={self.id}, name={self.full_name}, slot={self.slot_duration_minutes}m)>"
