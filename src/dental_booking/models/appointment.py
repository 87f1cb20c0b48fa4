"""
Appointment model representing a booked start time with a doctor.

The partial unique index on (doctor_id, appointment_date, appointment_time)
for non-cancelled rows is the only guard against double booking: there is no
reservation hold between showing a slot and writing the booking. The booking
path relies on the resulting IntegrityError to detect a lost race.
"""

from datetime import date as date_type, datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import String, Boolean, Date, TIMESTAMP, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dental_booking.core.constants import MAX_STRING_LENGTH, MAX_NOTES_LENGTH
from dental_booking.core.database import Base


def _new_uid() -> str:
    return uuid4().hex


class Appointment(Base):
    """
    Appointment entity.

    ``appointment_time`` is always stored in canonical "HH:MM" form so the
    uniqueness constraint compares like with like.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    appointment_uid: Mapped[str] = mapped_column(String(32), unique=True, default=_new_uid)
    """Public identifier returned to the web apps."""

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"))
    patient_id: Mapped[str] = mapped_column(String(64))
    """Patient reference; patients are owned by the patient records service."""

    full_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    contact_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    appointment_date: Mapped[date_type] = mapped_column(Date)
    appointment_time: Mapped[str] = mapped_column(String(5))
    """Start time in "HH:MM"."""

    appointment_type: Mapped[str] = mapped_column(String(20), default="in_person")
    """'in_person' or 'video'."""

    source: Mapped[str] = mapped_column(String(20), default="clinic")
    """Call site that created the booking: 'clinic', 'patient_portal' or 'follow_up'."""

    provisional: Mapped[bool] = mapped_column(Boolean, default=False)
    """True for patient-portal bookings awaiting clinic confirmation."""

    status: Mapped[str] = mapped_column(String(20), default="scheduled")
    """'scheduled', 'confirmed', 'cancelled', 'completed' or 'no-show'."""

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    doctor = relationship("Doctor", back_populates="appointments")

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'cancelled', 'completed', 'no-show')",
            name='check_valid_appointment_status'
        ),
        Index(
            'uq_appointment_doctor_slot',
            'doctor_id', 'appointment_date', 'appointment_time',
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
        Index('idx_appointments_doctor_date_status', 'doctor_id', 'appointment_date', 'status'),
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "appointment_uid": self.appointment_uid,
            "doctor_id": self.doctor_id,
            "patient_id": self.patient_id,
            "full_name": self.full_name,
            "contact_number": self.contact_number,
            "appointment_date": self.appointment_date.isoformat(),
            "appointment_time": self.appointment_time,
            "appointment_type": self.appointment_type,
            "source": self.source,
            "provisional": self.provisional,
            "status": self.status,
            "notes": self.notes,
        }

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, doctor_id={self.doctor_id}, {self.appointment_date} {self.appointment_time}, status={self.status})>"
