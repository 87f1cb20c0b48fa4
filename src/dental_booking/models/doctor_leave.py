"""
Doctor leave model for date-range unavailability.

A leave record overrides the weekly template for every date in its inclusive
range. Records are soft-deleted by clearing ``is_active``.
"""

from datetime import date as date_type, datetime
from typing import Optional

from sqlalchemy import String, Boolean, Date, TIMESTAMP, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dental_booking.core.constants import MAX_STRING_LENGTH
from dental_booking.core.database import Base


class DoctorLeave(Base):
    """Leave period for a doctor, inclusive on both ends."""

    __tablename__ = "doctor_leaves"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id", ondelete="CASCADE"))
    """Reference to the doctor on leave."""

    leave_start_date: Mapped[date_type] = mapped_column(Date)
    """First day of leave."""

    leave_end_date: Mapped[date_type] = mapped_column(Date)
    """Last day of leave (inclusive)."""

    reason: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Optional reason shown to staff and patients."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    """Inactive records are ignored by leave resolution."""

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    doctor = relationship("Doctor", back_populates="leaves")

    __table_args__ = (
        Index('idx_doctor_leaves_doctor_active', 'doctor_id', 'is_active'),
        Index('idx_doctor_leaves_dates', 'leave_start_date', 'leave_end_date'),
    )

    def to_record_dict(self) -> dict[str, object]:
        """Shape consumed by LeaveRecord.from_raw."""
        return {
            "id": self.id,
            "leave_start_date": self.leave_start_date,
            "leave_end_date": self.leave_end_date,
            "reason": self.reason,
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<DoctorLeave(id={self.id}, doctor_id={self.doctor_id}, {self.leave_start_date}..{self.leave_end_date}, active={self.is_active})>"
