"""
Doctor service for schedule configuration.

Reads and validates the weekly availability template and slot duration
stored on the doctor profile.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from dental_booking.core.config import DEFAULT_SLOT_DURATION_MINUTES
from dental_booking.core.exceptions import ConfigurationError, DoctorNotFoundError
from dental_booking.models import Doctor
from dental_booking.shared_types.availability import WeeklyAvailabilityTemplate, leave_records_from_raw

logger = logging.getLogger(__name__)


class DoctorService:
    """Service class for doctor profile and schedule operations."""

    @staticmethod
    def get_doctor(db: Session, doctor_id: int) -> Doctor:
        """
        Get doctor by ID.

        Raises:
            DoctorNotFoundError: If the doctor does not exist
        """
        doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if not doctor:
            raise DoctorNotFoundError(f"Doctor {doctor_id} not found")
        return doctor

    @staticmethod
    def get_template(doctor: Doctor) -> WeeklyAvailabilityTemplate:
        """
        Parse the doctor's stored availability into a template.

        Raises:
            ConfigurationError: If the stored availability is malformed
        """
        try:
            return WeeklyAvailabilityTemplate.from_raw(doctor.availability)
        except ConfigurationError:
            logger.error(f"Doctor {doctor.id} has a malformed availability template")
            raise

    @staticmethod
    def create_doctor(
        db: Session,
        full_name: str,
        clinic_id: Optional[int] = None,
        availability: Optional[Any] = None,
        slot_duration_minutes: Optional[int] = None
    ) -> Doctor:
        """
        Create a doctor profile.

        Without an explicit template the default clinic hours are applied.

        Raises:
            ConfigurationError: If the template or slot duration is invalid
        """
        template = (
            WeeklyAvailabilityTemplate.from_raw(availability)
            if availability is not None else WeeklyAvailabilityTemplate.default()
        )
        duration = DoctorService._validate_duration(
            slot_duration_minutes if slot_duration_minutes is not None else DEFAULT_SLOT_DURATION_MINUTES
        )

        doctor = Doctor(
            full_name=full_name,
            clinic_id=clinic_id,
            availability=template.to_list(),
            leave=[],
            slot_duration_minutes=duration,
            is_active=True,
        )
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        logger.info(f"Created doctor {doctor.id} ({full_name})")
        return doctor

    @staticmethod
    def update_schedule(
        db: Session,
        doctor_id: int,
        availability: Optional[Any] = None,
        slot_duration_minutes: Optional[int] = None,
        leave: Optional[List[Any]] = None
    ) -> Doctor:
        """
        Replace parts of a doctor's schedule configuration.

        Each argument left as None is kept unchanged. The template is stored in
        its normalized list shape.

        Args:
            db: Database session
            doctor_id: Doctor ID
            availability: New weekly template (list or dict shape)
            slot_duration_minutes: New slot duration
            leave: New profile-embedded single-day leave entries

        Returns:
            Updated Doctor

        Raises:
            DoctorNotFoundError: If the doctor does not exist
            ConfigurationError: If the template or slot duration is invalid
            ValueError: If a leave entry has an unparsable date
        """
        doctor = DoctorService.get_doctor(db, doctor_id)

        # Validate everything before touching the profile
        new_availability = (
            WeeklyAvailabilityTemplate.from_raw(availability).to_list()
            if availability is not None else None
        )
        new_duration = (
            DoctorService._validate_duration(slot_duration_minutes)
            if slot_duration_minutes is not None else None
        )
        new_leave = (
            [
                {key: value for key, value in record.to_dict().items() if value is not None}
                for record in leave_records_from_raw(leave)
            ]
            if leave is not None else None
        )

        if new_availability is not None:
            doctor.availability = new_availability
        if new_duration is not None:
            doctor.slot_duration_minutes = new_duration
        if new_leave is not None:
            doctor.leave = new_leave

        db.commit()
        db.refresh(doctor)
        logger.info(f"Updated schedule for doctor {doctor_id}")
        return doctor

    @staticmethod
    def _validate_duration(slot_duration_minutes: int) -> int:
        # Import here to avoid circular import
        from dental_booking.services.availability_service import AvailabilityService
        return AvailabilityService.validate_slot_duration(slot_duration_minutes)
