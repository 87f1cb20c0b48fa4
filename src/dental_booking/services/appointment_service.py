"""
Appointment service for booked-slot lookup and the booking write path.

This module contains the appointment logic shared by the clinic booking,
patient portal and follow-up call sites: building the booked slot index
and writing a booking under the database's per-slot uniqueness constraint.
"""

import logging
from datetime import datetime, date as date_type
from typing import Any, Iterable, Mapping, Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dental_booking.core.constants import (
    APPOINTMENT_STATUS_CANCELLED, APPOINTMENT_STATUS_CONFIRMED, APPOINTMENT_STATUS_SCHEDULED,
    APPOINTMENT_STATUSES, APPOINTMENT_TYPES, BOOKING_SOURCES, BOOKING_SOURCE_CLINIC,
    BOOKING_SOURCE_PATIENT_PORTAL, DUPLICATE_APPOINTMENT_MESSAGE, SLOT_CONFLICT_MESSAGE,
)
from dental_booking.core.exceptions import (
    AppointmentNotFoundError, DoctorOnLeaveError, DuplicateAppointmentError, SlotConflictError,
    SlotNotOfferedError,
)
from dental_booking.models import Appointment, Doctor
from dental_booking.shared_types.availability import SlotStatus
from dental_booking.utils.datetime_utils import normalize_time_string

logger = logging.getLogger(__name__)


def _row_field(row: Any, *names: str) -> Any:
    if isinstance(row, Mapping):
        for name in names:
            if row.get(name) is not None:
                return row[name]
        return None
    for name in names:
        value = getattr(row, name, None)
        if value is not None:
            return value
    return None


class AppointmentService:
    """
    Service class for appointment operations.

    Contains business logic for appointment management that is shared
    across different API endpoints.
    """

    @staticmethod
    def build_booked_slot_index(rows: Iterable[Any]) -> Set[str]:
        """
        Build the set of taken start times from booking rows.

        Rows may be Appointment instances, mappings using either
        ``appointment_time``/``time`` and ``status``, or bare time strings
        already filtered by the backend. Cancelled rows are excluded.
        Times are normalized to "HH:MM" so that comparison with enumerated
        slots is plain string equality.

        Args:
            rows: Booking rows for one doctor and date

        Returns:
            Set of canonical "HH:MM" strings

        Raises:
            ValueError: If a non-cancelled row has a missing or unparsable time
        """
        booked: Set[str] = set()
        for row in rows:
            if isinstance(row, str):
                row = {"appointment_time": row}
            if _row_field(row, "status") == APPOINTMENT_STATUS_CANCELLED:
                continue
            raw_time = _row_field(row, "appointment_time", "time")
            if raw_time is None:
                logger.error(f"Booking row without a time: {row!r}")
                raise ValueError("Booking row has no appointment time")
            try:
                booked.add(normalize_time_string(str(raw_time)))
            except ValueError:
                logger.error(f"Booking row with unparsable time {raw_time!r}")
                raise
        return booked

    @staticmethod
    def get_booked_slots(db: Session, doctor_id: int, target_date: date_type) -> Set[str]:
        """
        Query the booked slot index for a doctor on a date.

        Args:
            db: Database session
            doctor_id: Doctor ID
            target_date: Appointment date

        Returns:
            Set of canonical "HH:MM" strings held by non-cancelled bookings
        """
        rows = db.query(Appointment.appointment_time, Appointment.status).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == target_date,
            Appointment.status != APPOINTMENT_STATUS_CANCELLED
        ).all()
        return AppointmentService.build_booked_slot_index(
            {"appointment_time": row.appointment_time, "status": row.status} for row in rows
        )

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Appointment:
        """
        Get appointment by ID.

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
        """
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    @staticmethod
    def has_active_appointment_on_date(
        db: Session,
        patient_id: str,
        clinic_id: Optional[int],
        appointment_date: date_type
    ) -> bool:
        """
        Whether the patient holds a scheduled or confirmed appointment at the clinic on a date.

        Doctors without a clinic are grouped together.
        """
        clinic_filter = Doctor.clinic_id.is_(None) if clinic_id is None else Doctor.clinic_id == clinic_id
        existing = db.query(Appointment.id).join(Doctor, Appointment.doctor_id == Doctor.id).filter(
            Appointment.patient_id == patient_id,
            Appointment.appointment_date == appointment_date,
            Appointment.status.in_([APPOINTMENT_STATUS_SCHEDULED, APPOINTMENT_STATUS_CONFIRMED]),
            clinic_filter,
        ).first()
        return existing is not None

    @staticmethod
    def create_appointment(
        db: Session,
        doctor_id: int,
        appointment_date: date_type,
        appointment_time: str,
        patient_id: str,
        full_name: str,
        contact_number: Optional[str] = None,
        appointment_type: str = "in_person",
        source: str = BOOKING_SOURCE_CLINIC,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Appointment:
        """
        Book a slot for a patient.

        The time must be a free, upcoming slot of the doctor's composed day.
        This check narrows the window but does not close it: two requests can
        both pass it, and the unique index on (doctor, date, time) for
        non-cancelled rows decides the winner. The loser's IntegrityError is
        turned into a SlotConflictError carrying the re-read booked slots.

        Args:
            db: Database session
            doctor_id: Doctor ID
            appointment_date: Appointment date
            appointment_time: Start time, any accepted time format
            patient_id: Patient reference
            full_name: Patient display name
            contact_number: Optional contact number
            appointment_type: 'in_person' or 'video'
            source: Call site creating the booking
            notes: Optional notes
            now: Current time for the past-slot cutoff; defaults to the clinic clock

        Returns:
            The created Appointment

        Raises:
            DoctorNotFoundError: If the doctor does not exist
            DuplicateAppointmentError: If the patient already has an active
                appointment at this clinic on that date
            DoctorOnLeaveError: If the doctor is on leave that day
            SlotConflictError: If the slot is already booked or the write lost the race
            SlotNotOfferedError: If the time is not an offered, upcoming slot
            ValueError: If the time, type or source is invalid
        """
        # Import here to avoid circular import
        from dental_booking.services.availability_service import AvailabilityService
        from dental_booking.services.doctor_service import DoctorService

        if appointment_type not in APPOINTMENT_TYPES:
            raise ValueError(f"Invalid appointment type: {appointment_type}")
        if source not in BOOKING_SOURCES:
            raise ValueError(f"Invalid booking source: {source}")
        slot_time = normalize_time_string(appointment_time)

        doctor = DoctorService.get_doctor(db, doctor_id)
        if AppointmentService.has_active_appointment_on_date(db, patient_id, doctor.clinic_id, appointment_date):
            logger.warning(
                f"Booking rejected, patient {patient_id} already booked at clinic {doctor.clinic_id} "
                f"on {appointment_date}"
            )
            raise DuplicateAppointmentError(DUPLICATE_APPOINTMENT_MESSAGE)

        day = AvailabilityService.get_day_availability(db, doctor_id, appointment_date, now=now)
        if day.on_leave:
            raise DoctorOnLeaveError(day.leave_reason or "Doctor is on leave")

        slot = next((candidate for candidate in day.slots if candidate.time == slot_time), None)
        if slot is None or slot.status == SlotStatus.PAST:
            raise SlotNotOfferedError(
                f"{slot_time} on {appointment_date.isoformat()} is not an available slot"
            )
        if not slot.is_free:
            logger.warning(
                f"Booking rejected, slot already taken: doctor={doctor_id} "
                f"{appointment_date} {slot_time}"
            )
            raise SlotConflictError(
                SLOT_CONFLICT_MESSAGE,
                booked_slots=AppointmentService.get_booked_slots(db, doctor_id, appointment_date)
            )

        appointment = Appointment(
            doctor_id=doctor_id,
            patient_id=patient_id,
            full_name=full_name,
            contact_number=contact_number,
            appointment_date=appointment_date,
            appointment_time=slot_time,
            appointment_type=appointment_type,
            source=source,
            provisional=source == BOOKING_SOURCE_PATIENT_PORTAL,
            status=APPOINTMENT_STATUS_SCHEDULED,
            notes=notes,
        )

        try:
            db.add(appointment)
            db.commit()
            db.refresh(appointment)
        except IntegrityError as e:
            logger.warning(f"Appointment booking conflict: {e}")
            db.rollback()
            raise SlotConflictError(
                SLOT_CONFLICT_MESSAGE,
                booked_slots=AppointmentService.get_booked_slots(db, doctor_id, appointment_date)
            ) from e

        logger.info(
            f"Created appointment {appointment.id} for doctor {doctor_id} "
            f"on {appointment_date} at {slot_time} (source={source})"
        )
        return appointment

    @staticmethod
    def update_status(db: Session, appointment_id: int, new_status: str) -> Appointment:
        """
        Change an appointment's status.

        Cancelling releases the slot: cancelled rows are outside the partial
        unique index and excluded from the booked slot index. Reviving a
        cancelled appointment re-claims its slot and can therefore conflict.

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
            SlotConflictError: If reviving the appointment collides with a newer booking
            ValueError: If the status is unknown
        """
        if new_status not in APPOINTMENT_STATUSES:
            raise ValueError(f"Invalid appointment status: {new_status}")

        appointment = AppointmentService.get_appointment(db, appointment_id)
        old_status = appointment.status
        appointment.status = new_status
        try:
            db.commit()
            db.refresh(appointment)
        except IntegrityError as e:
            logger.warning(f"Status change for appointment {appointment_id} conflicts with another booking: {e}")
            db.rollback()
            raise SlotConflictError(
                SLOT_CONFLICT_MESSAGE,
                booked_slots=AppointmentService.get_booked_slots(
                    db, appointment.doctor_id, appointment.appointment_date
                )
            ) from e

        logger.info(f"Appointment {appointment_id} status changed: {old_status} -> {new_status}")
        return appointment
