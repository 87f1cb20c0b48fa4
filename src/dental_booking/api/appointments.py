"""
Appointment API endpoints.

Provides:
- Booked slots of a doctor on a date
- Composed day availability
- Booking writes with a structured conflict response
- Appointment status changes (cancellation frees the slot)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dental_booking.api.responses import (
    AppointmentResponse, BookedSlotsResponse, DayAvailabilityResponse, SlotResponse,
)
from dental_booking.core.constants import (
    BOOKING_SOURCE_CLINIC, DOCTOR_ON_LEAVE_CODE, DUPLICATE_APPOINTMENT_ON_DATE_CODE,
    SLOT_ALREADY_BOOKED_CODE, SLOT_NOT_OFFERED_CODE,
)
from dental_booking.core.database import get_db
from dental_booking.core.exceptions import (
    AppointmentNotFoundError, ConfigurationError, DoctorNotFoundError, DoctorOnLeaveError,
    DuplicateAppointmentError, SlotConflictError, SlotNotOfferedError,
)
from dental_booking.models import Appointment
from dental_booking.services import AppointmentService, AvailabilityService
from dental_booking.shared_types.availability import DayAvailability
from dental_booking.utils.datetime_utils import parse_date_string

logger = logging.getLogger(__name__)

router = APIRouter()


# Request Models

class AppointmentCreateRequest(BaseModel):
    """Request model for booking a slot."""
    doctor_id: int
    appointment_date: str  # Format: "YYYY-MM-DD"
    appointment_time: str  # Format: "HH:MM"
    patient_id: str
    full_name: str
    contact_number: Optional[str] = None
    appointment_type: str = "in_person"
    source: str = BOOKING_SOURCE_CLINIC
    notes: Optional[str] = None


class AppointmentStatusRequest(BaseModel):
    """Request model for changing an appointment's status."""
    status: str


def appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        appointment_uid=appointment.appointment_uid,
        doctor_id=appointment.doctor_id,
        patient_id=appointment.patient_id,
        full_name=appointment.full_name,
        contact_number=appointment.contact_number,
        appointment_date=appointment.appointment_date,
        appointment_time=appointment.appointment_time,
        appointment_type=appointment.appointment_type,
        source=appointment.source,
        provisional=appointment.provisional,
        status=appointment.status,
        notes=appointment.notes,
    )


def day_response(day: DayAvailability) -> DayAvailabilityResponse:
    return DayAvailabilityResponse(
        doctor_id=day.doctor_id,
        date=day.date,
        state=day.state.value,
        on_leave=day.on_leave,
        leave_reason=day.leave_reason,
        message=day.message,
        error=day.error,
        slots=[SlotResponse(time=slot.time, status=slot.status.value) for slot in day.slots],
    )


def _conflict(e: SlotConflictError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "code": SLOT_ALREADY_BOOKED_CODE,
            "message": str(e),
            "booked_slots": sorted(e.booked_slots or []),
        }
    )


def _parse_date_or_400(value: str):
    try:
        return parse_date_string(value)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/booked-slots", summary="Get booked slots for a doctor on a date")
async def get_booked_slots(
    doctor_id: int = Query(..., description="Doctor ID"),
    date: str = Query(..., description="Date in YYYY-MM-DD format"),
    db: Session = Depends(get_db)
) -> BookedSlotsResponse:
    """
    Get the start times held by non-cancelled bookings.

    Times are returned in canonical "HH:MM" form, sorted.
    """
    target_date = _parse_date_or_400(date)
    booked = AppointmentService.get_booked_slots(db, doctor_id, target_date)
    return BookedSlotsResponse(data=sorted(booked))


@router.get("/availability", summary="Get composed slot availability for a doctor on a date")
async def get_availability(
    doctor_id: int = Query(..., description="Doctor ID"),
    date: str = Query(..., description="Date in YYYY-MM-DD format"),
    db: Session = Depends(get_db)
) -> DayAvailabilityResponse:
    """
    Get the doctor's slots for a date, each marked free, booked or past.

    An on-leave day and a day without configured hours both come back with
    no slots; ``state`` and ``message`` tell them apart.
    """
    target_date = _parse_date_or_400(date)
    try:
        day = AvailabilityService.get_day_availability(db, doctor_id, target_date)
        return day_response(day)
    except DoctorNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Doctor not found"
        )
    except ConfigurationError as e:
        logger.error(f"Cannot compute availability for doctor {doctor_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )


@router.post("", summary="Book an appointment slot", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: AppointmentCreateRequest,
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    """
    Book a slot.

    Returns 409 with code SLOT_ALREADY_BOOKED and the current booked slots
    when another booking holds the time, including when two requests race
    and the database rejects the second.
    """
    appointment_date = _parse_date_or_400(request.appointment_date)
    try:
        appointment = AppointmentService.create_appointment(
            db,
            doctor_id=request.doctor_id,
            appointment_date=appointment_date,
            appointment_time=request.appointment_time,
            patient_id=request.patient_id,
            full_name=request.full_name,
            contact_number=request.contact_number,
            appointment_type=request.appointment_type,
            source=request.source,
            notes=request.notes,
        )
        return appointment_response(appointment)
    except SlotConflictError as e:
        raise _conflict(e)
    except DoctorOnLeaveError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": DOCTOR_ON_LEAVE_CODE, "message": e.reason}
        )
    except DuplicateAppointmentError as e:
        # Not a 409: clients treat every 409 as a lost slot race
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": DUPLICATE_APPOINTMENT_ON_DATE_CODE, "message": str(e)}
        )
    except SlotNotOfferedError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": SLOT_NOT_OFFERED_CODE, "message": str(e)}
        )
    except DoctorNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Doctor not found"
        )
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.patch("/{appointment_id}/status", summary="Change appointment status")
async def update_appointment_status(
    appointment_id: int,
    request: AppointmentStatusRequest,
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    """Change an appointment's status; cancelling releases its slot."""
    try:
        appointment = AppointmentService.update_status(db, appointment_id, request.status)
        return appointment_response(appointment)
    except AppointmentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found"
        )
    except SlotConflictError as e:
        raise _conflict(e)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
