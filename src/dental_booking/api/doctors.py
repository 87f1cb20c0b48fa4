"""
Doctor schedule API endpoints.

Provides:
- Doctor profile creation with the default weekly template
- Weekly template and slot duration management
- Doctor-scoped leave listing, creation and leave status
"""

import logging
from datetime import date as date_type
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dental_booking.api.responses import (
    DoctorScheduleResponse, LeaveResponse, LeaveListResponse, LeaveStatusResponse,
)
from dental_booking.core.database import get_db
from dental_booking.core.exceptions import ConfigurationError, DoctorNotFoundError
from dental_booking.models import Doctor, DoctorLeave
from dental_booking.services import DoctorService, LeaveService
from dental_booking.utils.datetime_utils import parse_date_string

logger = logging.getLogger(__name__)

router = APIRouter()


# Request Models

class DoctorCreateRequest(BaseModel):
    """Request model for creating a doctor profile."""
    full_name: str
    clinic_id: Optional[int] = None
    availability: Optional[Any] = None  # Omit to apply the default clinic hours
    slot_duration_minutes: Optional[int] = None


class DoctorScheduleUpdateRequest(BaseModel):
    """Request model for updating a doctor's schedule; omitted fields are unchanged."""
    availability: Optional[Any] = None
    slot_duration_minutes: Optional[int] = None
    leave: Optional[List[Dict[str, Any]]] = None


class LeaveCreateRequest(BaseModel):
    """Request model for creating a date-range leave record."""
    leave_start_date: date_type
    leave_end_date: date_type
    reason: Optional[str] = None


def schedule_response(doctor: Doctor) -> DoctorScheduleResponse:
    return DoctorScheduleResponse(
        doctor_id=doctor.id,
        full_name=doctor.full_name,
        availability=DoctorService.get_template(doctor).to_list(),
        slot_duration_minutes=doctor.slot_duration_minutes,
        leave=list(doctor.leave or []),
    )


def leave_response(leave: DoctorLeave) -> LeaveResponse:
    return LeaveResponse(
        id=leave.id,
        doctor_id=leave.doctor_id,
        leave_start_date=leave.leave_start_date,
        leave_end_date=leave.leave_end_date,
        reason=leave.reason,
        is_active=leave.is_active,
    )


def _doctor_or_404(db: Session, doctor_id: int) -> Doctor:
    try:
        return DoctorService.get_doctor(db, doctor_id)
    except DoctorNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Doctor not found"
        )


@router.post("", summary="Create doctor profile", status_code=status.HTTP_201_CREATED)
async def create_doctor(
    request: DoctorCreateRequest,
    db: Session = Depends(get_db)
) -> DoctorScheduleResponse:
    """Create a doctor profile; the default weekly template is used when none is given."""
    try:
        doctor = DoctorService.create_doctor(
            db,
            full_name=request.full_name,
            clinic_id=request.clinic_id,
            availability=request.availability,
            slot_duration_minutes=request.slot_duration_minutes,
        )
        return schedule_response(doctor)
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )


@router.get("/{doctor_id}/schedule", summary="Get doctor's weekly schedule")
async def get_schedule(
    doctor_id: int,
    db: Session = Depends(get_db)
) -> DoctorScheduleResponse:
    """
    Get a doctor's weekly availability template and slot duration.

    Weekdays absent from the stored template are omitted; they are treated
    as days off when slots are computed.
    """
    doctor = _doctor_or_404(db, doctor_id)
    try:
        return schedule_response(doctor)
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )


@router.put("/{doctor_id}/schedule", summary="Update doctor's weekly schedule")
async def update_schedule(
    doctor_id: int,
    request: DoctorScheduleUpdateRequest,
    db: Session = Depends(get_db)
) -> DoctorScheduleResponse:
    """
    Replace a doctor's template, slot duration and/or single-day leave entries.

    Malformed templates and non-positive slot durations are rejected with 422
    rather than stored.
    """
    _doctor_or_404(db, doctor_id)
    try:
        doctor = DoctorService.update_schedule(
            db,
            doctor_id,
            availability=request.availability,
            slot_duration_minutes=request.slot_duration_minutes,
            leave=request.leave,
        )
        return schedule_response(doctor)
    except ConfigurationError as e:
        logger.warning(f"Rejected schedule update for doctor {doctor_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e)
        )


@router.get("/{doctor_id}/leaves", summary="List doctor's leave records")
async def list_leaves(
    doctor_id: int,
    include_inactive: bool = Query(False, description="Include deactivated range records"),
    db: Session = Depends(get_db)
) -> LeaveListResponse:
    """
    List a doctor's leave records in the order they are resolved.

    Profile-embedded single-day entries come first, then range records by
    start date.
    """
    doctor = _doctor_or_404(db, doctor_id)
    records = LeaveService.get_leave_records(db, doctor, include_inactive=include_inactive)
    return LeaveListResponse(data=[record.to_dict() for record in records])


@router.post("/{doctor_id}/leaves", summary="Create leave record", status_code=status.HTTP_201_CREATED)
async def create_leave(
    doctor_id: int,
    request: LeaveCreateRequest,
    db: Session = Depends(get_db)
) -> LeaveResponse:
    """Create a date-range leave record (inclusive on both ends)."""
    _doctor_or_404(db, doctor_id)
    try:
        leave = LeaveService.create_leave(
            db,
            doctor_id=doctor_id,
            leave_start_date=request.leave_start_date,
            leave_end_date=request.leave_end_date,
            reason=request.reason,
        )
        return leave_response(leave)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/{doctor_id}/leave-status", summary="Check whether a doctor is on leave")
async def get_leave_status(
    doctor_id: int,
    date: str = Query(..., description="Date in YYYY-MM-DD format"),
    db: Session = Depends(get_db)
) -> LeaveStatusResponse:
    """Resolve the doctor's leave for one date."""
    try:
        target_date = parse_date_string(date)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    doctor = _doctor_or_404(db, doctor_id)
    records = LeaveService.get_leave_records(db, doctor)
    result = LeaveService.resolve_leave(records, target_date)
    return LeaveStatusResponse(
        doctor_id=doctor_id,
        date=target_date,
        on_leave=result.on_leave,
        reason=result.reason,
    )
