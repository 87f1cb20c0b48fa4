"""
Leave record API endpoints.

Update and soft-delete of individual date-range leave records. Creation and
listing are doctor-scoped and live in the doctors router.
"""

import logging
from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dental_booking.api.doctors import leave_response
from dental_booking.api.responses import LeaveResponse
from dental_booking.core.database import get_db
from dental_booking.core.exceptions import LeaveNotFoundError
from dental_booking.services import LeaveService

logger = logging.getLogger(__name__)

router = APIRouter()


class LeaveUpdateRequest(BaseModel):
    """Request model for updating a leave record; omitted fields are unchanged."""
    leave_start_date: Optional[date_type] = None
    leave_end_date: Optional[date_type] = None
    reason: Optional[str] = None
    is_active: Optional[bool] = None


@router.put("/{leave_id}", summary="Update leave record")
async def update_leave(
    leave_id: int,
    request: LeaveUpdateRequest,
    db: Session = Depends(get_db)
) -> LeaveResponse:
    """Update the dates, reason or active flag of a leave record."""
    try:
        leave = LeaveService.update_leave(
            db,
            leave_id,
            leave_start_date=request.leave_start_date,
            leave_end_date=request.leave_end_date,
            reason=request.reason,
            is_active=request.is_active,
        )
        return leave_response(leave)
    except LeaveNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Leave record not found"
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{leave_id}", summary="Deactivate leave record")
async def delete_leave(
    leave_id: int,
    db: Session = Depends(get_db)
) -> LeaveResponse:
    """
    Deactivate a leave record.

    The record is kept with ``is_active`` cleared; leave resolution skips it.
    """
    try:
        leave = LeaveService.deactivate_leave(db, leave_id)
        return leave_response(leave)
    except LeaveNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Leave record not found"
        )
