"""
Leave service for doctor unavailability.

Resolves whether a doctor is on leave on a given date and manages the
date-range leave records. Single-day leave entries embedded in the doctor
profile are read alongside the range records.
"""

import logging
from datetime import date as date_type
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from dental_booking.core.exceptions import LeaveNotFoundError
from dental_booking.models import Doctor, DoctorLeave
from dental_booking.shared_types.availability import LeaveRecord, LeaveResult, leave_records_from_raw
from dental_booking.utils.datetime_utils import weekday_name, format_date

logger = logging.getLogger(__name__)


class LeaveService:
    """Service class for doctor leave operations."""

    @staticmethod
    def resolve_leave(
        records: Optional[Iterable[LeaveRecord]],
        target_date: date_type,
        day_name: Optional[str] = None
    ) -> LeaveResult:
        """
        Determine whether the doctor is on leave on ``target_date``.

        Records are checked in order and the first match wins; matching
        records are never merged. Records with ``is_active`` explicitly
        False are skipped. A single-day record matches its exact calendar
        date; a range record matches every date from start to end inclusive.
        A record with both a date and a range matches either.

        Args:
            records: Leave records in resolution order; None means no leave
            target_date: Date to check
            day_name: Weekday name used in the default single-day reason;
                computed from the date when omitted

        Returns:
            LeaveResult with the matching record's reason, or not on leave
        """
        if not records:
            return LeaveResult.not_on_leave()

        day = day_name or weekday_name(target_date)
        for record in records:
            if record.is_active is False:
                logger.debug(f"Skipping inactive leave record {record.leave_id or record.date}")
                continue

            if record.date is not None and record.date == target_date:
                return LeaveResult(on_leave=True, reason=record.reason or f"On leave on {day}")

            # A record carrying both shapes is also checked against its range
            if record.is_range:
                assert record.leave_start_date is not None and record.leave_end_date is not None
                if record.leave_start_date <= target_date <= record.leave_end_date:
                    reason = record.reason or (
                        f"On leave from {format_date(record.leave_start_date)} "
                        f"to {format_date(record.leave_end_date)}"
                    )
                    return LeaveResult(on_leave=True, reason=reason)

        return LeaveResult.not_on_leave()

    @staticmethod
    def get_leave_records(
        db: Session,
        doctor: Doctor,
        include_inactive: bool = True
    ) -> List[LeaveRecord]:
        """
        Load a doctor's leave records in resolution order.

        Profile-embedded single-day entries come first in their stored order,
        followed by range records ordered by start date.

        Args:
            db: Database session
            doctor: Doctor whose leave to load
            include_inactive: Whether to include deactivated range records;
                resolution skips them either way

        Returns:
            List of LeaveRecord
        """
        records = leave_records_from_raw(doctor.leave)

        query = db.query(DoctorLeave).filter(DoctorLeave.doctor_id == doctor.id)
        if not include_inactive:
            query = query.filter(DoctorLeave.is_active == True)
        rows = query.order_by(DoctorLeave.leave_start_date, DoctorLeave.id).all()

        records.extend(LeaveRecord.from_raw(row.to_record_dict()) for row in rows)
        return records

    @staticmethod
    def get_leave(db: Session, leave_id: int) -> DoctorLeave:
        """
        Get leave record by ID.

        Raises:
            LeaveNotFoundError: If the record does not exist
        """
        leave = db.query(DoctorLeave).filter(DoctorLeave.id == leave_id).first()
        if not leave:
            raise LeaveNotFoundError(f"Leave record {leave_id} not found")
        return leave

    @staticmethod
    def create_leave(
        db: Session,
        doctor_id: int,
        leave_start_date: date_type,
        leave_end_date: date_type,
        reason: Optional[str] = None
    ) -> DoctorLeave:
        """
        Create a date-range leave record.

        Raises:
            ValueError: If the range ends before it starts
        """
        if leave_end_date < leave_start_date:
            raise ValueError("Leave end date must be on or after the start date")

        leave = DoctorLeave(
            doctor_id=doctor_id,
            leave_start_date=leave_start_date,
            leave_end_date=leave_end_date,
            reason=reason,
            is_active=True,
        )
        db.add(leave)
        db.commit()
        db.refresh(leave)
        logger.info(f"Created leave {leave.id} for doctor {doctor_id}: {leave_start_date}..{leave_end_date}")
        return leave

    @staticmethod
    def update_leave(
        db: Session,
        leave_id: int,
        leave_start_date: Optional[date_type] = None,
        leave_end_date: Optional[date_type] = None,
        reason: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> DoctorLeave:
        """
        Update a leave record; fields left as None are unchanged.

        Raises:
            LeaveNotFoundError: If the record does not exist
            ValueError: If the resulting range ends before it starts
        """
        leave = LeaveService.get_leave(db, leave_id)

        start = leave_start_date or leave.leave_start_date
        end = leave_end_date or leave.leave_end_date
        if end < start:
            raise ValueError("Leave end date must be on or after the start date")

        leave.leave_start_date = start
        leave.leave_end_date = end
        if reason is not None:
            leave.reason = reason
        if is_active is not None:
            leave.is_active = is_active

        db.commit()
        db.refresh(leave)
        logger.info(f"Updated leave {leave_id}")
        return leave

    @staticmethod
    def deactivate_leave(db: Session, leave_id: int) -> DoctorLeave:
        """
        Soft-delete a leave record so resolution ignores it.

        Raises:
            LeaveNotFoundError: If the record does not exist
        """
        leave = LeaveService.get_leave(db, leave_id)
        leave.is_active = False
        db.commit()
        db.refresh(leave)
        logger.info(f"Deactivated leave {leave_id}")
        return leave
