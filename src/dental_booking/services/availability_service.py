"""
Availability service for slot enumeration and day composition.

This module contains the availability logic shared by every booking flow
(receptionist booking, patient self-booking and follow-up scheduling): it
turns a doctor's weekly template, leave records and existing bookings into
an ordered list of presentable slots.

The pure static methods take plain values and an injected ``now``; only
``get_day_availability`` touches the database.
"""

import logging
from datetime import datetime, date as date_type
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from dental_booking.core.config import SLOT_BOUNDARY_POLICY
from dental_booking.core.constants import (
    SLOT_BOUNDARY_POLICIES, SLOT_BOUNDARY_FULL_SLOT,
    ON_LEAVE_MESSAGE, NO_CONFIGURED_HOURS_MESSAGE,
)
from dental_booking.core.exceptions import ConfigurationError
from dental_booking.services.appointment_service import AppointmentService
from dental_booking.services.doctor_service import DoctorService
from dental_booking.services.leave_service import LeaveService
from dental_booking.shared_types.availability import (
    PeriodRule, DayRule, WeeklyAvailabilityTemplate, LeaveResult,
    SlotCandidate, SlotStatus, DayState, DayAvailability,
)
from dental_booking.utils.datetime_utils import (
    clinic_now, ensure_clinic_local, time_to_minutes, minutes_to_time, weekday_name,
)

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service class for availability operations.

    Contains the slot availability pipeline shared across the booking flows.
    """

    @staticmethod
    def validate_slot_duration(step_minutes: int) -> int:
        """
        Validate a slot duration.

        Raises:
            ConfigurationError: If the duration is not a positive integer
        """
        if isinstance(step_minutes, bool) or not isinstance(step_minutes, int) or step_minutes <= 0:
            raise ConfigurationError(f"Slot duration must be a positive number of minutes, got {step_minutes!r}")
        return step_minutes

    @staticmethod
    def _resolve_boundary_policy(policy: Optional[str]) -> str:
        resolved = policy or SLOT_BOUNDARY_POLICY
        if resolved not in SLOT_BOUNDARY_POLICIES:
            raise ConfigurationError(f"Unknown slot boundary policy: {resolved!r}")
        return resolved

    @staticmethod
    def enumerate_period_slots(
        period: PeriodRule,
        step_minutes: int,
        boundary_policy: Optional[str] = None
    ) -> List[str]:
        """
        Generate candidate start times for one working period.

        Produces start, start+step, start+2*step, ... in "HH:MM". With the
        default ``start_before_end`` policy a start time is offered while it
        is strictly before the period end, so a slot never starts exactly at
        closing time. With ``full_slot`` a start time is offered only if a
        full step still fits before the end.

        Args:
            period: Period rule; an off period yields no slots
            step_minutes: Slot duration in minutes
            boundary_policy: Override for SLOT_BOUNDARY_POLICY

        Returns:
            Ordered list of "HH:MM" start times

        Raises:
            ConfigurationError: If step_minutes is not positive or the policy is unknown
        """
        AvailabilityService.validate_slot_duration(step_minutes)
        policy = AvailabilityService._resolve_boundary_policy(boundary_policy)

        if period.is_off:
            return []

        if period.start is None or period.end is None:
            raise ConfigurationError("Open period is missing its start or end time")
        try:
            start_minutes = time_to_minutes(period.start)
            end_minutes = time_to_minutes(period.end)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        slots: List[str] = []
        current = start_minutes
        while current < end_minutes:
            if policy == SLOT_BOUNDARY_FULL_SLOT and current + step_minutes > end_minutes:
                break
            slots.append(minutes_to_time(current))
            current += step_minutes
        return slots

    @staticmethod
    def resolve_day_rule(template: WeeklyAvailabilityTemplate, target_date: date_type) -> DayRule:
        """
        Look up the availability rule for the weekday of ``target_date``.

        A weekday missing from the template is treated as fully off.
        """
        day = weekday_name(target_date)
        rule = template.get(day)
        if rule is None:
            logger.debug(f"No availability configured for {day}; treating as day off")
            return DayRule.fully_off(day)
        return rule

    @staticmethod
    def enumerate_day_slots(
        day_rule: DayRule,
        step_minutes: int,
        boundary_policy: Optional[str] = None
    ) -> List[str]:
        """Morning slots followed by evening slots, each in chronological order."""
        slots: List[str] = []
        for period in day_rule.periods():
            slots.extend(AvailabilityService.enumerate_period_slots(period, step_minutes, boundary_policy))
        return slots

    @staticmethod
    def compose_day(
        day_rule: DayRule,
        leave_result: LeaveResult,
        booked_slots: Iterable[str],
        target_date: date_type,
        now: datetime,
        step_minutes: int,
        boundary_policy: Optional[str] = None,
        doctor_id: Optional[int] = None
    ) -> DayAvailability:
        """
        Combine template, leave and bookings into the presentable slot list.

        Steps:
          - on leave: no slots, the leave reason is surfaced
          - otherwise enumerate morning then evening slots
          - mark slots in ``booked_slots`` as booked
          - on the clinic-local "today", mark slots at or before ``now`` as
            past; every slot of an earlier date is past

        Args:
            day_rule: Resolved rule for the date's weekday
            leave_result: Resolved leave status for the date
            booked_slots: Canonical "HH:MM" times already taken
            target_date: Date being displayed
            now: Current time (naive values are taken as clinic-local)
            step_minutes: Slot duration
            boundary_policy: Override for SLOT_BOUNDARY_POLICY
            doctor_id: Carried through to the result for the caller

        Returns:
            DayAvailability with slots in display order
        """
        if leave_result.on_leave:
            return DayAvailability(
                date=target_date,
                slots=[],
                state=DayState.ON_LEAVE,
                on_leave=True,
                leave_reason=leave_result.reason,
                message=ON_LEAVE_MESSAGE,
                doctor_id=doctor_id,
            )

        times = AvailabilityService.enumerate_day_slots(day_rule, step_minutes, boundary_policy)
        if not times:
            return DayAvailability(
                date=target_date,
                slots=[],
                state=DayState.NO_CONFIGURED_HOURS,
                message=NO_CONFIGURED_HOURS_MESSAGE,
                doctor_id=doctor_id,
            )

        booked = set(booked_slots)
        local_now = ensure_clinic_local(now)
        assert local_now is not None
        today = local_now.date()
        now_minutes = local_now.hour * 60 + local_now.minute

        slots: List[SlotCandidate] = []
        for slot_time in times:
            status = SlotStatus.BOOKED if slot_time in booked else SlotStatus.FREE
            if target_date < today:
                status = SlotStatus.PAST
            elif target_date == today and time_to_minutes(slot_time) <= now_minutes:
                status = SlotStatus.PAST
            slots.append(SlotCandidate(time=slot_time, status=status))

        return DayAvailability(
            date=target_date,
            slots=slots,
            state=DayState.AVAILABLE,
            doctor_id=doctor_id,
        )

    @staticmethod
    def get_day_availability(
        db: Session,
        doctor_id: int,
        target_date: date_type,
        now: Optional[datetime] = None
    ) -> DayAvailability:
        """
        Compose a doctor's availability for a date from stored data.

        Args:
            db: Database session
            doctor_id: Doctor ID
            target_date: Date to compose
            now: Current time; defaults to the clinic clock

        Returns:
            DayAvailability for the doctor and date

        Raises:
            DoctorNotFoundError: If the doctor does not exist
            ConfigurationError: If the doctor's schedule is malformed
        """
        doctor = DoctorService.get_doctor(db, doctor_id)
        template = DoctorService.get_template(doctor)
        step_minutes = AvailabilityService.validate_slot_duration(doctor.slot_duration_minutes)

        day_rule = AvailabilityService.resolve_day_rule(template, target_date)
        leave_records = LeaveService.get_leave_records(db, doctor)
        leave_result = LeaveService.resolve_leave(leave_records, target_date)
        booked_slots = AppointmentService.get_booked_slots(db, doctor_id, target_date)

        return AvailabilityService.compose_day(
            day_rule, leave_result, booked_slots, target_date,
            now or clinic_now(), step_minutes, doctor_id=doctor_id,
        )
