"""
Shared type definitions for the dental booking backend.

This module contains dataclasses and types that are used across multiple services.
"""

from dental_booking.shared_types.availability import (
    PeriodRule,
    DayRule,
    WeeklyAvailabilityTemplate,
    LeaveRecord,
    LeaveResult,
    SlotStatus,
    SlotCandidate,
    DayState,
    DayAvailability,
    ConflictOutcome,
    DoctorSchedule,
    leave_records_from_raw,
)

__all__ = [
    "PeriodRule",
    "DayRule",
    "WeeklyAvailabilityTemplate",
    "LeaveRecord",
    "LeaveResult",
    "SlotStatus",
    "SlotCandidate",
    "DayState",
    "DayAvailability",
    "ConflictOutcome",
    "DoctorSchedule",
    "leave_records_from_raw",
]
