"""Domain exceptions raised by the availability engine and booking path."""

from typing import Iterable, Optional


class ConfigurationError(Exception):
    """Raised when a doctor's schedule configuration cannot be used (bad slot duration, malformed template)."""


class DoctorNotFoundError(Exception):
    """Raised when a doctor lookup returns no result."""


class LeaveNotFoundError(Exception):
    """Raised when a leave record lookup returns no result."""


class AppointmentNotFoundError(Exception):
    """Raised when an appointment lookup returns no result."""


class DoctorOnLeaveError(Exception):
    """Raised when a booking targets a day the doctor is on leave."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SlotNotOfferedError(Exception):
    """Raised when a booking targets a time that is not a free, upcoming slot of the doctor's day."""


class DuplicateAppointmentError(Exception):
    """Raised when a patient already holds an active appointment at the same clinic on the same date."""


class SlotConflictError(Exception):
    """
    Raised when a booking write loses the race for a slot.

    Carries the booked slots as re-read after the conflict, when available.
    """

    def __init__(self, message: str, booked_slots: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.booked_slots = set(booked_slots) if booked_slots is not None else None


class TransientBackendError(Exception):
    """Raised when the booking backend cannot be reached or times out."""


class BookingRejectedError(Exception):
    """Raised when the booking backend refuses a write for a reason other than a slot conflict."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


__all__ = [
    "ConfigurationError",
    "DoctorNotFoundError",
    "LeaveNotFoundError",
    "AppointmentNotFoundError",
    "DoctorOnLeaveError",
    "SlotNotOfferedError",
    "SlotConflictError",
    "DuplicateAppointmentError",
    "TransientBackendError",
    "BookingRejectedError",
]
