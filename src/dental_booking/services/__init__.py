"""
Services package for shared business logic.

This package contains the availability engine and the booking services
shared by the clinic booking, patient portal and follow-up call sites.
"""

from .appointment_service import AppointmentService
from .doctor_service import DoctorService
from .leave_service import LeaveService
from .availability_service import AvailabilityService
from .booking_api_client import BookingApiClient
from .booking_conflict_handler import BookingConflictHandler, is_conflict_response
from .availability_loader import AvailabilityLoader, Debouncer
from .booking_session import BookingSession

__all__ = [
    "AppointmentService",
    "DoctorService",
    "LeaveService",
    "AvailabilityService",
    "BookingApiClient",
    "BookingConflictHandler",
    "is_conflict_response",
    "AvailabilityLoader",
    "Debouncer",
    "BookingSession",
]
