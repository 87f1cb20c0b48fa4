"""Application constants and configuration values."""

from dental_booking.core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_NOTES_LENGTH = 1000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # clinic staff app (Vite)
    "http://localhost:5174",      # patient portal (Vite)
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Weekday names, in the order used by the stored availability template
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# Availability template periods, in display order
DAY_PERIODS = ("morning", "evening")

# Default weekly template applied to newly created doctor profiles
DEFAULT_MORNING_HOURS = ("09:00", "13:00")
DEFAULT_EVENING_HOURS = ("17:00", "21:00")
DEFAULT_DAYS_OFF = ("Sunday",)

# Slot enumeration boundary policies
# - start_before_end: offer every start time strictly before the window end
# - full_slot: offer a start time only if a full slot fits before the window end
SLOT_BOUNDARY_START_BEFORE_END = "start_before_end"
SLOT_BOUNDARY_FULL_SLOT = "full_slot"
SLOT_BOUNDARY_POLICIES = (SLOT_BOUNDARY_START_BEFORE_END, SLOT_BOUNDARY_FULL_SLOT)

# Appointment statuses
APPOINTMENT_STATUS_SCHEDULED = "scheduled"
APPOINTMENT_STATUS_CONFIRMED = "confirmed"
APPOINTMENT_STATUS_CANCELLED = "cancelled"
APPOINTMENT_STATUS_COMPLETED = "completed"
APPOINTMENT_STATUS_NO_SHOW = "no-show"
APPOINTMENT_STATUSES = (
    APPOINTMENT_STATUS_SCHEDULED,
    APPOINTMENT_STATUS_CONFIRMED,
    APPOINTMENT_STATUS_CANCELLED,
    APPOINTMENT_STATUS_COMPLETED,
    APPOINTMENT_STATUS_NO_SHOW,
)

APPOINTMENT_TYPES = ("in_person", "video")

# Call sites that create bookings
BOOKING_SOURCE_CLINIC = "clinic"
BOOKING_SOURCE_PATIENT_PORTAL = "patient_portal"
BOOKING_SOURCE_FOLLOW_UP = "follow_up"
BOOKING_SOURCES = (BOOKING_SOURCE_CLINIC, BOOKING_SOURCE_PATIENT_PORTAL, BOOKING_SOURCE_FOLLOW_UP)

# Error codes returned by the booking API
SLOT_ALREADY_BOOKED_CODE = "SLOT_ALREADY_BOOKED"
SLOT_NOT_OFFERED_CODE = "SLOT_NOT_OFFERED"
DOCTOR_ON_LEAVE_CODE = "DOCTOR_ON_LEAVE"
DUPLICATE_APPOINTMENT_ON_DATE_CODE = "DUPLICATE_APPOINTMENT_ON_DATE"

# Backend signals that mean "another booking already holds this slot"
# 23505: PostgreSQL unique_violation, 11000: MongoDB duplicate key
DUPLICATE_KEY_ERROR_CODES = frozenset({"23505", "11000", "DUPLICATE_ENTRY", SLOT_ALREADY_BOOKED_CODE})

# User-facing messages for empty days
ON_LEAVE_MESSAGE = "Appointments cannot be booked as the doctor is on leave."
NO_CONFIGURED_HOURS_MESSAGE = "No slots configured for this day."
AVAILABILITY_ERROR_MESSAGE = "Unable to load available slots right now. Please try again."
SLOT_CONFLICT_MESSAGE = "This time slot was just booked by someone else. Please choose another."
DUPLICATE_APPOINTMENT_MESSAGE = (
    "You already have an appointment scheduled at this clinic for this date. "
    "Please cancel it first or choose a different date."
)
