"""
Dental Booking backend.

Slot availability and booking conflict handling for dental clinics: weekly
availability templates, doctor leave, booked slot tracking and the booking
write path.
"""

__version__ = "1.0.0"
