# Package initialization
# Import all models to ensure relationships are properly established
from .doctor import Doctor
from .doctor_leave import DoctorLeave
from .appointment import Appointment

__all__ = [
    "Doctor",
    "DoctorLeave",
    "Appointment",
]
