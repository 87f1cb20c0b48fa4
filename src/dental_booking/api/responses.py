"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from datetime import date as date_type
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class DoctorScheduleResponse(BaseModel):
    """Response model for a doctor's schedule configuration."""
    doctor_id: int
    full_name: str
    availability: List[Dict[str, Any]]  # Stored list shape, Sunday first
    slot_duration_minutes: int
    leave: List[Dict[str, Any]] = []  # Profile-embedded single-day leave entries


class LeaveResponse(BaseModel):
    """Response model for a date-range leave record."""
    id: int
    doctor_id: int
    leave_start_date: date_type
    leave_end_date: date_type
    reason: Optional[str] = None
    is_active: bool


class LeaveListResponse(BaseModel):
    """Response model for a doctor's leave records in resolution order."""
    success: bool = True
    data: List[Dict[str, Any]]


class LeaveStatusResponse(BaseModel):
    """Response model for leave resolution on a date."""
    doctor_id: int
    date: date_type
    on_leave: bool
    reason: Optional[str] = None


class BookedSlotsResponse(BaseModel):
    """Response model for the booked slots of a doctor on a date."""
    success: bool = True
    data: List[str]  # Sorted "HH:MM" start times


class SlotResponse(BaseModel):
    """Response model for one presentable slot."""
    time: str
    status: str  # 'free', 'booked' or 'past'


class DayAvailabilityResponse(BaseModel):
    """Response model for a composed day."""
    doctor_id: Optional[int] = None
    date: date_type
    state: str
    on_leave: bool
    leave_reason: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    slots: List[SlotResponse]


class AppointmentResponse(BaseModel):
    """Response model for an appointment."""
    id: int
    appointment_uid: str
    doctor_id: int
    patient_id: str
    full_name: str
    contact_number: Optional[str] = None
    appointment_date: date_type
    appointment_time: str
    appointment_type: str
    source: str
    provisional: bool
    status: str
    notes: Optional[str] = None
