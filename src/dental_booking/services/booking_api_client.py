"""
Async HTTP client for the booking backend.

Used by the caller-side loader and booking session to read a doctor's
schedule, leave and booked slots and to write bookings. Network and timeout
failures are raised as TransientBackendError; HTTP error statuses are left
as httpx.HTTPStatusError so callers can inspect the response.
"""

import logging
from datetime import date as date_type
from typing import Any, Dict, List, Optional, Set

import httpx

from dental_booking.core.config import BOOKING_API_BASE_URL, BOOKING_API_TIMEOUT_SECONDS
from dental_booking.core.exceptions import ConfigurationError, TransientBackendError
from dental_booking.services.appointment_service import AppointmentService
from dental_booking.shared_types.availability import (
    DoctorSchedule, LeaveRecord, WeeklyAvailabilityTemplate, leave_records_from_raw,
)
from dental_booking.utils.datetime_utils import format_date

logger = logging.getLogger(__name__)


def _unwrap(body: Any) -> Any:
    """Return the ``data`` member of a ``{success, data}`` envelope, or the body itself."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class BookingApiClient:
    """Client for the availability and booking endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ) -> None:
        self.base_url = base_url or BOOKING_API_BASE_URL
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else BOOKING_API_TIMEOUT_SECONDS,
        )

    async def __aenter__(self) -> "BookingApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.warning(f"Booking backend unreachable for {method} {url}: {e}")
            raise TransientBackendError(f"Booking backend unreachable: {e}") from e

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        response = await self._request("GET", url, **kwargs)
        response.raise_for_status()
        return response.json()

    async def fetch_schedule(self, doctor_id: int) -> DoctorSchedule:
        """
        Read a doctor's weekly template and slot duration.

        Raises:
            TransientBackendError: On network failure or timeout
            httpx.HTTPStatusError: On an error status
            ConfigurationError: If the returned template is malformed
        """
        data = _unwrap(await self._get_json(f"/api/doctors/{doctor_id}/schedule"))
        if not isinstance(data, dict):
            raise ConfigurationError(f"Unexpected schedule payload for doctor {doctor_id}")
        return DoctorSchedule(
            doctor_id=doctor_id,
            template=WeeklyAvailabilityTemplate.from_raw(data.get("availability")),
            slot_duration_minutes=data.get("slot_duration_minutes"),
        )

    async def fetch_weekly_template(self, doctor_id: int) -> WeeklyAvailabilityTemplate:
        """Read only the weekly template of a doctor."""
        return (await self.fetch_schedule(doctor_id)).template

    async def fetch_leave_records(self, doctor_id: int) -> List[LeaveRecord]:
        """
        Read a doctor's leave records in resolution order.

        Raises:
            TransientBackendError: On network failure or timeout
            httpx.HTTPStatusError: On an error status
        """
        data = _unwrap(await self._get_json(f"/api/doctors/{doctor_id}/leaves"))
        return leave_records_from_raw(data)

    async def fetch_booked_slots(self, doctor_id: int, target_date: date_type) -> Set[str]:
        """
        Read the booked slot index for a doctor on a date.

        The backend already excludes cancelled bookings; times are normalized
        again here since the comparison with enumerated slots is exact.

        Raises:
            TransientBackendError: On network failure or timeout
            httpx.HTTPStatusError: On an error status
        """
        data = _unwrap(await self._get_json(
            "/api/appointments/booked-slots",
            params={"doctor_id": doctor_id, "date": format_date(target_date)},
        ))
        return AppointmentService.build_booked_slot_index(data or [])

    async def create_booking(
        self,
        doctor_id: int,
        target_date: date_type,
        time: str,
        payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Write a booking for one slot.

        Args:
            doctor_id: Doctor ID
            target_date: Appointment date
            time: Start time "HH:MM"
            payload: Patient and context fields (patient_id, full_name, ...)

        Returns:
            The created appointment as returned by the backend

        Raises:
            TransientBackendError: On network failure or timeout
            httpx.HTTPStatusError: On an error status, including 409 conflicts
        """
        body = {
            **payload,
            "doctor_id": doctor_id,
            "appointment_date": format_date(target_date),
            "appointment_time": time,
        }
        response = await self._request("POST", "/api/appointments", json=body)
        response.raise_for_status()
        return _unwrap(response.json())
