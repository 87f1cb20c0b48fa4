"""
Booking conflict handler for optimistic slot reservation.

No hold is placed on a slot between showing it and booking it; the backend's
uniqueness constraint on (doctor, date, time) decides races. This handler
makes the single write attempt and, when the backend reports that another
booking got the slot first, refreshes the booked slots so the user can
choose again. The write is never retried automatically.
"""

import logging
from datetime import date as date_type
from typing import Any, Dict, Iterable, Optional, Set

import httpx

from dental_booking.core.constants import DUPLICATE_KEY_ERROR_CODES, SLOT_CONFLICT_MESSAGE
from dental_booking.core.exceptions import BookingRejectedError, TransientBackendError
from dental_booking.services.booking_api_client import BookingApiClient
from dental_booking.shared_types.availability import ConflictOutcome
from dental_booking.utils.datetime_utils import normalize_time_string

logger = logging.getLogger(__name__)


def _error_codes(body: Any) -> Set[str]:
    """Collect error codes from the places backends put them."""
    codes: Set[str] = set()
    if not isinstance(body, dict):
        return codes
    candidates = [body.get("code")]
    for key in ("error", "detail"):
        nested = body.get(key)
        if isinstance(nested, dict):
            candidates.append(nested.get("code"))
        elif isinstance(nested, str):
            candidates.append(nested)
    for code in candidates:
        if code is not None:
            codes.add(str(code))
    return codes


def _error_message(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    for key in ("message", "error", "detail"):
        value = body.get(key)
        if isinstance(value, str):
            return value
        if isinstance(value, dict) and isinstance(value.get("message"), str):
            return value["message"]
    return None


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def is_conflict_response(response: httpx.Response) -> bool:
    """
    Check whether a failed write means "slot already taken".

    HTTP 409 or a known duplicate-key code (Postgres 23505, Mongo 11000,
    DUPLICATE_ENTRY, SLOT_ALREADY_BOOKED) anywhere the body reports codes.
    """
    if response.status_code == httpx.codes.CONFLICT:
        return True
    return bool(_error_codes(_response_body(response)) & DUPLICATE_KEY_ERROR_CODES)


def _booked_slots_from_body(body: Any) -> Optional[Iterable[str]]:
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, dict) and isinstance(detail.get("booked_slots"), list):
            return detail["booked_slots"]
        if isinstance(body.get("booked_slots"), list):
            return body["booked_slots"]
    return None


class BookingConflictHandler:
    """Writes bookings and recovers from lost slot races."""

    def __init__(self, client: BookingApiClient) -> None:
        self.client = client

    async def book(
        self,
        doctor_id: int,
        target_date: date_type,
        time: str,
        payload: Dict[str, Any]
    ) -> ConflictOutcome:
        """
        Attempt to book one slot.

        Args:
            doctor_id: Doctor ID
            target_date: Appointment date
            time: Selected start time
            payload: Patient and context fields for the booking

        Returns:
            ConflictOutcome with ``succeeded=True`` and the appointment, or
            ``succeeded=False`` with the refreshed booked slots on a conflict

        Raises:
            TransientBackendError: If the backend could not be reached
            BookingRejectedError: If the write failed for a non-conflict reason
        """
        slot_time = normalize_time_string(time)
        try:
            appointment = await self.client.create_booking(doctor_id, target_date, slot_time, payload)
        except httpx.HTTPStatusError as e:
            response = e.response
            if not is_conflict_response(response):
                body = _response_body(response)
                codes = _error_codes(body)
                logger.error(
                    f"Booking rejected for doctor {doctor_id} on {target_date} at {slot_time}: "
                    f"status={response.status_code} codes={sorted(codes)}"
                )
                raise BookingRejectedError(
                    _error_message(body) or f"Booking failed with status {response.status_code}",
                    status_code=response.status_code,
                    code=next(iter(sorted(codes)), None),
                ) from e

            logger.warning(
                f"Slot conflict for doctor {doctor_id} on {target_date} at {slot_time}; refreshing booked slots"
            )
            refreshed = await self._refresh_booked_slots(doctor_id, target_date, response)
            # The slot is known to be taken even if the re-read lags behind the write
            refreshed.add(slot_time)
            return ConflictOutcome(
                succeeded=False,
                refreshed_booked_slots=refreshed,
                message=SLOT_CONFLICT_MESSAGE,
            )

        logger.info(f"Booked doctor {doctor_id} on {target_date} at {slot_time}")
        return ConflictOutcome(succeeded=True, appointment=appointment)

    async def _refresh_booked_slots(
        self,
        doctor_id: int,
        target_date: date_type,
        conflict_response: httpx.Response
    ) -> Set[str]:
        try:
            return await self.client.fetch_booked_slots(doctor_id, target_date)
        except (TransientBackendError, httpx.HTTPStatusError) as e:
            logger.warning(f"Could not refresh booked slots after conflict: {e}")
            fallback = _booked_slots_from_body(_response_body(conflict_response)) or []
            return {normalize_time_string(str(value)) for value in fallback}
