"""
Booking session for one booking screen.

Tracks the time the user selected in the displayed day and submits it
through the conflict handler. Selection is validated against the displayed
day only; a time known to be taken is refused without asking the backend.
"""

import logging
from typing import Any, Dict, Optional

from dental_booking.core.exceptions import SlotNotOfferedError
from dental_booking.services.availability_loader import AvailabilityLoader
from dental_booking.services.booking_conflict_handler import BookingConflictHandler
from dental_booking.shared_types.availability import ConflictOutcome, SlotStatus
from dental_booking.utils.datetime_utils import normalize_time_string

logger = logging.getLogger(__name__)


class BookingSession:
    """Selection and submission state layered on an AvailabilityLoader."""

    def __init__(self, loader: AvailabilityLoader, handler: BookingConflictHandler) -> None:
        self.loader = loader
        self.handler = handler
        self.selected_time: Optional[str] = None

    def select(self, time: str) -> str:
        """
        Select a start time from the displayed day.

        Raises:
            SlotNotOfferedError: If nothing is displayed or the time is not free
        """
        day = self.loader.current
        slot_time = normalize_time_string(time)
        if day is None or not day.is_bookable(slot_time):
            raise SlotNotOfferedError(f"{slot_time} is not available for booking")
        self.selected_time = slot_time
        return slot_time

    def clear_selection(self) -> None:
        self.selected_time = None

    async def confirm(self, payload: Dict[str, Any]) -> ConflictOutcome:
        """
        Submit the selected time.

        On success or conflict the selection is cleared and the displayed day
        is re-marked. Other failures propagate and leave the selection as is.

        Raises:
            SlotNotOfferedError: If no time is selected
            TransientBackendError: If the backend could not be reached
            BookingRejectedError: If the write failed for a non-conflict reason
        """
        day = self.loader.current
        if day is None or self.selected_time is None or day.doctor_id is None:
            raise SlotNotOfferedError("Select a time before booking")

        # Snapshot the day being booked; the loader may move to another day during the write
        doctor_id, target_date, slot_time = day.doctor_id, day.date, self.selected_time
        taken = {slot.time for slot in day.slots if slot.status == SlotStatus.BOOKED}

        outcome = await self.handler.book(doctor_id, target_date, slot_time, payload)

        if outcome.is_conflict:
            assert outcome.refreshed_booked_slots is not None
            logger.info(f"Selection {slot_time} lost to another booking; asking for a new time")
            self._clear_if_selected(slot_time)
            self.loader.apply_booked_slots(outcome.refreshed_booked_slots, doctor_id, target_date)
        elif outcome.succeeded:
            taken.add(slot_time)
            self._clear_if_selected(slot_time)
            self.loader.apply_booked_slots(taken, doctor_id, target_date)
        return outcome

    def _clear_if_selected(self, slot_time: str) -> None:
        if self.selected_time == slot_time:
            self.clear_selection()
