"""
Caller-side availability loading.

The loader runs the three independent reads (weekly template, leave records,
booked slots) concurrently and joins them in the compositor. Every load gets
a generation number; a response whose generation is no longer the latest is
dropped so that a slow answer for a previous date or doctor never replaces
what is currently displayed.

Debouncing of user-driven changes lives in ``Debouncer``, separate from the
loading itself.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, date as date_type
from typing import Any, Awaitable, Callable, Iterable, Optional

import httpx

from dental_booking.core.config import AVAILABILITY_REFETCH_DEBOUNCE_MS
from dental_booking.core.constants import AVAILABILITY_ERROR_MESSAGE
from dental_booking.core.exceptions import ConfigurationError, TransientBackendError
from dental_booking.services.availability_service import AvailabilityService
from dental_booking.services.booking_api_client import BookingApiClient
from dental_booking.services.leave_service import LeaveService
from dental_booking.shared_types.availability import (
    DayAvailability, DayRule, DayState, LeaveResult,
)
from dental_booking.utils.datetime_utils import clinic_now

logger = logging.getLogger(__name__)


@dataclass
class _ComposeInputs:
    doctor_id: int
    target_date: date_type
    day_rule: DayRule
    leave_result: LeaveResult
    step_minutes: int


class Debouncer:
    """
    Runs only the last of a burst of calls, after a quiet period.

    Each ``call`` cancels the previously scheduled one if it has not started
    yet.
    """

    def __init__(self, delay_ms: Optional[int] = None) -> None:
        self.delay_seconds = (delay_ms if delay_ms is not None else AVAILABILITY_REFETCH_DEBOUNCE_MS) / 1000
        self._task: Optional[asyncio.Task] = None

    def call(self, factory: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        self.cancel()
        self._task = asyncio.ensure_future(self._run(factory))
        return self._task

    async def _run(self, factory: Callable[[], Awaitable[Any]]) -> Any:
        await asyncio.sleep(self.delay_seconds)
        return await factory()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


class AvailabilityLoader:
    """
    Loads and holds the displayed day for one booking screen.

    ``current`` is only ever replaced by the result of the most recent load.
    """

    def __init__(
        self,
        client: BookingApiClient,
        clock: Callable[[], datetime] = clinic_now,
        boundary_policy: Optional[str] = None,
        debounce_ms: Optional[int] = None
    ) -> None:
        self.client = client
        self.clock = clock
        self.boundary_policy = boundary_policy
        self.debouncer = Debouncer(debounce_ms)
        self.current: Optional[DayAvailability] = None
        self._generation = 0
        self._inputs: Optional[_ComposeInputs] = None

    async def load(self, doctor_id: int, target_date: date_type) -> Optional[DayAvailability]:
        """
        Load a doctor's day and make it current.

        Returns:
            The composed day, or None if a newer load started meanwhile
        """
        self._generation += 1
        generation = self._generation

        inputs: Optional[_ComposeInputs] = None
        try:
            schedule, leave_records, booked = await asyncio.gather(
                self.client.fetch_schedule(doctor_id),
                self.client.fetch_leave_records(doctor_id),
                self.client.fetch_booked_slots(doctor_id, target_date),
            )
            inputs = _ComposeInputs(
                doctor_id=doctor_id,
                target_date=target_date,
                day_rule=AvailabilityService.resolve_day_rule(schedule.template, target_date),
                leave_result=LeaveService.resolve_leave(leave_records, target_date),
                step_minutes=schedule.slot_duration_minutes,
            )
            day = self._compose(inputs, booked)
        except ConfigurationError as e:
            logger.error(f"Doctor {doctor_id} schedule is misconfigured: {e}")
            day = self._error_day(doctor_id, target_date, str(e))
            inputs = None
        except (TransientBackendError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to load availability for doctor {doctor_id} on {target_date}: {e}")
            day = self._error_day(doctor_id, target_date, str(e))
            inputs = None

        if generation != self._generation:
            logger.debug(f"Dropping stale availability for doctor {doctor_id} on {target_date}")
            return None

        self._inputs = inputs
        self.current = day
        return day

    def schedule_load(self, doctor_id: int, target_date: date_type) -> asyncio.Task:
        """Debounced ``load`` for user-driven date or doctor changes."""
        return self.debouncer.call(lambda: self.load(doctor_id, target_date))

    def is_displaying(self, doctor_id: Optional[int], target_date: date_type) -> bool:
        """Whether the composed day currently held is for this doctor and date."""
        return (
            self._inputs is not None
            and self._inputs.doctor_id == doctor_id
            and self._inputs.target_date == target_date
        )

    def apply_booked_slots(
        self,
        booked_slots: Iterable[str],
        doctor_id: Optional[int] = None,
        target_date: Optional[date_type] = None
    ) -> Optional[DayAvailability]:
        """
        Re-mark the displayed day from a refreshed booked slot set.

        Used after a booking conflict or success so the display reflects the
        backend without another full load. When ``doctor_id``/``target_date``
        are given and another day has been loaded since, the set is dropped
        and the displayed day is left as is.
        """
        if self._inputs is None:
            return self.current
        if target_date is not None and not self.is_displaying(doctor_id, target_date):
            logger.debug(f"Dropping booked slots for doctor {doctor_id} on {target_date}; another day is displayed")
            return self.current
        self.current = self._compose(self._inputs, booked_slots)
        return self.current

    def _compose(self, inputs: _ComposeInputs, booked: Iterable[str]) -> DayAvailability:
        return AvailabilityService.compose_day(
            inputs.day_rule,
            inputs.leave_result,
            booked,
            inputs.target_date,
            self.clock(),
            inputs.step_minutes,
            boundary_policy=self.boundary_policy,
            doctor_id=inputs.doctor_id,
        )

    @staticmethod
    def _error_day(doctor_id: int, target_date: date_type, error: str) -> DayAvailability:
        return DayAvailability(
            date=target_date,
            slots=[],
            state=DayState.ERROR,
            message=AVAILABILITY_ERROR_MESSAGE,
            error=error,
            doctor_id=doctor_id,
        )
