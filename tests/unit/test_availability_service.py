"""
Unit tests for availability service algorithms.

Covers:
- Slot enumeration and both boundary policies
- Weekday rule resolution on sparse templates
- Day composition: leave, booked slots and the today cutoff
- The end-to-end booking scenarios on composed days
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from dental_booking.core.constants import ON_LEAVE_MESSAGE, NO_CONFIGURED_HOURS_MESSAGE
from dental_booking.core.exceptions import ConfigurationError, DoctorNotFoundError
from dental_booking.services.availability_service import AvailabilityService
from dental_booking.services.leave_service import LeaveService
from dental_booking.shared_types.availability import (
    PeriodRule, DayRule, WeeklyAvailabilityTemplate, LeaveRecord, LeaveResult,
    SlotStatus, DayState,
)
from dental_booking.utils.datetime_utils import time_to_minutes, CLINIC_TZ
from tests.conftest import create_doctor, create_appointment, create_leave, weekly_availability


def period(start: str, end: str) -> PeriodRule:
    return PeriodRule(start=start, end=end, is_off=False)


MONDAY = date(2025, 7, 21)


class TestEnumeratePeriodSlots:
    """Test slot enumeration for one working period."""

    def test_basic_enumeration(self):
        """Test that slots start at the period start and step evenly."""
        slots = AvailabilityService.enumerate_period_slots(period("09:00", "12:00"), 30)
        assert slots == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]

    def test_slot_never_starts_at_end(self):
        """Test that a start exactly at the period end is not offered."""
        slots = AvailabilityService.enumerate_period_slots(period("09:00", "10:00"), 15)
        assert slots[-1] == "09:45"
        assert "10:00" not in slots

    def test_uneven_step_keeps_last_start_before_end(self):
        """Test the default policy when the step does not divide the span."""
        slots = AvailabilityService.enumerate_period_slots(period("09:00", "10:00"), 25)
        assert slots == ["09:00", "09:25", "09:50"]

    def test_full_slot_policy_drops_partial_slot(self):
        """Test that full_slot only offers starts with a whole slot before the end."""
        slots = AvailabilityService.enumerate_period_slots(period("09:00", "10:00"), 25, boundary_policy="full_slot")
        assert slots == ["09:00", "09:25"]

    def test_policies_agree_when_step_divides_span(self):
        """Test that both policies match for evenly divisible periods."""
        rule = period("17:00", "21:00")
        assert (
            AvailabilityService.enumerate_period_slots(rule, 15, boundary_policy="start_before_end")
            == AvailabilityService.enumerate_period_slots(rule, 15, boundary_policy="full_slot")
        )

    def test_off_period_returns_empty(self):
        """Test that off periods yield nothing regardless of times."""
        assert AvailabilityService.enumerate_period_slots(PeriodRule(start="09:00", end="12:00", is_off=True), 15) == []
        assert AvailabilityService.enumerate_period_slots(PeriodRule(start="bogus", end=None, is_off=True), 15) == []

    def test_end_before_start_returns_empty(self):
        """Test that an inverted period yields no slots rather than an error."""
        assert AvailabilityService.enumerate_period_slots(period("12:00", "09:00"), 15) == []

    def test_end_of_day_boundary(self):
        """Test a period running to 24:00."""
        slots = AvailabilityService.enumerate_period_slots(period("23:00", "24:00"), 30)
        assert slots == ["23:00", "23:30"]

    @pytest.mark.parametrize("step", [0, -15])
    def test_non_positive_step_is_configuration_error(self, step):
        """Test that a non-positive slot duration fails fast."""
        with pytest.raises(ConfigurationError):
            AvailabilityService.enumerate_period_slots(period("09:00", "12:00"), step)

    def test_unknown_policy_is_configuration_error(self):
        """Test that an unknown boundary policy is rejected."""
        with pytest.raises(ConfigurationError):
            AvailabilityService.enumerate_period_slots(period("09:00", "12:00"), 15, boundary_policy="inclusive")

    @pytest.mark.parametrize("start,end,step", [
        ("09:00", "12:00", 15),
        ("09:10", "13:05", 20),
        ("17:00", "21:00", 45),
        ("08:00", "08:10", 30),
    ])
    def test_slots_within_window_and_evenly_spaced(self, start, end, step):
        """Test that every slot lies in [start, end) and consecutive slots differ by step."""
        slots = AvailabilityService.enumerate_period_slots(period(start, end), step)
        minutes = [time_to_minutes(slot) for slot in slots]

        assert all(time_to_minutes(start) <= m < time_to_minutes(end) for m in minutes)
        assert all(b - a == step for a, b in zip(minutes, minutes[1:]))
        assert slots == AvailabilityService.enumerate_period_slots(period(start, end), step)


class TestResolveDayRule:
    """Test weekday rule lookup."""

    def test_resolves_matching_weekday(self):
        """Test that the rule for the date's weekday is returned."""
        template = WeeklyAvailabilityTemplate.from_raw(weekly_availability())
        rule = AvailabilityService.resolve_day_rule(template, MONDAY)
        assert rule.day == "Monday"
        assert rule.morning.start == "09:00"

    def test_missing_weekday_is_fully_off(self):
        """Test that a sparse template treats missing days as off (Scenario D)."""
        entries = [entry for entry in weekly_availability(days_off=()) if entry["day"] != "Sunday"]
        template = WeeklyAvailabilityTemplate.from_raw(entries)

        rule = AvailabilityService.resolve_day_rule(template, date(2025, 7, 20))

        assert rule.day == "Sunday"
        assert rule.is_fully_off
        assert AvailabilityService.enumerate_day_slots(rule, 15) == []

    def test_no_cross_day_leakage(self):
        """Test that changing another weekday does not affect the resolved rule."""
        base = weekly_availability()
        changed = [
            {**entry, "morning": {"start": "06:00", "end": "07:00", "is_off": False}}
            if entry["day"] == "Tuesday" else entry
            for entry in base
        ]
        rule_a = AvailabilityService.resolve_day_rule(WeeklyAvailabilityTemplate.from_raw(base), MONDAY)
        rule_b = AvailabilityService.resolve_day_rule(WeeklyAvailabilityTemplate.from_raw(changed), MONDAY)
        assert rule_a == rule_b


class TestComposeDay:
    """Test composition of rule, leave and bookings into a slot list."""

    morning_only = DayRule(day="Monday", morning=period("09:00", "12:00"), evening=PeriodRule.off())

    def test_scenario_open_clinic_no_leave(self):
        """Test Scenario A: every morning slot free on a future date."""
        day = AvailabilityService.compose_day(
            self.morning_only, LeaveResult.not_on_leave(), set(), MONDAY,
            now=datetime(2025, 7, 14, 8, 0), step_minutes=30,
        )
        assert [slot.time for slot in day.slots] == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
        assert all(slot.status == SlotStatus.FREE for slot in day.slots)
        assert day.state == DayState.AVAILABLE

    def test_scenario_leave_overrides_schedule(self):
        """Test Scenario B: a single-day leave empties the day and carries the reason."""
        leave = LeaveService.resolve_leave([LeaveRecord(date=MONDAY)], MONDAY, "Monday")
        day = AvailabilityService.compose_day(
            self.morning_only, leave, set(), MONDAY,
            now=datetime(2025, 7, 14, 8, 0), step_minutes=30,
        )
        assert day.slots == []
        assert day.on_leave
        assert day.state == DayState.ON_LEAVE
        assert day.leave_reason == "On leave on Monday"
        assert day.message == ON_LEAVE_MESSAGE

    def test_leave_skips_enumeration(self):
        """Test that a misconfigured step is not reached when the doctor is on leave."""
        day = AvailabilityService.compose_day(
            self.morning_only, LeaveResult(on_leave=True, reason="Away"), set(), MONDAY,
            now=datetime(2025, 7, 14, 8, 0), step_minutes=0,
        )
        assert day.on_leave

    def test_no_configured_hours_is_distinct_from_leave(self):
        """Test that a fully off day reports no configured hours, not leave."""
        day = AvailabilityService.compose_day(
            DayRule.fully_off("Sunday"), LeaveResult.not_on_leave(), set(), date(2025, 7, 20),
            now=datetime(2025, 7, 14, 8, 0), step_minutes=15,
        )
        assert day.slots == []
        assert not day.on_leave
        assert day.state == DayState.NO_CONFIGURED_HOURS
        assert day.message == NO_CONFIGURED_HOURS_MESSAGE

    def test_booked_slots_marked(self):
        """Test that exactly the booked times are marked booked."""
        rule = DayRule(day="Monday", morning=period("09:00", "10:00"))
        day = AvailabilityService.compose_day(
            rule, LeaveResult.not_on_leave(), {"09:00", "09:30"}, MONDAY,
            now=datetime(2025, 7, 14, 8, 0), step_minutes=15,
        )
        assert [(slot.time, slot.status) for slot in day.slots] == [
            ("09:00", SlotStatus.BOOKED),
            ("09:15", SlotStatus.FREE),
            ("09:30", SlotStatus.BOOKED),
            ("09:45", SlotStatus.FREE),
        ]

    def test_morning_before_evening(self):
        """Test that morning slots come before evening slots."""
        rule = DayRule(day="Monday", morning=period("09:00", "10:00"), evening=period("17:00", "18:00"))
        day = AvailabilityService.compose_day(
            rule, LeaveResult.not_on_leave(), set(), MONDAY,
            now=datetime(2025, 7, 14, 8, 0), step_minutes=30,
        )
        assert [slot.time for slot in day.slots] == ["09:00", "09:30", "17:00", "17:30"]

    def test_today_cutoff(self, fixed_now):
        """Test that on today, slots at or before now are past and later ones stay free."""
        rule = DayRule(day="Monday", morning=period("09:00", "10:00"))
        day = AvailabilityService.compose_day(
            rule, LeaveResult.not_on_leave(), set(), fixed_now.date(),
            now=fixed_now, step_minutes=15,
        )
        statuses = {slot.time: slot.status for slot in day.slots}
        assert statuses["09:00"] == SlotStatus.PAST
        assert statuses["09:15"] == SlotStatus.PAST
        assert statuses["09:30"] == SlotStatus.FREE
        assert day.bookable_times == ["09:30", "09:45"]

    def test_slot_at_exact_now_is_past(self):
        """Test that a slot starting this minute is not offered."""
        rule = DayRule(day="Monday", morning=period("09:00", "10:00"))
        day = AvailabilityService.compose_day(
            rule, LeaveResult.not_on_leave(), set(), MONDAY,
            now=datetime(2025, 7, 21, 9, 30, 45), step_minutes=30,
        )
        assert [(slot.time, slot.status) for slot in day.slots] == [
            ("09:00", SlotStatus.PAST),
            ("09:30", SlotStatus.PAST),
        ]

    def test_past_takes_precedence_over_booked(self, fixed_now):
        """Test that an elapsed booked slot shows as past."""
        rule = DayRule(day="Monday", morning=period("09:00", "10:00"))
        day = AvailabilityService.compose_day(
            rule, LeaveResult.not_on_leave(), {"09:00", "09:45"}, fixed_now.date(),
            now=fixed_now, step_minutes=15,
        )
        statuses = {slot.time: slot.status for slot in day.slots}
        assert statuses["09:00"] == SlotStatus.PAST
        assert statuses["09:45"] == SlotStatus.BOOKED

    def test_earlier_date_is_all_past(self, fixed_now):
        """Test that every slot of an earlier date is past."""
        rule = DayRule(day="Monday", morning=period("09:00", "10:00"))
        day = AvailabilityService.compose_day(
            rule, LeaveResult.not_on_leave(), set(), fixed_now.date() - timedelta(days=7),
            now=fixed_now, step_minutes=30,
        )
        assert all(slot.status == SlotStatus.PAST for slot in day.slots)
        assert day.bookable_times == []

    def test_now_is_converted_to_clinic_time(self):
        """Test that an aware now in another timezone is compared in clinic time."""
        rule = DayRule(day="Monday", morning=period("09:00", "10:00"))
        clinic_time = datetime(2025, 7, 21, 9, 20, tzinfo=CLINIC_TZ)
        day = AvailabilityService.compose_day(
            rule, LeaveResult.not_on_leave(), set(), MONDAY,
            now=clinic_time.astimezone(timezone.utc), step_minutes=15,
        )
        assert day.bookable_times == ["09:30", "09:45"]


class TestGetDayAvailability:
    """Test composing availability from stored doctor data."""

    def test_composes_from_database(self, db_session):
        """Test that template, leave and bookings are all read from storage."""
        doctor = create_doctor(db_session, availability=weekly_availability(evening=None), slot_duration_minutes=60)
        create_appointment(db_session, doctor, MONDAY, "10:00")
        create_appointment(db_session, doctor, MONDAY, "11:00", status="cancelled")

        day = AvailabilityService.get_day_availability(db_session, doctor.id, MONDAY, now=datetime(2025, 7, 14, 8, 0))

        assert [(slot.time, slot.status) for slot in day.slots] == [
            ("09:00", SlotStatus.FREE),
            ("10:00", SlotStatus.BOOKED),
            ("11:00", SlotStatus.FREE),
            ("12:00", SlotStatus.FREE),
        ]
        assert day.doctor_id == doctor.id

    def test_range_leave_blocks_day(self, db_session):
        """Test that a stored range leave empties the day."""
        doctor = create_doctor(db_session)
        create_leave(db_session, doctor, date(2025, 7, 20), date(2025, 7, 22), reason="Conference")

        day = AvailabilityService.get_day_availability(db_session, doctor.id, MONDAY, now=datetime(2025, 7, 14, 8, 0))

        assert day.on_leave
        assert day.leave_reason == "Conference"

    def test_invalid_stored_duration(self, db_session):
        """Test that a stored non-positive slot duration is a configuration error."""
        doctor = create_doctor(db_session, slot_duration_minutes=0)
        with pytest.raises(ConfigurationError):
            AvailabilityService.get_day_availability(db_session, doctor.id, MONDAY)

    def test_unknown_doctor(self, db_session):
        """Test that a missing doctor raises DoctorNotFoundError."""
        with pytest.raises(DoctorNotFoundError):
            AvailabilityService.get_day_availability(db_session, 999, MONDAY)
