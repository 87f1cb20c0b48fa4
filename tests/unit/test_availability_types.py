"""
Unit tests for availability data types and their stored-data constructors.
"""

import pytest
from datetime import date

from dental_booking.core.exceptions import ConfigurationError
from dental_booking.shared_types.availability import (
    PeriodRule, DayRule, WeeklyAvailabilityTemplate, LeaveRecord,
    SlotCandidate, SlotStatus, DayAvailability, DayState, ConflictOutcome,
)


class TestPeriodRule:
    """Test period rule parsing."""

    def test_off_period_ignores_times(self):
        """Test that an off period is accepted even with garbage times."""
        rule = PeriodRule.from_raw({"start": "nonsense", "end": None, "isOff": True})
        assert rule.is_off

    def test_missing_period_is_off(self):
        """Test that an absent period is treated as off."""
        assert PeriodRule.from_raw(None).is_off

    def test_open_period_normalizes_times(self):
        """Test that open period times are normalized to HH:MM."""
        rule = PeriodRule.from_raw({"startTime": "9:00", "endTime": "1:00 PM", "is_off": False})
        assert rule == PeriodRule(start="09:00", end="13:00", is_off=False)

    def test_open_period_without_times_is_configuration_error(self):
        """Test that an open period must have start and end."""
        with pytest.raises(ConfigurationError):
            PeriodRule.from_raw({"start": "09:00", "is_off": False})

    def test_open_period_with_bad_time_is_configuration_error(self):
        """Test that an unparsable time is a configuration error."""
        with pytest.raises(ConfigurationError):
            PeriodRule.from_raw({"start": "9 o'clock", "end": "12:00", "is_off": False})


class TestWeeklyAvailabilityTemplate:
    """Test template construction from stored shapes."""

    def test_from_list_shape(self):
        """Test the stored list shape with day names."""
        template = WeeklyAvailabilityTemplate.from_raw([
            {"day": "Monday", "morning": {"start": "09:00", "end": "12:00", "isOff": False},
             "evening": {"isOff": True}},
        ])
        monday = template.get("Monday")
        assert monday is not None
        assert monday.morning == PeriodRule(start="09:00", end="12:00", is_off=False)
        assert monday.evening.is_off
        assert template.get("Tuesday") is None

    def test_from_dict_shape_and_day_alias(self):
        """Test the dict shape and case-insensitive weekday keys."""
        template = WeeklyAvailabilityTemplate.from_raw({
            "friday": {"morning": {"start": "10:00", "end": "11:00", "is_off": False}},
        })
        friday = template.get("Friday")
        assert friday is not None
        assert friday.morning.start == "10:00"
        assert friday.evening.is_off

    def test_day_name_alias_in_list(self):
        """Test the dayName alias used by the patient portal."""
        template = WeeklyAvailabilityTemplate.from_raw([{"dayName": "Tuesday", "morning": None, "evening": None}])
        assert template.get("Tuesday").is_fully_off

    def test_first_duplicate_wins(self):
        """Test that a repeated weekday keeps the first entry."""
        template = WeeklyAvailabilityTemplate.from_raw([
            {"day": "Monday", "morning": {"start": "09:00", "end": "10:00", "is_off": False}},
            {"day": "Monday", "morning": {"start": "11:00", "end": "12:00", "is_off": False}},
        ])
        assert template.get("Monday").morning.start == "09:00"

    def test_unknown_weekday_is_configuration_error(self):
        """Test that an unknown weekday is rejected."""
        with pytest.raises(ConfigurationError):
            WeeklyAvailabilityTemplate.from_raw([{"day": "Funday"}])

    def test_wrong_container_is_configuration_error(self):
        """Test that a non list/dict template is rejected."""
        with pytest.raises(ConfigurationError):
            WeeklyAvailabilityTemplate.from_raw("Monday 9-5")

    def test_none_is_empty_template(self):
        """Test that missing availability yields an empty template."""
        assert WeeklyAvailabilityTemplate.from_raw(None).days == {}

    def test_default_template(self):
        """Test the default clinic hours for new doctors."""
        template = WeeklyAvailabilityTemplate.default()
        assert template.get("Sunday").is_fully_off
        monday = template.get("Monday")
        assert (monday.morning.start, monday.morning.end) == ("09:00", "13:00")
        assert (monday.evening.start, monday.evening.end) == ("17:00", "21:00")
        assert [entry["day"] for entry in template.to_list()][0] == "Sunday"

    def test_round_trip_through_stored_shape(self):
        """Test that to_list output parses back to the same template."""
        template = WeeklyAvailabilityTemplate.default()
        assert WeeklyAvailabilityTemplate.from_raw(template.to_list()) == template


class TestLeaveRecord:
    """Test leave record parsing."""

    def test_single_day_record(self):
        """Test a profile-embedded single-day entry."""
        record = LeaveRecord.from_raw({"day": "Thursday", "date": "2025-07-24T00:00:00Z"})
        assert record.date == date(2025, 7, 24)
        assert not record.is_range
        assert record.is_active is None

    def test_range_record_with_camel_case(self):
        """Test camelCase range fields."""
        record = LeaveRecord.from_raw({
            "leaveStartDate": "2025-07-23",
            "leaveEndDate": "2025-07-25",
            "isActive": False,
            "reason": "Conference",
        })
        assert record.is_range
        assert record.leave_start_date == date(2025, 7, 23)
        assert record.is_active is False
        assert record.reason == "Conference"

    def test_bad_date_raises_value_error(self):
        """Test that an unparsable date is not silently dropped."""
        with pytest.raises(ValueError):
            LeaveRecord.from_raw({"date": "someday"})

    @pytest.mark.parametrize("raw, expected", [
        ("false", False),
        (" FALSE ", False),
        ("true", True),
        (0, True),
        ("", True),
        (None, None),
    ])
    def test_only_explicit_false_deactivates(self, raw, expected):
        """Test that is_active is False only for a false value or the string "false"."""
        record = LeaveRecord.from_raw({"date": "2025-07-24", "is_active": raw})
        assert record.is_active is expected


class TestDayAvailability:
    """Test composed day helpers."""

    def test_bookable_times_only_free_slots(self):
        """Test that only free slots are bookable."""
        day = DayAvailability(
            date=date(2025, 7, 21),
            slots=[
                SlotCandidate("09:00", SlotStatus.PAST),
                SlotCandidate("09:30", SlotStatus.BOOKED),
                SlotCandidate("10:00", SlotStatus.FREE),
            ],
        )
        assert day.bookable_times == ["10:00"]
        assert day.is_bookable("10:00")
        assert not day.is_bookable("09:30")

    def test_error_day_has_no_bookable_times(self):
        """Test that an error day never offers slots."""
        day = DayAvailability(
            date=date(2025, 7, 21),
            slots=[SlotCandidate("10:00", SlotStatus.FREE)],
            state=DayState.ERROR,
        )
        assert day.bookable_times == []
        assert not day.has_free_slots

    def test_to_dict(self):
        """Test serialization of a composed day."""
        day = DayAvailability(date=date(2025, 7, 21), slots=[SlotCandidate("10:00", SlotStatus.FREE)], doctor_id=3)
        data = day.to_dict()
        assert data["date"] == "2025-07-21"
        assert data["state"] == "available"
        assert data["slots"] == [{"time": "10:00", "status": "free"}]


class TestConflictOutcome:
    """Test conflict outcome flags."""

    def test_conflict_requires_refreshed_slots(self):
        """Test that only a failure with refreshed slots counts as a conflict."""
        assert ConflictOutcome(succeeded=False, refreshed_booked_slots={"09:00"}).is_conflict
        assert not ConflictOutcome(succeeded=True).is_conflict
        assert not ConflictOutcome(succeeded=False).is_conflict
