"""
Shared types for availability-related functionality.

This module contains the data classes passed between the availability engine
components (template resolution, leave resolution, slot enumeration, booked
slot indexing and composition) and the booking conflict handler.

Stored schedule data arrives in slightly different shapes depending on who
wrote it (camelCase from the web apps, snake_case from the API). The
``from_raw`` constructors normalize it at this boundary so that the engine
only ever sees one shape.
"""

from dataclasses import dataclass, field
from datetime import date as date_type
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from dental_booking.core.constants import (
    WEEKDAY_NAMES, DAY_PERIODS,
    DEFAULT_MORNING_HOURS, DEFAULT_EVENING_HOURS, DEFAULT_DAYS_OFF,
)
from dental_booking.core.exceptions import ConfigurationError
from dental_booking.utils.datetime_utils import coerce_date, normalize_time_string


def _canonical_day_name(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    candidate = value.strip().capitalize()
    return candidate if candidate in WEEKDAY_NAMES else None


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


@dataclass(frozen=True)
class PeriodRule:
    """
    One working period of a day (morning or evening).

    When ``is_off`` is true, ``start``/``end`` are meaningless and never read.
    """
    start: Optional[str] = None  # Format: "HH:MM"
    end: Optional[str] = None  # Format: "HH:MM", "24:00" allowed
    is_off: bool = True

    @classmethod
    def off(cls) -> "PeriodRule":
        return cls(is_off=True)

    @classmethod
    def from_raw(cls, data: Any, label: str = "period") -> "PeriodRule":
        """
        Build a PeriodRule from stored data.

        A missing period is treated as off. An open period must have a
        parsable start and end.

        Raises:
            ConfigurationError: If an open period has a missing or malformed start/end
        """
        if data is None:
            return cls.off()
        if isinstance(data, PeriodRule):
            return data
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"{label} must be an object, got {type(data).__name__}")

        is_off = bool(_first_present(data, "is_off", "isOff", "off"))
        if is_off:
            return cls.off()

        start = _first_present(data, "start", "start_time", "startTime")
        end = _first_present(data, "end", "end_time", "endTime")
        if start is None or end is None:
            raise ConfigurationError(f"{label} is open but has no start/end time")
        try:
            return cls(start=normalize_time_string(str(start)), end=normalize_time_string(str(end)), is_off=False)
        except ValueError as e:
            raise ConfigurationError(f"{label} has an invalid time: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "is_off": self.is_off}


@dataclass(frozen=True)
class DayRule:
    """Availability rule for one weekday: a morning and an evening period."""
    day: str
    morning: PeriodRule = field(default_factory=PeriodRule.off)
    evening: PeriodRule = field(default_factory=PeriodRule.off)

    @classmethod
    def fully_off(cls, day: str) -> "DayRule":
        return cls(day=day, morning=PeriodRule.off(), evening=PeriodRule.off())

    @property
    def is_fully_off(self) -> bool:
        return self.morning.is_off and self.evening.is_off

    def periods(self) -> List[PeriodRule]:
        """Periods in display order (morning first)."""
        return [self.morning, self.evening]

    def to_dict(self) -> Dict[str, Any]:
        return {"day": self.day, "morning": self.morning.to_dict(), "evening": self.evening.to_dict()}


@dataclass(frozen=True)
class WeeklyAvailabilityTemplate:
    """
    A doctor's recurring weekly open hours, keyed by weekday name.

    Weekdays may be missing; the resolver treats a missing day as fully off.
    """
    days: Mapping[str, DayRule] = field(default_factory=dict)

    def get(self, day: str) -> Optional[DayRule]:
        return self.days.get(day)

    @classmethod
    def default(cls) -> "WeeklyAvailabilityTemplate":
        """Template applied to new doctor profiles."""
        days: Dict[str, DayRule] = {}
        for day in WEEKDAY_NAMES:
            if day in DEFAULT_DAYS_OFF:
                days[day] = DayRule.fully_off(day)
            else:
                days[day] = DayRule(
                    day=day,
                    morning=PeriodRule(start=DEFAULT_MORNING_HOURS[0], end=DEFAULT_MORNING_HOURS[1], is_off=False),
                    evening=PeriodRule(start=DEFAULT_EVENING_HOURS[0], end=DEFAULT_EVENING_HOURS[1], is_off=False),
                )
        return cls(days=days)

    @classmethod
    def from_raw(cls, data: Any) -> "WeeklyAvailabilityTemplate":
        """
        Build a template from stored availability data.

        Accepts either the stored list shape
        ``[{"day": "Monday", "morning": {...}, "evening": {...}}, ...]``
        or a dict keyed by weekday name. ``None`` yields an empty template.

        Raises:
            ConfigurationError: If the data is not a list/dict, an entry has an
                unknown weekday, or a period is malformed
        """
        if data is None:
            return cls(days={})
        if isinstance(data, WeeklyAvailabilityTemplate):
            return data

        entries: List[tuple[Any, Any]] = []
        if isinstance(data, Mapping):
            entries = [(day, rule) for day, rule in data.items()]
        elif isinstance(data, (list, tuple)):
            for entry in data:
                if not isinstance(entry, Mapping):
                    raise ConfigurationError(f"Availability entry must be an object, got {type(entry).__name__}")
                entries.append((_first_present(entry, "day", "dayName", "day_name"), entry))
        else:
            raise ConfigurationError(f"Availability must be a list or object, got {type(data).__name__}")

        days: Dict[str, DayRule] = {}
        for raw_day, rule in entries:
            day = _canonical_day_name(raw_day)
            if day is None:
                raise ConfigurationError(f"Unknown weekday in availability: {raw_day!r}")
            if rule is None:
                days[day] = DayRule.fully_off(day)
                continue
            if not isinstance(rule, Mapping):
                raise ConfigurationError(f"Availability for {day} must be an object")
            period_rules = {
                name: PeriodRule.from_raw(rule.get(name), label=f"{day} {name}")
                for name in DAY_PERIODS
            }
            # Later duplicates of the same weekday are ignored; first entry wins
            days.setdefault(day, DayRule(day=day, **period_rules))
        return cls(days=days)

    def to_list(self) -> List[Dict[str, Any]]:
        """Serialize in the stored list shape, Sunday first."""
        return [self.days[day].to_dict() for day in WEEKDAY_NAMES if day in self.days]


@dataclass(frozen=True)
class LeaveRecord:
    """
    A doctor leave entry, either single-day (``date``) or a date range
    (``leave_start_date``..``leave_end_date``, inclusive).
    """
    date: Optional[date_type] = None
    day: Optional[str] = None
    leave_start_date: Optional[date_type] = None
    leave_end_date: Optional[date_type] = None
    reason: Optional[str] = None
    is_active: Optional[bool] = None
    leave_id: Optional[int] = None

    @property
    def is_range(self) -> bool:
        return self.leave_start_date is not None and self.leave_end_date is not None

    @classmethod
    def from_raw(cls, data: Any) -> "LeaveRecord":
        """
        Build a LeaveRecord from stored data (profile entry or leave row dict).

        Raises:
            ValueError: If a present date field cannot be parsed
        """
        if isinstance(data, LeaveRecord):
            return data
        if not isinstance(data, Mapping):
            raise ValueError(f"Leave record must be an object, got {type(data).__name__}")

        def _date(*keys: str) -> Optional[date_type]:
            value = _first_present(data, *keys)
            return coerce_date(value) if value not in (None, "") else None

        is_active = _first_present(data, "is_active", "isActive")
        if is_active is not None:
            # Only an explicit false, as a bool or the string "false", deactivates
            is_active = not (is_active is False or (isinstance(is_active, str) and is_active.strip().lower() == "false"))
        reason = _first_present(data, "reason")
        leave_id = _first_present(data, "id", "leave_id")
        return cls(
            date=_date("date"),
            day=_first_present(data, "day"),
            leave_start_date=_date("leave_start_date", "leaveStartDate", "start_date"),
            leave_end_date=_date("leave_end_date", "leaveEndDate", "end_date"),
            reason=str(reason) if reason else None,
            is_active=is_active,
            leave_id=int(leave_id) if isinstance(leave_id, int) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "date": self.date.isoformat() if self.date else None,
            "day": self.day,
            "leave_start_date": self.leave_start_date.isoformat() if self.leave_start_date else None,
            "leave_end_date": self.leave_end_date.isoformat() if self.leave_end_date else None,
            "reason": self.reason,
            "is_active": self.is_active,
        }
        if self.leave_id is not None:
            result["id"] = self.leave_id
        return result


@dataclass(frozen=True)
class LeaveResult:
    """Outcome of leave resolution for one date."""
    on_leave: bool
    reason: Optional[str] = None

    @classmethod
    def not_on_leave(cls) -> "LeaveResult":
        return cls(on_leave=False)


class SlotStatus(str, Enum):
    FREE = "free"
    BOOKED = "booked"
    PAST = "past"


@dataclass(frozen=True)
class SlotCandidate:
    """One presentable start time and whether it can be selected."""
    time: str  # Format: "HH:MM"
    status: SlotStatus

    @property
    def is_free(self) -> bool:
        return self.status == SlotStatus.FREE

    def to_dict(self) -> Dict[str, str]:
        return {"time": self.time, "status": self.status.value}


class DayState(str, Enum):
    AVAILABLE = "available"
    ON_LEAVE = "on_leave"
    NO_CONFIGURED_HOURS = "no_configured_hours"
    ERROR = "error"


@dataclass
class DayAvailability:
    """
    Composed availability for one doctor on one date.

    ``state`` distinguishes "on leave" from "no configured hours" from "could
    not compute" so each gets its own message; none of them has selectable
    slots.
    """
    date: date_type
    slots: List[SlotCandidate] = field(default_factory=list)
    state: DayState = DayState.AVAILABLE
    on_leave: bool = False
    leave_reason: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    doctor_id: Optional[int] = None

    @property
    def bookable_times(self) -> List[str]:
        if self.state != DayState.AVAILABLE:
            return []
        return [slot.time for slot in self.slots if slot.is_free]

    @property
    def has_free_slots(self) -> bool:
        return bool(self.bookable_times)

    def is_bookable(self, time: str) -> bool:
        return time in self.bookable_times

    def to_dict(self) -> Dict[str, Any]:
        return {
            "doctor_id": self.doctor_id,
            "date": self.date.isoformat(),
            "state": self.state.value,
            "on_leave": self.on_leave,
            "leave_reason": self.leave_reason,
            "message": self.message,
            "error": self.error,
            "slots": [slot.to_dict() for slot in self.slots],
        }


@dataclass
class ConflictOutcome:
    """
    Result of a booking attempt.

    ``refreshed_booked_slots`` is set only when the write lost a slot race; the
    caller must clear the selected time and let the user choose again.
    """
    succeeded: bool
    refreshed_booked_slots: Optional[Set[str]] = None
    appointment: Optional[Dict[str, Any]] = None
    message: Optional[str] = None

    @property
    def is_conflict(self) -> bool:
        return not self.succeeded and self.refreshed_booked_slots is not None


def leave_records_from_raw(records: Optional[Iterable[Any]]) -> List[LeaveRecord]:
    """Normalize a stored leave list; ``None`` means no leave."""
    if not records:
        return []
    return [LeaveRecord.from_raw(record) for record in records]


@dataclass(frozen=True)
class DoctorSchedule:
    """Schedule configuration read from a doctor profile."""
    doctor_id: int
    template: WeeklyAvailabilityTemplate
    slot_duration_minutes: int
