"""
Domain models for operating hours, bookings, slots and layout results.

Every model is an immutable snapshot value. Nothing here owns long-lived
state: callers build the models from external data for each query.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from pendulum import DateTime

from .exceptions import InvalidInputError

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def _at_time_of_day(day: DateTime, moment: time) -> DateTime:
    return day.set(
        hour=moment.hour,
        minute=moment.minute,
        second=0,
        microsecond=0,
    )


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInputError(
                f"Start time {self.start} must be before end time {self.end}"
            )

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another (half-open intervals)."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class BreakPeriod:
    """
    A recurring break inside operating hours.

    ``weekday`` limits the break to one weekday (0=Monday); ``None`` applies
    it to every business day.
    """
    start: time
    end: time
    weekday: Optional[int] = None
    note: str = ""

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInputError(
                f"Break start {self.start} must be before break end {self.end}"
            )
        if self.weekday is not None and self.weekday not in range(7):
            raise InvalidInputError(
                f"Break weekday must be between 0 and 6, got {self.weekday}"
            )

    def applies_to(self, weekday: int) -> bool:
        return self.weekday is None or self.weekday == weekday

    def on_day(self, day: DateTime) -> TimeRange:
        return TimeRange(
            start=_at_time_of_day(day, self.start),
            end=_at_time_of_day(day, self.end),
        )


@dataclass(frozen=True)
class DaySchedule:
    """
    Hours of one weekday inside a weekly schedule.

    ``available=False`` marks a day off; its times are ignored.
    """
    weekday: int
    start: Optional[time] = None
    end: Optional[time] = None
    breaks: Tuple[BreakPeriod, ...] = ()
    available: bool = True

    def __post_init__(self):
        object.__setattr__(self, "breaks", tuple(self.breaks))

        if self.weekday not in range(7):
            raise InvalidInputError(
                f"Schedule weekday must be between 0 and 6, got {self.weekday}"
            )
        if not self.available:
            return

        if self.start is None or self.end is None or self.start >= self.end:
            raise InvalidInputError(
                f"{WEEKDAY_NAMES[self.weekday]} needs a start before its end, "
                f"got {self.start}-{self.end}"
            )
        ordered = sorted(self.breaks, key=lambda b: b.start)
        for period in ordered:
            if period.start < self.start or period.end > self.end:
                raise InvalidInputError(
                    f"Break {period.start}-{period.end} lies outside "
                    f"{WEEKDAY_NAMES[self.weekday]} hours {self.start}-{self.end}"
                )
        for previous, current in zip(ordered, ordered[1:]):
            if current.start < previous.end:
                raise InvalidInputError(
                    f"Breaks {previous.start}-{previous.end} and "
                    f"{current.start}-{current.end} overlap on "
                    f"{WEEKDAY_NAMES[self.weekday]}"
                )

    def window_on(self, day: DateTime) -> TimeRange:
        return TimeRange(
            start=_at_time_of_day(day, self.start),
            end=_at_time_of_day(day, self.end),
        )

    def breaks_on(self, day: DateTime) -> Tuple[TimeRange, ...]:
        return tuple(b.on_day(day) for b in self.breaks)


@dataclass(frozen=True)
class WeeklySchedule:
    """
    Per-weekday hours of the organization or of one employee.

    A weekday without an entry is a day off.
    """
    days: Tuple[DaySchedule, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "days", tuple(self.days))

        weekdays = [entry.weekday for entry in self.days]
        repeated = sorted({day for day in weekdays if weekdays.count(day) > 1})
        if repeated:
            raise InvalidInputError(f"Weekly schedule repeats weekdays {repeated}")

    def for_day(self, day: DateTime) -> DaySchedule | None:
        """The working entry for ``day``, or None on a day off."""
        weekday = int(day.day_of_week)
        for entry in self.days:
            if entry.weekday == weekday:
                return entry if entry.available else None
        return None


@dataclass(frozen=True)
class OperatingHours:
    """
    The organization's opening window, business days and breaks.

    Weekdays use 0=Monday ... 6=Sunday. When ``weekly`` is set it replaces
    ``start``/``end`` and ``business_days`` day by day; its breaks add to
    ``breaks``.
    """
    start: time
    end: time
    business_days: FrozenSet[int] = frozenset(range(7))
    breaks: Tuple[BreakPeriod, ...] = ()
    step_minutes: int = 15
    weekly: Optional[WeeklySchedule] = None

    def __post_init__(self):
        # Accept any iterable for convenience, store immutable containers.
        object.__setattr__(self, "business_days", frozenset(self.business_days))
        object.__setattr__(self, "breaks", tuple(self.breaks))

        if self.start >= self.end:
            raise InvalidInputError(
                f"Opening time {self.start} must be before closing time {self.end}"
            )
        if self.step_minutes <= 0:
            raise InvalidInputError(
                f"step_minutes must be greater than zero, got {self.step_minutes}"
            )
        invalid_days = sorted(day for day in self.business_days if day not in range(7))
        if invalid_days:
            raise InvalidInputError(
                f"business_days must be between 0 and 6, got {invalid_days}"
            )

        for period in self.breaks:
            if period.start < self.start or period.end > self.end:
                raise InvalidInputError(
                    f"Break {period.start}-{period.end} lies outside operating "
                    f"hours {self.start}-{self.end}"
                )

        for weekday in range(7):
            day_breaks = sorted(
                (b for b in self.breaks if b.applies_to(weekday)),
                key=lambda b: b.start,
            )
            for previous, current in zip(day_breaks, day_breaks[1:]):
                if current.start < previous.end:
                    raise InvalidInputError(
                        f"Breaks {previous.start}-{previous.end} and "
                        f"{current.start}-{current.end} overlap on "
                        f"{WEEKDAY_NAMES[weekday]}"
                    )

    def is_business_day(self, day: DateTime) -> bool:
        """Check if a given datetime falls on a business day."""
        if self.weekly is not None:
            return self.weekly.for_day(day) is not None
        return int(day.day_of_week) in self.business_days

    def window_for(self, day: DateTime) -> TimeRange | None:
        """
        Get the opening window for a specific day.
        Returns None if it's not a business day.
        """
        if not self.is_business_day(day):
            return None

        if self.weekly is not None:
            return self.weekly.for_day(day).window_on(day)

        return TimeRange(
            start=_at_time_of_day(day, self.start),
            end=_at_time_of_day(day, self.end),
        )

    def breaks_for(self, day: DateTime) -> Tuple[TimeRange, ...]:
        """Breaks that apply to the given day, ordered by start."""
        weekday = int(day.day_of_week)
        ranges = [b.on_day(day) for b in self.breaks if b.applies_to(weekday)]

        entry = self.weekly.for_day(day) if self.weekly is not None else None
        if entry is not None:
            ranges.extend(entry.breaks_on(day))

        return tuple(sorted(ranges, key=lambda r: r.start))


@dataclass(frozen=True)
class ServiceSpec:
    """A bookable service. Read-only input."""
    id: str
    duration_minutes: int

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise InvalidInputError(
                f"Service {self.id!r} must have a positive duration, "
                f"got {self.duration_minutes}"
            )


@dataclass(frozen=True)
class BookedInterval:
    """An existing appointment occupying one employee."""
    start: DateTime
    end: DateTime
    appointment_id: Optional[str] = None
    status: str = "confirmed"

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInputError(
                f"Booking start {self.start} must be before end {self.end}"
            )


@dataclass(frozen=True)
class EmployeeAvailabilityView:
    """
    Read-only projection of one employee: the services they perform,
    their existing bookings for the day(s) in question and, optionally,
    their own weekly schedule. Without a schedule the employee works
    whenever the organization is open.
    """
    employee_id: str
    service_ids: FrozenSet[str] = frozenset()
    bookings: Tuple[BookedInterval, ...] = ()
    schedule: Optional[WeeklySchedule] = None

    def __post_init__(self):
        object.__setattr__(self, "service_ids", frozenset(self.service_ids))
        object.__setattr__(self, "bookings", tuple(self.bookings))

    def can_perform(self, service_id: str) -> bool:
        return service_id in self.service_ids


@dataclass(frozen=True)
class CandidateSlot:
    """
    A valid start for a single service.

    ``employee_id`` is only set when a specific employee was requested.
    No-preference slots list every employee free at that start in
    ``candidate_employee_ids``; the final choice happens at booking time.
    """
    start: DateTime
    end: DateTime
    employee_id: Optional[str] = None
    candidate_employee_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ChainService:
    """One step of a chain; ``employee_id=None`` means auto-assign."""
    service_id: str
    duration_minutes: int
    employee_id: Optional[str] = None

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise InvalidInputError(
                f"Chain service {self.service_id!r} must have a positive "
                f"duration, got {self.duration_minutes}"
            )


@dataclass(frozen=True)
class ChainInterval:
    service_id: str
    employee_id: str
    start: DateTime
    end: DateTime


@dataclass(frozen=True)
class ChainBlock:
    """
    A valid start for a whole chain. Intervals are contiguous and keep the
    order of the requested services.
    """
    block_start: DateTime
    intervals: Tuple[ChainInterval, ...]

    @property
    def block_end(self) -> DateTime:
        return self.intervals[-1].end

    def employee_ids(self) -> List[str]:
        return [interval.employee_id for interval in self.intervals]


@dataclass(frozen=True)
class LayoutAssignment:
    """Column placement of one appointment inside its overlap cluster."""
    appointment_id: str
    column: int
    total_columns: int
    cluster: int = 0


@dataclass(frozen=True)
class ScheduleSnapshot:
    """
    Everything a query needs, pre-resolved by the surrounding system.
    """
    operating_hours: OperatingHours
    services: Mapping[str, ServiceSpec] = field(default_factory=dict)
    employees: Tuple[EmployeeAvailabilityView, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "services", dict(self.services))
        object.__setattr__(self, "employees", tuple(self.employees))

    def service(self, service_id: str) -> ServiceSpec | None:
        return self.services.get(service_id)

    def employee(self, employee_id: str) -> EmployeeAvailabilityView | None:
        for view in self.employees:
            if view.employee_id == employee_id:
                return view
        return None

    def eligible_employees(self, service_id: str) -> List[EmployeeAvailabilityView]:
        return [view for view in self.employees if view.can_perform(service_id)]

    def bookings_by_employee(self) -> Dict[str, Tuple[BookedInterval, ...]]:
        return {view.employee_id: view.bookings for view in self.employees}

    def schedules_by_employee(self) -> Dict[str, WeeklySchedule]:
        return {
            view.employee_id: view.schedule
            for view in self.employees
            if view.schedule is not None
        }

    def eligible_ids_by_service(self) -> Dict[str, List[str]]:
        return {
            service_id: [view.employee_id for view in self.eligible_employees(service_id)]
            for service_id in self.services
        }
