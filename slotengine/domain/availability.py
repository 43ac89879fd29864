"""
The single source of truth for "is this employee free at this time".

Both slot finders and the employee selector go through ``check_availability``
so the rules cannot drift apart:

1. The service must fit inside the opening window of its day
   (no spilling past closing time).
2. ``[start, end)`` must not intersect a break. Touching a break is fine,
   any overlap is a rejection.
3. With an employee schedule, the employee must work that weekday and the
   service must fit inside their hours and miss their breaks.
4. ``[start, end)`` must not overlap an existing booking.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from pendulum import DateTime

from .models import WEEKDAY_NAMES, BookedInterval, OperatingHours, WeeklySchedule


class RejectionReason(str, Enum):
    CLOSED_DAY = "closed_day"
    OUTSIDE_HOURS = "outside_hours"
    BREAK = "break"
    OFF_SCHEDULE = "off_schedule"
    CONFLICT = "conflict"
    NO_EMPLOYEE = "no_employee"


@dataclass(frozen=True)
class Rejection:
    """Why a start instant was refused."""
    reason: RejectionReason
    detail: str = ""


def check_availability(
    start: DateTime,
    duration_minutes: int,
    operating_hours: OperatingHours,
    booked_intervals: Iterable[BookedInterval],
    employee_schedule: Optional[WeeklySchedule] = None,
) -> Optional[Rejection]:
    """
    Return the first rule that rejects ``[start, start + duration)``,
    or None when the interval is free.
    """
    end = start.add(minutes=duration_minutes)

    window = operating_hours.window_for(start)
    if window is None:
        return Rejection(
            RejectionReason.CLOSED_DAY,
            f"{start.format('YYYY-MM-DD')} is not a business day",
        )

    if start < window.start or end > window.end:
        return Rejection(
            RejectionReason.OUTSIDE_HOURS,
            f"{start.format('HH:mm')}-{end.format('HH:mm')} is outside "
            f"{window.start.format('HH:mm')}-{window.end.format('HH:mm')}",
        )

    for period in operating_hours.breaks_for(start):
        if start < period.end and end > period.start:
            return Rejection(
                RejectionReason.BREAK,
                f"overlaps break {period.start.format('HH:mm')}-{period.end.format('HH:mm')}",
            )

    if employee_schedule is not None:
        rejection = _check_employee_schedule(start, end, employee_schedule)
        if rejection is not None:
            return rejection

    for booked in booked_intervals:
        if start < booked.end and end > booked.start:
            label = f"booking {booked.appointment_id}" if booked.appointment_id else "a booking"
            return Rejection(
                RejectionReason.CONFLICT,
                f"overlaps {label} "
                f"{booked.start.format('HH:mm')}-{booked.end.format('HH:mm')}",
            )

    return None


def is_free(
    start: DateTime,
    duration_minutes: int,
    operating_hours: OperatingHours,
    booked_intervals: Iterable[BookedInterval],
    employee_schedule: Optional[WeeklySchedule] = None,
) -> bool:
    """True only if all availability rules pass."""
    rejection = check_availability(
        start,
        duration_minutes,
        operating_hours,
        booked_intervals,
        employee_schedule,
    )
    return rejection is None


def _check_employee_schedule(
    start: DateTime,
    end: DateTime,
    schedule: WeeklySchedule,
) -> Optional[Rejection]:
    entry = schedule.for_day(start)
    if entry is None:
        return Rejection(
            RejectionReason.OFF_SCHEDULE,
            f"employee does not work on {WEEKDAY_NAMES[int(start.day_of_week)]}",
        )

    window = entry.window_on(start)
    if start < window.start or end > window.end:
        return Rejection(
            RejectionReason.OFF_SCHEDULE,
            f"{start.format('HH:mm')}-{end.format('HH:mm')} is outside employee hours "
            f"{window.start.format('HH:mm')}-{window.end.format('HH:mm')}",
        )

    for period in entry.breaks_on(start):
        if start < period.end and end > period.start:
            return Rejection(
                RejectionReason.BREAK,
                f"overlaps employee break {period.start.format('HH:mm')}-{period.end.format('HH:mm')}",
            )

    return None
