"""
Load-balanced choice of an employee for one interval.
"""

import logging
from typing import Iterable, Mapping, Optional, Sequence

from .availability import is_free
from .models import BookedInterval, OperatingHours, TimeRange, WeeklySchedule

logger = logging.getLogger(__name__)


def daily_load(bookings: Iterable[BookedInterval], interval: TimeRange) -> int:
    """Number of bookings on the same calendar day as ``interval``."""
    day = interval.start.date()
    return sum(1 for booked in bookings if booked.start.date() == day)


def pick(
    candidates: Sequence[str],
    bookings_by_employee: Mapping[str, Sequence[BookedInterval]],
    interval: TimeRange,
    operating_hours: OperatingHours,
    schedules_by_employee: Optional[Mapping[str, WeeklySchedule]] = None,
) -> Optional[str]:
    """
    Return the free candidate with the fewest bookings that day.

    Ties go to the candidate listed first, so identical input always gives
    the same answer. Employees listed in ``schedules_by_employee`` must also
    be on shift. Returns None if nobody is free.
    """
    duration = interval.duration_minutes()
    schedules = schedules_by_employee or {}
    best_id: Optional[str] = None
    best_load = 0
    seen = set()

    for employee_id in candidates:
        if employee_id in seen:
            continue
        seen.add(employee_id)

        bookings = bookings_by_employee.get(employee_id, ())
        if not is_free(
            interval.start,
            duration,
            operating_hours,
            bookings,
            schedules.get(employee_id),
        ):
            continue

        load = daily_load(bookings, interval)
        # Strict comparison keeps the earliest candidate on ties.
        if best_id is None or load < best_load:
            best_id = employee_id
            best_load = load

    if best_id is None:
        logger.debug("No free employee among %s for %s", list(candidates), interval)

    return best_id
