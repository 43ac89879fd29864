"""
Discrete candidate start instants for a calendar day.
"""

from typing import Iterator, Tuple

from pendulum import DateTime

from .models import OperatingHours


def generate_candidates(day: DateTime, operating_hours: OperatingHours) -> Tuple[DateTime, ...]:
    """
    Step from opening to closing time on ``day`` in ``step_minutes`` increments.

    Returns an empty tuple on days that are not business days. The result is
    a tuple, so callers may iterate it as often as they like.
    """
    window = operating_hours.window_for(day)
    if window is None:
        return ()

    candidates = []
    current = window.start
    while current < window.end:
        candidates.append(current)
        current = current.add(minutes=operating_hours.step_minutes)

    return tuple(candidates)


def iter_days(start_day: DateTime, end_day: DateTime) -> Iterator[DateTime]:
    """Yield the start of each calendar day from ``start_day`` to ``end_day`` inclusive."""
    current = start_day.start_of("day")
    last = end_day.start_of("day")

    while current <= last:
        yield current
        current = current.add(days=1)
