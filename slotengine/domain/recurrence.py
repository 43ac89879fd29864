"""
Weekly recurrence: candidate dates and a non-binding series preview.

Only candidate dates are generated here. Each occurrence is checked with
the chain finder at the same local time, nothing is booked.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from pendulum import Date, DateTime

from .availability import RejectionReason
from .chain_finder import ChainSlotFinder
from .exceptions import InvalidInputError
from .models import BookedInterval, ChainBlock, ChainService, OperatingHours, WeeklySchedule

MAX_OCCURRENCES = 52


class EndType(str, Enum):
    COUNT = "count"
    DATE = "date"


class OccurrenceStatus(str, Enum):
    AVAILABLE = "available"
    NO_WORK = "no_work"
    CONFLICT = "conflict"


_NO_WORK_REASONS = {
    RejectionReason.CLOSED_DAY,
    RejectionReason.OUTSIDE_HOURS,
    RejectionReason.BREAK,
    RejectionReason.OFF_SCHEDULE,
}


@dataclass(frozen=True)
class RecurrencePattern:
    """
    Every ``interval_weeks`` weeks on ``weekdays`` (0=Monday), ending after
    ``count`` occurrences or on ``until``.
    """
    interval_weeks: int = 1
    weekdays: Tuple[int, ...] = ()
    end_type: EndType = EndType.COUNT
    count: int = 1
    until: Optional[Date] = None

    def __post_init__(self):
        object.__setattr__(self, "weekdays", tuple(sorted(set(self.weekdays))))
        object.__setattr__(self, "end_type", EndType(self.end_type))

        if self.interval_weeks < 1:
            raise InvalidInputError("interval_weeks must be at least 1")
        invalid = [day for day in self.weekdays if day not in range(7)]
        if invalid:
            raise InvalidInputError(f"weekdays must be between 0 and 6, got {invalid}")
        if self.end_type is EndType.COUNT and not 1 <= self.count <= MAX_OCCURRENCES:
            raise InvalidInputError(f"count must be between 1 and {MAX_OCCURRENCES}")
        if self.end_type is EndType.DATE and self.until is None:
            raise InvalidInputError("A date-bounded recurrence needs an 'until' date")


@dataclass(frozen=True)
class SeriesOccurrence:
    start: DateTime
    status: OccurrenceStatus
    block: Optional[ChainBlock] = None
    detail: str = ""


@dataclass(frozen=True)
class SeriesPreview:
    occurrences: Tuple[SeriesOccurrence, ...] = ()
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def available_count(self) -> int:
        return self.counts.get(OccurrenceStatus.AVAILABLE.value, 0)


def generate_candidate_dates(first_day: DateTime, pattern: RecurrencePattern) -> List[DateTime]:
    """
    Candidate days for the pattern, starting with the week of ``first_day``.

    Days before ``first_day`` are skipped. Without weekdays the weekday of
    ``first_day`` is used. At most MAX_OCCURRENCES days are returned.
    """
    first = first_day.start_of("day")
    weekdays = pattern.weekdays or (int(first.day_of_week),)
    limit = pattern.count if pattern.end_type is EndType.COUNT else MAX_OCCURRENCES

    dates: List[DateTime] = []
    week_start = first.start_of("week")

    while len(dates) < limit:
        for weekday in weekdays:
            candidate = week_start.add(days=weekday)
            if candidate < first:
                continue
            if pattern.end_type is EndType.DATE and candidate.date() > pattern.until:
                return dates
            dates.append(candidate)
            if len(dates) >= limit:
                break

        week_start = week_start.add(weeks=pattern.interval_weeks)

    return dates


def preview_series(
    first_start: DateTime,
    pattern: RecurrencePattern,
    services: Sequence[ChainService],
    operating_hours: OperatingHours,
    appointments_by_employee: Mapping[str, Sequence[BookedInterval]],
    eligible_employees_by_service: Mapping[str, Sequence[str]],
    schedules_by_employee: Optional[Mapping[str, WeeklySchedule]] = None,
) -> SeriesPreview:
    """
    Check the chain at the same local time on every candidate date.

    Closed days, hours, breaks and employee days off give ``no_work``;
    bookings or a fully booked pool give ``conflict``.
    """
    finder = ChainSlotFinder(operating_hours)
    occurrences: List[SeriesOccurrence] = []
    counts = {status.value: 0 for status in OccurrenceStatus}

    for day in generate_candidate_dates(first_start, pattern):
        start = day.set(hour=first_start.hour, minute=first_start.minute, second=0, microsecond=0)
        outcome = finder.evaluate_chain_at(
            start,
            services,
            appointments_by_employee,
            eligible_employees_by_service,
            schedules_by_employee,
        )

        if isinstance(outcome, ChainBlock):
            occurrence = SeriesOccurrence(start=start, status=OccurrenceStatus.AVAILABLE, block=outcome)
        elif outcome.reason in _NO_WORK_REASONS:
            occurrence = SeriesOccurrence(start=start, status=OccurrenceStatus.NO_WORK, detail=outcome.detail)
        else:
            occurrence = SeriesOccurrence(start=start, status=OccurrenceStatus.CONFLICT, detail=outcome.detail)

        counts[occurrence.status.value] += 1
        occurrences.append(occurrence)

    return SeriesPreview(occurrences=tuple(occurrences), counts=counts)
