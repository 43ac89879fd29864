"""
Valid start times for a single service.

Pure domain logic without any I/O: candidates come from the time grid and
each one is checked with the availability filter against the bookings of
the employee(s) who can perform the service.
"""

import logging
from typing import Dict, List, Optional, Sequence

from pendulum import DateTime

from . import employee_selector
from .availability import is_free
from .budget import BudgetTracker, SearchBudget, tracker_for
from .exceptions import InvalidInputError, SearchBudgetExceeded
from .models import CandidateSlot, EmployeeAvailabilityView, OperatingHours, ServiceSpec, TimeRange
from .time_grid import generate_candidates, iter_days

logger = logging.getLogger(__name__)


class SingleServiceSlotFinder:
    """
    Finds valid start times for one service.

    Algorithm:
    1. Generate the day's candidate instants
    2. Keep the eligible employees (or only the requested one)
    3. Keep the candidates where the employee is free for the whole duration
    4. Without a preference, merge the free starts of all eligible employees
    """

    def __init__(self, operating_hours: OperatingHours):
        self.operating_hours = operating_hours

    def find_slots(
        self,
        day: DateTime,
        service: ServiceSpec,
        candidate_employees: Sequence[EmployeeAvailabilityView],
        employee_id: Optional[str] = None,
        budget: Optional[SearchBudget] = None,
    ) -> List[CandidateSlot]:
        """
        Find all valid starts for ``service`` on ``day``.

        Args:
            day: Any instant on the target day
            service: The service to book
            candidate_employees: Roster with eligibility and bookings
            employee_id: Requested employee, or None for no preference
            budget: Optional limit on examined candidates / elapsed time

        Returns:
            CandidateSlot list sorted by start. Empty when nobody is eligible
            or nothing is free.

        Raises:
            SearchBudgetExceeded: If the budget ran out before the search ended
        """
        return self._find_on_day(
            day, service, candidate_employees, employee_id, tracker_for(budget)
        )

    def find_slots_in_range(
        self,
        start_day: DateTime,
        end_day: DateTime,
        service: ServiceSpec,
        candidate_employees: Sequence[EmployeeAvailabilityView],
        employee_id: Optional[str] = None,
        budget: Optional[SearchBudget] = None,
    ) -> List[CandidateSlot]:
        """
        Same as ``find_slots`` for every day from ``start_day`` to ``end_day``.

        Raises:
            InvalidInputError: If ``end_day`` is before ``start_day``
        """
        if end_day.start_of("day") < start_day.start_of("day"):
            raise InvalidInputError(
                f"End day {end_day.format('YYYY-MM-DD')} is before start day "
                f"{start_day.format('YYYY-MM-DD')}"
            )

        tracker = tracker_for(budget)
        slots: List[CandidateSlot] = []

        for day in iter_days(start_day, end_day):
            try:
                slots.extend(
                    self._find_on_day(day, service, candidate_employees, employee_id, tracker)
                )
            except SearchBudgetExceeded as exc:
                exc.partial = slots + exc.partial
                raise

        return slots

    def commit_slot(
        self,
        slot: CandidateSlot,
        candidate_employees: Sequence[EmployeeAvailabilityView],
    ) -> Optional[CandidateSlot]:
        """
        Bind a no-preference slot to one employee at booking time.

        Applies the employee selector to the chosen start. Returns None if
        none of the slot's candidates is still free.
        """
        interval = TimeRange(start=slot.start, end=slot.end)
        pool = list(slot.candidate_employee_ids) or [
            view.employee_id for view in candidate_employees
        ]
        bookings = {view.employee_id: view.bookings for view in candidate_employees}
        schedules = {
            view.employee_id: view.schedule
            for view in candidate_employees
            if view.schedule is not None
        }

        chosen = employee_selector.pick(pool, bookings, interval, self.operating_hours, schedules)
        if chosen is None:
            return None

        return CandidateSlot(
            start=slot.start,
            end=slot.end,
            employee_id=chosen,
            candidate_employee_ids=slot.candidate_employee_ids,
        )

    def _find_on_day(
        self,
        day: DateTime,
        service: ServiceSpec,
        candidate_employees: Sequence[EmployeeAvailabilityView],
        employee_id: Optional[str],
        tracker: BudgetTracker,
    ) -> List[CandidateSlot]:
        eligible = [view for view in candidate_employees if view.can_perform(service.id)]

        if employee_id is not None:
            eligible = [view for view in eligible if view.employee_id == employee_id]

        if not eligible:
            logger.debug("No eligible employee for service %s", service.id)
            return []

        candidates = generate_candidates(day, self.operating_hours)

        if employee_id is not None:
            return self._free_starts_for(candidates, service, eligible[0], tracker)

        return self._union_of_free_starts(candidates, service, eligible, tracker)

    def _free_starts_for(
        self,
        candidates: Sequence[DateTime],
        service: ServiceSpec,
        view: EmployeeAvailabilityView,
        tracker: BudgetTracker,
    ) -> List[CandidateSlot]:
        slots: List[CandidateSlot] = []

        for start in candidates:
            tracker.consume(partial=slots)
            if is_free(start, service.duration_minutes, self.operating_hours, view.bookings, view.schedule):
                slots.append(
                    CandidateSlot(
                        start=start,
                        end=start.add(minutes=service.duration_minutes),
                        employee_id=view.employee_id,
                        candidate_employee_ids=(view.employee_id,),
                    )
                )

        return slots

    def _union_of_free_starts(
        self,
        candidates: Sequence[DateTime],
        service: ServiceSpec,
        eligible: Sequence[EmployeeAvailabilityView],
        tracker: BudgetTracker,
    ) -> List[CandidateSlot]:
        """
        Merge free starts across employees.

        Keys are real instants, so equal wall-clock labels on different days
        never collide.
        """
        free_by_start: Dict[DateTime, List[str]] = {}

        try:
            for view in eligible:
                for start in candidates:
                    tracker.consume()
                    if is_free(start, service.duration_minutes, self.operating_hours, view.bookings, view.schedule):
                        free_by_start.setdefault(start, []).append(view.employee_id)
        except SearchBudgetExceeded as exc:
            exc.partial = self._to_slots(free_by_start, service)
            raise

        return self._to_slots(free_by_start, service)

    @staticmethod
    def _to_slots(free_by_start: Dict[DateTime, List[str]], service: ServiceSpec) -> List[CandidateSlot]:
        return [
            CandidateSlot(
                start=start,
                end=start.add(minutes=service.duration_minutes),
                employee_id=None,
                candidate_employee_ids=tuple(free_by_start[start]),
            )
            for start in sorted(free_by_start)
        ]
