"""
Valid block starts for a chain of services booked back-to-back on one day.

A chain models one continuous visit. A start instant is offered only if
every service in the chain fits, one after the other, without gaps; a
failing step rejects the whole start and the search moves on to the next
candidate.
"""

import logging
from typing import List, Mapping, Optional, Sequence, Union

from pendulum import DateTime

from . import employee_selector
from .availability import Rejection, RejectionReason, check_availability
from .budget import SearchBudget, tracker_for
from .exceptions import InvalidInputError
from .models import (
    BookedInterval,
    ChainBlock,
    ChainInterval,
    ChainService,
    OperatingHours,
    TimeRange,
    WeeklySchedule,
)
from .time_grid import generate_candidates

logger = logging.getLogger(__name__)


class ChainSlotFinder:
    """
    Finds start times for an ordered chain of services.

    Algorithm, for every grid instant ``t`` where the whole chain fits
    before closing time:
    1. Walk the chain with a cursor starting at ``t``
    2. Fixed employee: the employee must be free for the step
    3. Auto: pick the least-loaded free employee from the service's pool
    4. Any failure abandons ``t``; success records a ChainBlock
    """

    def __init__(self, operating_hours: OperatingHours):
        self.operating_hours = operating_hours

    def find_chain_slots(
        self,
        day: DateTime,
        services: Sequence[ChainService],
        appointments_by_employee: Mapping[str, Sequence[BookedInterval]],
        eligible_employees_by_service: Mapping[str, Sequence[str]],
        budget: Optional[SearchBudget] = None,
        schedules_by_employee: Optional[Mapping[str, WeeklySchedule]] = None,
    ) -> List[ChainBlock]:
        """
        Find every valid block start for ``services`` on ``day``.

        Args:
            day: Any instant on the target day
            services: The chain, in booking order
            appointments_by_employee: Existing bookings per employee id
            eligible_employees_by_service: Auto-assignment pool per service id
            budget: Optional limit on examined candidates / elapsed time
            schedules_by_employee: Weekly schedules of employees that have one

        Returns:
            ChainBlock list sorted by block start

        Raises:
            InvalidInputError: If the chain is empty
            SearchBudgetExceeded: If the budget ran out before the search ended
        """
        self._validate_chain(services)

        total_duration = sum(service.duration_minutes for service in services)
        window = self.operating_hours.window_for(day)
        if window is None:
            return []

        tracker = tracker_for(budget)
        blocks: List[ChainBlock] = []
        rejected = 0

        for start in generate_candidates(day, self.operating_hours):
            if start.add(minutes=total_duration) > window.end:
                break

            tracker.consume(partial=blocks)
            outcome = self._walk_chain(
                start,
                services,
                appointments_by_employee,
                eligible_employees_by_service,
                schedules_by_employee or {},
            )
            if isinstance(outcome, ChainBlock):
                blocks.append(outcome)
            else:
                rejected += 1

        logger.debug(
            "Chain of %d service(s) on %s: %d block(s), %d rejected start(s)",
            len(services),
            day.format("YYYY-MM-DD"),
            len(blocks),
            rejected,
        )
        return blocks

    def evaluate_chain_at(
        self,
        start: DateTime,
        services: Sequence[ChainService],
        appointments_by_employee: Mapping[str, Sequence[BookedInterval]],
        eligible_employees_by_service: Mapping[str, Sequence[str]],
        schedules_by_employee: Optional[Mapping[str, WeeklySchedule]] = None,
    ) -> Union[ChainBlock, Rejection]:
        """
        Evaluate one exact start instant.

        Returns the ChainBlock when the chain fits, otherwise the Rejection
        of the first failing step.
        """
        self._validate_chain(services)
        return self._walk_chain(
            start,
            services,
            appointments_by_employee,
            eligible_employees_by_service,
            schedules_by_employee or {},
        )

    def _walk_chain(
        self,
        start: DateTime,
        services: Sequence[ChainService],
        appointments_by_employee: Mapping[str, Sequence[BookedInterval]],
        eligible_employees_by_service: Mapping[str, Sequence[str]],
        schedules_by_employee: Mapping[str, WeeklySchedule],
    ) -> Union[ChainBlock, Rejection]:
        intervals: List[ChainInterval] = []
        cursor = start

        for service in services:
            step_end = cursor.add(minutes=service.duration_minutes)

            if service.employee_id is not None:
                employee_id = service.employee_id
                rejection = check_availability(
                    cursor,
                    service.duration_minutes,
                    self.operating_hours,
                    appointments_by_employee.get(employee_id, ()),
                    schedules_by_employee.get(employee_id),
                )
                if rejection is not None:
                    return rejection
            else:
                employee_id = employee_selector.pick(
                    eligible_employees_by_service.get(service.service_id, ()),
                    appointments_by_employee,
                    TimeRange(start=cursor, end=step_end),
                    self.operating_hours,
                    schedules_by_employee,
                )
                if employee_id is None:
                    return self._explain_auto_failure(cursor, service)

            intervals.append(
                ChainInterval(
                    service_id=service.service_id,
                    employee_id=employee_id,
                    start=cursor,
                    end=step_end,
                )
            )
            cursor = step_end

        return ChainBlock(block_start=start, intervals=tuple(intervals))

    def _explain_auto_failure(self, cursor: DateTime, service: ChainService) -> Rejection:
        """Tell a closed or blocked time apart from a fully booked pool."""
        rejection = check_availability(cursor, service.duration_minutes, self.operating_hours, ())
        if rejection is not None:
            return rejection
        return Rejection(
            RejectionReason.NO_EMPLOYEE,
            f"no eligible employee is free for {service.service_id} at {cursor.format('HH:mm')}",
        )

    @staticmethod
    def _validate_chain(services: Sequence[ChainService]) -> None:
        if not services:
            raise InvalidInputError("A service chain needs at least one service")
