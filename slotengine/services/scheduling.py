"""
Application service for slot finding and calendar layout.

The service fetches a schedule snapshot through a source adapter and
delegates the actual calculation to the pure domain finders. This keeps the
HTTP and CLI hosts thin and lets tests swap the booking store for a stub
via a simple protocol.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from pendulum import DateTime

from ..domain.availability import Rejection, check_availability
from ..domain.budget import SearchBudget
from ..domain.chain_finder import ChainSlotFinder
from ..domain.exceptions import InvalidInputError, UnknownEntityError
from ..domain.layout import layout
from ..domain.models import (
    CandidateSlot,
    ChainBlock,
    ChainService,
    LayoutAssignment,
    ScheduleSnapshot,
    ServiceSpec,
)
from ..domain.recurrence import RecurrencePattern, SeriesPreview, generate_candidate_dates, preview_series
from ..domain.slot_finder import SingleServiceSlotFinder

logger = logging.getLogger(__name__)


class SnapshotSourceProtocol(Protocol):
    """Protocol describing the collaborator that supplies schedule data."""

    async def get_snapshot(self, start_time: DateTime, end_time: DateTime) -> ScheduleSnapshot:
        """Return services, employees and the bookings overlapping the window."""


@dataclass(frozen=True)
class ServiceRequest:
    """One requested service; ``employee_id=None`` means no preference."""
    service_id: str
    employee_id: Optional[str] = None


@dataclass(frozen=True)
class SlotRequest:
    day: DateTime
    service_id: str
    employee_id: Optional[str] = None


@dataclass(frozen=True)
class BatchSlotResult:
    day: DateTime
    service_id: str
    employee_id: Optional[str]
    slots: List[CandidateSlot]


class SchedulingService:
    """
    Orchestrates snapshot retrieval and the scheduling algorithms.

    Dependency inversion toward a protocol makes it easy to plug in the real
    booking store client or the file-backed source in tests.
    """

    def __init__(
        self,
        snapshot_source: SnapshotSourceProtocol,
        budget: Optional[SearchBudget] = None,
    ) -> None:
        self._snapshot_source = snapshot_source
        self._budget = budget

    async def service_slots(
        self,
        *,
        service_id: str,
        day: DateTime,
        employee_id: Optional[str] = None,
        end_day: Optional[DateTime] = None,
    ) -> List[CandidateSlot]:
        """
        Valid starts for one service on ``day`` (or through ``end_day``).
        """
        last_day = end_day or day
        if last_day.start_of("day") < day.start_of("day"):
            raise InvalidInputError(
                f"End day {last_day.format('YYYY-MM-DD')} is before start day {day.format('YYYY-MM-DD')}"
            )
        snapshot = await self._snapshot_for(day, last_day)
        service = self._require_service(snapshot, service_id)
        if employee_id is not None:
            self._require_employee(snapshot, employee_id)

        finder = SingleServiceSlotFinder(snapshot.operating_hours)
        return finder.find_slots_in_range(
            day,
            last_day,
            service,
            snapshot.employees,
            employee_id=employee_id,
            budget=self._budget,
        )

    async def chain_slots(
        self,
        *,
        day: DateTime,
        services: Sequence[ServiceRequest],
    ) -> List[ChainBlock]:
        """Valid block starts for services booked back-to-back on ``day``."""
        if not services:
            raise InvalidInputError("A service chain needs at least one service")

        snapshot = await self._snapshot_for(day, day)
        chain = self._build_chain(snapshot, services)

        finder = ChainSlotFinder(snapshot.operating_hours)
        return finder.find_chain_slots(
            day,
            chain,
            snapshot.bookings_by_employee(),
            snapshot.eligible_ids_by_service(),
            budget=self._budget,
            schedules_by_employee=snapshot.schedules_by_employee(),
        )

    async def calendar_layout(
        self,
        *,
        employee_id: str,
        day: DateTime,
    ) -> List[LayoutAssignment]:
        """Column layout of one employee's appointments on ``day``."""
        snapshot = await self._snapshot_for(day, day)
        employee = self._require_employee(snapshot, employee_id)
        return layout(employee.bookings)

    async def batch_slots(self, requests: Sequence[SlotRequest]) -> List[BatchSlotResult]:
        """
        Slots for several (day, service, employee) requests, e.g. one
        service per day when a visit is split over several days.
        """
        if not requests:
            return []

        first_day = min(request.day for request in requests)
        last_day = max(request.day for request in requests)
        snapshot = await self._snapshot_for(first_day, last_day)
        finder = SingleServiceSlotFinder(snapshot.operating_hours)

        results: List[BatchSlotResult] = []
        for request in requests:
            service = self._require_service(snapshot, request.service_id)
            if request.employee_id is not None:
                self._require_employee(snapshot, request.employee_id)
            slots = finder.find_slots(
                request.day,
                service,
                snapshot.employees,
                employee_id=request.employee_id,
                budget=self._budget,
            )
            results.append(
                BatchSlotResult(
                    day=request.day,
                    service_id=request.service_id,
                    employee_id=request.employee_id,
                    slots=slots,
                )
            )

        return results

    async def preview_series(
        self,
        *,
        first_start: DateTime,
        services: Sequence[ServiceRequest],
        pattern: RecurrencePattern,
    ) -> SeriesPreview:
        """Availability of a recurring chain on each candidate date. Books nothing."""
        if not services:
            raise InvalidInputError("A service chain needs at least one service")

        dates = generate_candidate_dates(first_start, pattern)
        if not dates:
            return SeriesPreview()

        snapshot = await self._snapshot_for(dates[0], dates[-1])
        chain = self._build_chain(snapshot, services)

        return preview_series(
            first_start,
            pattern,
            chain,
            snapshot.operating_hours,
            snapshot.bookings_by_employee(),
            snapshot.eligible_ids_by_service(),
            snapshot.schedules_by_employee(),
        )

    async def validate_start(
        self,
        *,
        employee_id: str,
        service_id: str,
        start: DateTime,
    ) -> Optional[Rejection]:
        """
        Check one concrete start for one employee right before booking.

        Returns None when the start is valid, otherwise the reason.
        """
        snapshot = await self._snapshot_for(start, start)
        service = self._require_service(snapshot, service_id)
        employee = self._require_employee(snapshot, employee_id)

        return check_availability(
            start,
            service.duration_minutes,
            snapshot.operating_hours,
            employee.bookings,
            employee.schedule,
        )

    async def _snapshot_for(self, first_day: DateTime, last_day: DateTime) -> ScheduleSnapshot:
        start = first_day.start_of("day")
        end = last_day.end_of("day")
        logger.debug("Loading snapshot for %s - %s", start, end)
        return await self._snapshot_source.get_snapshot(start, end)

    @staticmethod
    def _require_service(snapshot: ScheduleSnapshot, service_id: str) -> ServiceSpec:
        service = snapshot.service(service_id)
        if service is None:
            raise UnknownEntityError(f"Unknown service: {service_id}")
        return service

    @staticmethod
    def _require_employee(snapshot: ScheduleSnapshot, employee_id: str):
        employee = snapshot.employee(employee_id)
        if employee is None:
            raise UnknownEntityError(f"Unknown employee: {employee_id}")
        return employee

    def _build_chain(
        self,
        snapshot: ScheduleSnapshot,
        services: Sequence[ServiceRequest],
    ) -> List[ChainService]:
        """Resolve durations from the snapshot and check fixed employees exist."""
        chain: List[ChainService] = []

        for request in services:
            service = self._require_service(snapshot, request.service_id)
            if request.employee_id is not None:
                self._require_employee(snapshot, request.employee_id)
            chain.append(
                ChainService(
                    service_id=service.id,
                    duration_minutes=service.duration_minutes,
                    employee_id=request.employee_id,
                )
            )

        return chain
