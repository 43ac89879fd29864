"""
Turn booking-store payloads into a ScheduleSnapshot.

Records may use either ``id`` or ``_id`` and may embed related objects
instead of plain ids (``{"employee": {"_id": "..."}}``). Cancelled
appointments never block time and are dropped here.

Weekly schedules number their days like JavaScript's ``getDay``
(0=Sunday) and are converted to 0=Monday on the way in.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pendulum
from pendulum import DateTime

from ..config import parse_clock
from ..domain.exceptions import InvalidInputError
from ..domain.models import (
    BookedInterval,
    BreakPeriod,
    DaySchedule,
    EmployeeAvailabilityView,
    OperatingHours,
    ScheduleSnapshot,
    ServiceSpec,
    WeeklySchedule,
)

logger = logging.getLogger(__name__)


def get_id(value: Any) -> Optional[str]:
    """Normalize an id that may arrive as a string or an object with ``_id``/``id``."""
    if value is None or value == "":
        return None
    if isinstance(value, Mapping):
        nested = value.get("_id", value.get("id"))
        return str(nested) if nested not in (None, "") else None
    return str(value)


def is_cancelled(status: str) -> bool:
    return "cancelled" in (status or "").lower()


def parse_datetime(value: Any, timezone: str) -> DateTime:
    """
    Parse an ISO 8601 string to a pendulum DateTime in ``timezone``.

    Strings without an offset are read as local time of the organization.
    """
    if isinstance(value, DateTime):
        return value.in_timezone(timezone)

    dt = pendulum.parse(str(value), tz=timezone)
    if isinstance(dt, DateTime):
        return dt.in_timezone(timezone)

    raise ValueError(f"Could not parse datetime: {value}")


def parse_services(records: Iterable[Mapping[str, Any]]) -> Dict[str, ServiceSpec]:
    services: Dict[str, ServiceSpec] = {}

    for record in records:
        service_id = get_id(record)
        if service_id is None:
            logger.warning("Skipping service record without id: %s", record)
            continue
        try:
            duration = int(record.get("duration", record.get("duration_minutes")))
            services[service_id] = ServiceSpec(id=service_id, duration_minutes=duration)
        except (TypeError, ValueError, InvalidInputError) as exc:
            logger.warning("Skipping service %s: %s", service_id, exc)

    return services


def _weekday_from_store(day: Any) -> int:
    """Convert a 0=Sunday day number to 0=Monday."""
    value = int(day)
    if value not in range(7):
        raise ValueError(f"day must be between 0 and 6, got {value}")
    return (value + 6) % 7


def parse_day_schedule(record: Mapping[str, Any]) -> DaySchedule:
    weekday = _weekday_from_store(record.get("day"))
    available = record.get("isAvailable", record.get("isOpen", True))
    if not available:
        return DaySchedule(weekday=weekday, available=False)

    breaks = tuple(
        BreakPeriod(
            start=parse_clock(item.get("start")),
            end=parse_clock(item.get("end")),
            note=str(item.get("note") or ""),
        )
        for item in record.get("breaks") or []
    )
    return DaySchedule(
        weekday=weekday,
        start=parse_clock(record.get("start")),
        end=parse_clock(record.get("end")),
        breaks=breaks,
    )


def parse_weekly_schedule(record: Optional[Mapping[str, Any]]) -> Optional[WeeklySchedule]:
    """
    Parse ``{"enabled", "schedule": [...]}``. A missing or disabled
    schedule gives None; malformed days are skipped and count as days off.
    """
    if not record or not record.get("enabled"):
        return None

    days: List[DaySchedule] = []
    for day_record in record.get("schedule") or []:
        try:
            days.append(parse_day_schedule(day_record))
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Skipping schedule day %s: %s", day_record, exc)

    try:
        return WeeklySchedule(days=tuple(days))
    except InvalidInputError as exc:
        logger.warning("Ignoring weekly schedule: %s", exc)
        return None


def apply_organization_schedule(
    operating_hours: OperatingHours,
    record: Optional[Mapping[str, Any]],
) -> OperatingHours:
    """Layer the store's organization schedule and step over the configured hours."""
    weekly = parse_weekly_schedule(record)
    if weekly is None:
        return operating_hours

    step_minutes = operating_hours.step_minutes
    try:
        step_minutes = int(record.get("stepMinutes") or step_minutes)
    except (TypeError, ValueError):
        logger.warning("Ignoring stepMinutes %r", record.get("stepMinutes"))

    try:
        return replace(operating_hours, weekly=weekly, step_minutes=step_minutes)
    except InvalidInputError as exc:
        logger.warning("Ignoring organization schedule: %s", exc)
        return operating_hours


def parse_appointments(
    records: Iterable[Mapping[str, Any]],
    timezone: str,
    window_start: Optional[DateTime] = None,
    window_end: Optional[DateTime] = None,
) -> Dict[str, List[BookedInterval]]:
    """
    Group active appointments by employee id, optionally limited to those
    overlapping ``[window_start, window_end)``.
    """
    by_employee: Dict[str, List[BookedInterval]] = {}

    for record in records:
        status = str(record.get("status", "confirmed"))
        if is_cancelled(status):
            continue

        appointment_id = get_id(record)
        employee_id = get_id(record.get("employee", record.get("employee_id")))
        if employee_id is None:
            logger.warning("Skipping appointment %s without employee", appointment_id)
            continue

        try:
            start = parse_datetime(record.get("startDate", record.get("start")), timezone)
            end = parse_datetime(record.get("endDate", record.get("end")), timezone)
            booked = BookedInterval(
                start=start,
                end=end,
                appointment_id=appointment_id,
                status=status,
            )
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping appointment %s: %s", appointment_id, exc)
            continue

        if window_start is not None and booked.end <= window_start:
            continue
        if window_end is not None and booked.start >= window_end:
            continue

        by_employee.setdefault(employee_id, []).append(booked)

    for bookings in by_employee.values():
        bookings.sort(key=lambda b: (b.start, b.appointment_id or ""))

    return by_employee


def parse_employees(
    records: Iterable[Mapping[str, Any]],
    bookings_by_employee: Mapping[str, List[BookedInterval]],
    schedules_by_employee: Optional[Mapping[str, Any]] = None,
) -> List[EmployeeAvailabilityView]:
    schedules_by_employee = schedules_by_employee or {}
    employees: List[EmployeeAvailabilityView] = []

    for record in records:
        employee_id = get_id(record)
        if employee_id is None:
            logger.warning("Skipping employee record without id: %s", record)
            continue
        if record.get("isActive") is False:
            continue

        service_ids = frozenset(
            service_id
            for service_id in (get_id(s) for s in record.get("services", []))
            if service_id is not None
        )
        employees.append(
            EmployeeAvailabilityView(
                employee_id=employee_id,
                service_ids=service_ids,
                bookings=tuple(bookings_by_employee.get(employee_id, [])),
                schedule=parse_weekly_schedule(
                    schedules_by_employee.get(employee_id, record.get("schedule"))
                ),
            )
        )

    return employees


def build_snapshot(
    payload: Mapping[str, Any],
    operating_hours: OperatingHours,
    timezone: str,
    window_start: Optional[DateTime] = None,
    window_end: Optional[DateTime] = None,
) -> ScheduleSnapshot:
    """
    Build a snapshot from ``services``, ``employees`` and ``appointments``
    lists plus the optional ``organizationSchedule`` and ``employeeSchedules``.
    """
    services = parse_services(payload.get("services") or [])
    bookings = parse_appointments(
        payload.get("appointments") or [],
        timezone,
        window_start=window_start,
        window_end=window_end,
    )
    employees = parse_employees(
        payload.get("employees") or [],
        bookings,
        payload.get("employeeSchedules"),
    )

    return ScheduleSnapshot(
        operating_hours=apply_organization_schedule(
            operating_hours,
            payload.get("organizationSchedule"),
        ),
        services=services,
        employees=tuple(employees),
    )
