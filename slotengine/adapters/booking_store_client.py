"""
HTTP client for the external booking store.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

import requests
from pendulum import DateTime

from ..domain.exceptions import BookingStoreError
from ..domain.models import OperatingHours, ScheduleSnapshot
from .parsing import build_snapshot, get_id

logger = logging.getLogger(__name__)


class BookingStoreClient:
    """
    Fetches services, employees, appointments and weekly schedules of one
    organization.

    The store wraps every payload as ``{"code", "status", "data", "message"}``.
    The engine only reads from it; bookings are written elsewhere.
    """

    def __init__(
        self,
        base_url: str,
        organization_id: str,
        operating_hours: OperatingHours,
        timezone: str,
        token: str = "",
        timeout_seconds: float = 30.0,
    ):
        """
        Initialize the booking store client.

        Args:
            base_url: Root URL of the booking store API
            organization_id: Organization whose data is read
            operating_hours: Opening hours used when the store has no schedule
            timezone: IANA timezone of the organization
            token: Optional bearer token
            timeout_seconds: Per-request timeout
        """
        self.base_url = base_url.rstrip("/")
        self.organization_id = organization_id
        self.operating_hours = operating_hours
        self.timezone = timezone
        self.timeout_seconds = timeout_seconds
        self.headers = {"Content-Type": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def fetch_payload(self, start_time: DateTime, end_time: DateTime) -> Dict[str, Any]:
        """Fetch the raw records for the time window."""
        org = self.organization_id
        payload: Dict[str, Any] = {
            "services": self._get_list(f"/service/organization/{org}"),
            "employees": self._get_list(f"/employee/organization/{org}"),
            "appointments": self._get_list(
                f"/appointment/organization/{org}",
                params={
                    "startDate": start_time.in_timezone("UTC").to_iso8601_string(),
                    "endDate": end_time.in_timezone("UTC").to_iso8601_string(),
                },
            ),
        }
        payload["organizationSchedule"] = self._get_object(f"/schedule/organization/{org}")
        payload["employeeSchedules"] = self._fetch_employee_schedules(payload["employees"])
        return payload

    def fetch_snapshot(self, start_time: DateTime, end_time: DateTime) -> ScheduleSnapshot:
        payload = self.fetch_payload(start_time, end_time)
        logger.debug(
            "Fetched %d service(s), %d employee(s), %d appointment(s), %d employee schedule(s) for %s",
            len(payload["services"]),
            len(payload["employees"]),
            len(payload["appointments"]),
            len(payload["employeeSchedules"]),
            self.organization_id,
        )
        return build_snapshot(
            payload,
            self.operating_hours,
            self.timezone,
            window_start=start_time,
            window_end=end_time,
        )

    async def get_snapshot(self, start_time: DateTime, end_time: DateTime) -> ScheduleSnapshot:
        """Fetch a snapshot without blocking the event loop."""
        return await asyncio.to_thread(self.fetch_snapshot, start_time, end_time)

    def _fetch_employee_schedules(self, employees: List[Any]) -> Dict[str, Mapping[str, Any]]:
        schedules: Dict[str, Mapping[str, Any]] = {}

        for record in employees:
            employee_id = get_id(record)
            if employee_id is None:
                continue
            schedule = self._get_object(f"/schedule/employee/{employee_id}")
            if schedule is not None:
                schedules[employee_id] = schedule

        return schedules

    def _get_list(self, path: str, params: Optional[Dict[str, str]] = None) -> List[Any]:
        data = self._get(path, params=params)
        if data is None:
            return []
        if not isinstance(data, list):
            raise BookingStoreError(f"Expected a list from {path}, got {type(data).__name__}")
        return data

    def _get_object(self, path: str) -> Optional[Mapping[str, Any]]:
        """GET a single record; 404 means the store has none."""
        data = self._get(path, missing_ok=True)
        if data is None:
            return None
        if not isinstance(data, Mapping):
            raise BookingStoreError(f"Expected an object from {path}, got {type(data).__name__}")
        return data

    def _get(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
        missing_ok: bool = False,
    ) -> Any:
        url = f"{self.base_url}{path}"

        try:
            response = requests.get(
                url,
                headers=self.headers,
                params=params,
                timeout=self.timeout_seconds,
            )
            if missing_ok and response.status_code == 404:
                logger.debug("Nothing at %s", url)
                return None
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as exc:
            raise BookingStoreError(f"Failed to fetch {url}: {exc}") from exc
        except ValueError as exc:
            raise BookingStoreError(f"Invalid JSON from {url}: {exc}") from exc

        return body.get("data") if isinstance(body, dict) else body
