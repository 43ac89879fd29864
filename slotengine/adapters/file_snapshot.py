"""
Snapshot source backed by a local YAML or JSON file.

Useful for demos and tests without a running booking store.
"""

import json
from pathlib import Path
from typing import Any, Dict

import yaml
from pendulum import DateTime

from ..domain.exceptions import BookingStoreError
from ..domain.models import OperatingHours, ScheduleSnapshot
from .parsing import build_snapshot


class FileSnapshotSource:
    """
    Loads services, employees and appointments from a file.

    The file is read on every call so edits show up without a restart.
    """

    def __init__(self, path: Path, operating_hours: OperatingHours, timezone: str):
        self.path = Path(path)
        self.operating_hours = operating_hours
        self.timezone = timezone

    def load_payload(self) -> Dict[str, Any]:
        if not self.path.exists():
            raise BookingStoreError(f"Snapshot file not found: {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                if self.path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise BookingStoreError(f"Invalid snapshot file {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise BookingStoreError("Snapshot file must contain a mapping at the root level.")

        return data

    async def get_snapshot(self, start_time: DateTime, end_time: DateTime) -> ScheduleSnapshot:
        """
        Build a snapshot with the appointments overlapping the time window.

        Args:
            start_time: Start of the time window
            end_time: End of the time window

        Returns:
            ScheduleSnapshot for the window
        """
        return build_snapshot(
            self.load_payload(),
            self.operating_hours,
            self.timezone,
            window_start=start_time,
            window_end=end_time,
        )
