"""
Builds the scheduling service from configuration.
"""

from pathlib import Path
from typing import Optional

from .adapters.booking_store_client import BookingStoreClient
from .adapters.file_snapshot import FileSnapshotSource
from .config import AppConfig
from .services.scheduling import SchedulingService, SnapshotSourceProtocol


def build_snapshot_source(
    config: AppConfig,
    snapshot_file: Optional[Path] = None,
) -> SnapshotSourceProtocol:
    """
    Pick the snapshot collaborator: an explicit or configured snapshot file
    wins over the booking store.
    """
    operating_hours = config.get_operating_hours()
    path = snapshot_file or config.snapshot_file

    if path is not None:
        return FileSnapshotSource(path, operating_hours, config.timezone)

    store = config.booking_store
    if not store.base_url or not store.organization_id:
        raise ValueError(
            "No snapshot source configured. Set booking_store.base_url and "
            "booking_store.organization_id, or provide a snapshot_file."
        )

    return BookingStoreClient(
        base_url=store.base_url,
        organization_id=store.organization_id,
        operating_hours=operating_hours,
        timezone=config.timezone,
        token=store.token,
        timeout_seconds=store.timeout_seconds,
    )


def build_scheduling_service(
    config: AppConfig,
    snapshot_file: Optional[Path] = None,
) -> SchedulingService:
    return SchedulingService(
        snapshot_source=build_snapshot_source(config, snapshot_file),
        budget=config.get_search_budget(),
    )
