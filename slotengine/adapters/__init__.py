"""
Adapters layer - Booking store integrations that produce schedule snapshots.
"""

from .booking_store_client import BookingStoreClient
from .file_snapshot import FileSnapshotSource

__all__ = ["BookingStoreClient", "FileSnapshotSource"]
