"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .scheduling import (
    BatchSlotResult,
    SchedulingService,
    ServiceRequest,
    SlotRequest,
    SnapshotSourceProtocol,
)

__all__ = [
    "BatchSlotResult",
    "SchedulingService",
    "ServiceRequest",
    "SlotRequest",
    "SnapshotSourceProtocol",
]
