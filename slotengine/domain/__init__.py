"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .availability import Rejection, RejectionReason, check_availability, is_free
from .budget import SearchBudget
from .chain_finder import ChainSlotFinder
from .employee_selector import pick
from .layout import layout
from .models import (
    BookedInterval,
    BreakPeriod,
    CandidateSlot,
    ChainBlock,
    ChainInterval,
    ChainService,
    EmployeeAvailabilityView,
    LayoutAssignment,
    OperatingHours,
    ScheduleSnapshot,
    ServiceSpec,
    TimeRange,
)
from .recurrence import RecurrencePattern, SeriesPreview, generate_candidate_dates, preview_series
from .slot_finder import SingleServiceSlotFinder
from .time_grid import generate_candidates

__all__ = [
    "BookedInterval",
    "BreakPeriod",
    "CandidateSlot",
    "ChainBlock",
    "ChainInterval",
    "ChainService",
    "ChainSlotFinder",
    "EmployeeAvailabilityView",
    "LayoutAssignment",
    "OperatingHours",
    "RecurrencePattern",
    "Rejection",
    "RejectionReason",
    "ScheduleSnapshot",
    "SearchBudget",
    "SeriesPreview",
    "ServiceSpec",
    "SingleServiceSlotFinder",
    "TimeRange",
    "check_availability",
    "generate_candidate_dates",
    "generate_candidates",
    "is_free",
    "layout",
    "pick",
    "preview_series",
]
