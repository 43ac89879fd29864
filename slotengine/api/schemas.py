"""
Request and response schemas for the HTTP API (camelCase on the wire).
"""

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.availability import Rejection
from ..domain.models import CandidateSlot, ChainBlock, ChainInterval, LayoutAssignment
from ..domain.recurrence import RecurrencePattern, SeriesOccurrence, SeriesPreview
from ..services.scheduling import BatchSlotResult, ServiceRequest


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Requests
# =============================================================================

class ServiceRequestBody(CamelModel):
    service_id: str
    employee_id: Optional[str] = None

    def to_request(self) -> ServiceRequest:
        return ServiceRequest(service_id=self.service_id, employee_id=self.employee_id)


class ChainSlotsRequest(CamelModel):
    day: date
    services: List[ServiceRequestBody] = Field(min_length=1)


class BatchSlotRequestBody(CamelModel):
    day: date
    service_id: str
    employee_id: Optional[str] = None


class BatchSlotsRequest(CamelModel):
    requests: List[BatchSlotRequestBody] = Field(default_factory=list)


class RecurrenceBody(CamelModel):
    interval_weeks: int = Field(default=1, ge=1)
    weekdays: List[int] = Field(default_factory=list)
    end_type: Literal["count", "date"] = "count"
    count: int = 1
    until: Optional[date] = None

    def to_pattern(self) -> RecurrencePattern:
        return RecurrencePattern(
            interval_weeks=self.interval_weeks,
            weekdays=tuple(self.weekdays),
            end_type=self.end_type,
            count=self.count,
            until=self.until,
        )


class SeriesPreviewRequest(CamelModel):
    start: datetime
    services: List[ServiceRequestBody] = Field(min_length=1)
    recurrence: RecurrenceBody


class ValidateStartRequest(CamelModel):
    employee_id: str
    service_id: str
    start: datetime


# =============================================================================
# Responses
# =============================================================================

class CandidateSlotRead(CamelModel):
    start: datetime
    end: datetime
    employee_id: Optional[str] = None
    candidate_employee_ids: List[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, slot: CandidateSlot) -> "CandidateSlotRead":
        return cls(
            start=slot.start,
            end=slot.end,
            employee_id=slot.employee_id,
            candidate_employee_ids=list(slot.candidate_employee_ids),
        )


class ChainIntervalRead(CamelModel):
    service_id: str
    employee_id: str
    start: datetime
    end: datetime

    @classmethod
    def from_domain(cls, interval: ChainInterval) -> "ChainIntervalRead":
        return cls(
            service_id=interval.service_id,
            employee_id=interval.employee_id,
            start=interval.start,
            end=interval.end,
        )


class ChainBlockRead(CamelModel):
    block_start: datetime
    block_end: datetime
    intervals: List[ChainIntervalRead]

    @classmethod
    def from_domain(cls, block: ChainBlock) -> "ChainBlockRead":
        return cls(
            block_start=block.block_start,
            block_end=block.block_end,
            intervals=[ChainIntervalRead.from_domain(i) for i in block.intervals],
        )


class LayoutAssignmentRead(CamelModel):
    appointment_id: str
    column: int
    total_columns: int
    cluster: int

    @classmethod
    def from_domain(cls, assignment: LayoutAssignment) -> "LayoutAssignmentRead":
        return cls(
            appointment_id=assignment.appointment_id,
            column=assignment.column,
            total_columns=assignment.total_columns,
            cluster=assignment.cluster,
        )


class BatchSlotResultRead(CamelModel):
    day: date
    service_id: str
    employee_id: Optional[str] = None
    slots: List[CandidateSlotRead]

    @classmethod
    def from_domain(cls, result: BatchSlotResult) -> "BatchSlotResultRead":
        return cls(
            day=result.day.date(),
            service_id=result.service_id,
            employee_id=result.employee_id,
            slots=[CandidateSlotRead.from_domain(s) for s in result.slots],
        )


class SeriesOccurrenceRead(CamelModel):
    start: datetime
    status: str
    detail: str = ""
    block: Optional[ChainBlockRead] = None

    @classmethod
    def from_domain(cls, occurrence: SeriesOccurrence) -> "SeriesOccurrenceRead":
        return cls(
            start=occurrence.start,
            status=occurrence.status.value,
            detail=occurrence.detail,
            block=ChainBlockRead.from_domain(occurrence.block) if occurrence.block else None,
        )


class SeriesPreviewRead(CamelModel):
    occurrences: List[SeriesOccurrenceRead]
    counts: Dict[str, int]
    total_occurrences: int
    available_count: int

    @classmethod
    def from_domain(cls, preview: SeriesPreview) -> "SeriesPreviewRead":
        return cls(
            occurrences=[SeriesOccurrenceRead.from_domain(o) for o in preview.occurrences],
            counts=dict(preview.counts),
            total_occurrences=len(preview.occurrences),
            available_count=preview.available_count,
        )


class ValidateStartRead(CamelModel):
    is_valid: bool
    reason: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def from_domain(cls, rejection: Optional[Rejection]) -> "ValidateStartRead":
        if rejection is None:
            return cls(is_valid=True)
        return cls(is_valid=False, reason=rejection.reason.value, detail=rejection.detail)
