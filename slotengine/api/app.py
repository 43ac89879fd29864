"""HTTP host for the scheduling engine.

Endpoints:
- GET  /availability/service/{serviceId}
- POST /availability/chain
- GET  /calendar/layout
- POST /availability/batch
- POST /availability/series-preview
- POST /availability/validate
"""

import logging
from datetime import date, datetime
from typing import List, Optional

import pendulum
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pendulum import DateTime

from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import (
    BookingStoreError,
    InvalidInputError,
    SearchBudgetExceeded,
    UnknownEntityError,
)
from ..domain.models import CandidateSlot, ChainBlock
from ..services.scheduling import SchedulingService, SlotRequest
from ..wiring import build_scheduling_service
from .schemas import (
    BatchSlotResultRead,
    BatchSlotsRequest,
    CandidateSlotRead,
    ChainBlockRead,
    ChainSlotsRequest,
    LayoutAssignmentRead,
    SeriesPreviewRead,
    SeriesPreviewRequest,
    ValidateStartRead,
    ValidateStartRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================

def get_scheduling_service(request: Request) -> SchedulingService:
    return request.app.state.scheduling_service


def get_timezone(request: Request) -> str:
    return request.app.state.timezone


def _local_day(value: date, tz: str) -> DateTime:
    return pendulum.datetime(value.year, value.month, value.day, tz=tz)


def _local_instant(value: datetime, tz: str) -> DateTime:
    """Naive datetimes are read as organization-local time."""
    return pendulum.instance(value, tz=tz).in_timezone(tz)


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/availability/service/{service_id}", response_model=List[CandidateSlotRead])
async def get_service_availability(
    service_id: str,
    day: date = Query(...),
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    end_day: Optional[date] = Query(None, alias="endDay"),
    service: SchedulingService = Depends(get_scheduling_service),
    tz: str = Depends(get_timezone),
):
    """Valid starts for one service; without employeeId the starts of all eligible employees are merged."""
    slots = await service.service_slots(
        service_id=service_id,
        day=_local_day(day, tz),
        employee_id=employee_id,
        end_day=_local_day(end_day, tz) if end_day else None,
    )
    return [CandidateSlotRead.from_domain(slot) for slot in slots]


@router.post("/availability/chain", response_model=List[ChainBlockRead])
async def post_chain_availability(
    data: ChainSlotsRequest,
    service: SchedulingService = Depends(get_scheduling_service),
    tz: str = Depends(get_timezone),
):
    """Valid block starts for services booked back-to-back on one day."""
    blocks = await service.chain_slots(
        day=_local_day(data.day, tz),
        services=[item.to_request() for item in data.services],
    )
    return [ChainBlockRead.from_domain(block) for block in blocks]


@router.get("/calendar/layout", response_model=List[LayoutAssignmentRead])
async def get_calendar_layout(
    employee_id: str = Query(..., alias="employeeId"),
    day: date = Query(...),
    service: SchedulingService = Depends(get_scheduling_service),
    tz: str = Depends(get_timezone),
):
    assignments = await service.calendar_layout(
        employee_id=employee_id,
        day=_local_day(day, tz),
    )
    return [LayoutAssignmentRead.from_domain(a) for a in assignments]


@router.post("/availability/batch", response_model=List[BatchSlotResultRead])
async def post_batch_availability(
    data: BatchSlotsRequest,
    service: SchedulingService = Depends(get_scheduling_service),
    tz: str = Depends(get_timezone),
):
    results = await service.batch_slots(
        [
            SlotRequest(
                day=_local_day(item.day, tz),
                service_id=item.service_id,
                employee_id=item.employee_id,
            )
            for item in data.requests
        ]
    )
    return [BatchSlotResultRead.from_domain(result) for result in results]


@router.post("/availability/series-preview", response_model=SeriesPreviewRead)
async def post_series_preview(
    data: SeriesPreviewRequest,
    service: SchedulingService = Depends(get_scheduling_service),
    tz: str = Depends(get_timezone),
):
    """Per-occurrence availability of a weekly recurring visit. Nothing is booked."""
    preview = await service.preview_series(
        first_start=_local_instant(data.start, tz),
        services=[item.to_request() for item in data.services],
        pattern=data.recurrence.to_pattern(),
    )
    return SeriesPreviewRead.from_domain(preview)


@router.post("/availability/validate", response_model=ValidateStartRead)
async def post_validate_start(
    data: ValidateStartRequest,
    service: SchedulingService = Depends(get_scheduling_service),
    tz: str = Depends(get_timezone),
):
    rejection = await service.validate_start(
        employee_id=data.employee_id,
        service_id=data.service_id,
        start=_local_instant(data.start, tz),
    )
    return ValidateStartRead.from_domain(rejection)


# =============================================================================
# Error handling
# =============================================================================

def _error(status_code: int, detail: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, **extra})


def _partial_content(items) -> list:
    """Serialize the slots or blocks found before a search gave up."""
    content = []
    for item in items:
        if isinstance(item, ChainBlock):
            read = ChainBlockRead.from_domain(item)
        elif isinstance(item, CandidateSlot):
            read = CandidateSlotRead.from_domain(item)
        else:
            continue
        content.append(read.model_dump(mode="json", by_alias=True))
    return content


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidInputError)
    async def handle_invalid_input(request: Request, exc: InvalidInputError):
        return _error(422, str(exc))

    @app.exception_handler(UnknownEntityError)
    async def handle_unknown_entity(request: Request, exc: UnknownEntityError):
        return _error(404, str(exc))

    @app.exception_handler(SearchBudgetExceeded)
    async def handle_budget_exceeded(request: Request, exc: SearchBudgetExceeded):
        # Not "no availability": a retry with a larger budget may find slots.
        logger.warning("Search budget exhausted on %s: %s", request.url.path, exc)
        return _error(
            503,
            str(exc),
            outcome="budget_exhausted",
            partialCount=len(exc.partial),
            partial=_partial_content(exc.partial),
        )

    @app.exception_handler(BookingStoreError)
    async def handle_store_error(request: Request, exc: BookingStoreError):
        logger.error("Booking store failure on %s: %s", request.url.path, exc)
        return _error(502, str(exc))


# =============================================================================
# Application factory
# =============================================================================

def create_app(scheduling_service: SchedulingService, timezone: str) -> FastAPI:
    app = FastAPI(title="slotengine")
    app.state.scheduling_service = scheduling_service
    app.state.timezone = timezone
    app.include_router(router)
    _register_error_handlers(app)
    return app


def create_app_from_config(config: Optional[AppConfig] = None) -> FastAPI:
    """Factory used by ``slotengine serve`` and ``uvicorn --factory``."""
    config = config or AppConfig.load_from_yaml(get_default_config_path())
    return create_app(build_scheduling_service(config), config.timezone)
