"""Utility billing API endpoints: bills, allocations and meter readings."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, AsyncGenerator, Callable, Sequence

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.errors import ErrorResponse, error_response
from src.models.utility_bill import (
    UtilityBill,
    UtilityBillStatus,
    UtilityImportMethod,
    UtilitySplitMethod,
)
from src.models.utility_reading import UtilityReading
from src.services.utility_allocation_service import UtilityAllocationService
from src.services.utility_bill_service import UtilityBillService, classify_bill_input_errors
from src.services.utility_reading_service import (
    UtilityReadingService,
    classify_reading_input_errors,
)
from src.services.utility_types import ServiceResult, UtilityAllocationResult
from src.services.utility_validators import CreateUtilityBillInput, CreateUtilityReadingInput

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/utilities", tags=["utilities"])


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session from the factory that create_app put on app.state."""
    async with request.app.state.session_factory() as session:
        yield session


def get_allocation_timeout(request: Request) -> int:
    return request.app.state.config.allocation_timeout_seconds


# Response schemas
class UtilityBillResponse(BaseModel):
    """A utility bill as returned by the API."""

    id: int
    property_id: int
    provider_name: str
    utility_type: str | None = None
    total_amount: Decimal
    split_method: UtilitySplitMethod
    import_method: UtilityImportMethod
    status: UtilityBillStatus
    bill_date: date
    due_date: date
    period_start: date | None = None
    period_end: date | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AllocationResponse(BaseModel):
    """One unit's share of a bill."""

    unit_id: int
    amount: Decimal
    percentage: Decimal


class AllocateBillResponse(BaseModel):
    """Result of a successful allocation."""

    bill_id: int
    status: UtilityBillStatus
    allocations: list[AllocationResponse]


class AllocationListResponse(BaseModel):
    bill_id: int
    allocations: list[AllocationResponse]


class RejectBillRequest(BaseModel):
    reason: str | None = None


class ReadingResponse(BaseModel):
    """A recorded meter reading."""

    id: int
    lease_utility_id: int
    reading_value: Decimal
    reading_date: datetime

    model_config = ConfigDict(from_attributes=True)


class ReadingListResponse(BaseModel):
    lease_utility_id: int
    readings: list[ReadingResponse]


def _allocation_items(allocations: list[UtilityAllocationResult]) -> list[AllocationResponse]:
    return [
        AllocationResponse(unit_id=a.unit_id, amount=a.amount, percentage=a.percentage)
        for a in allocations
    ]


def _bill_response(bill: UtilityBill) -> UtilityBillResponse:
    return UtilityBillResponse.model_validate(bill)


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error("Error during %s: %s", action, e, exc_info=True)
    return HTTPException(status_code=500, detail="Server error")


_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.post(
    "/bills",
    response_model=UtilityBillResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
)
async def create_bill(
    payload: CreateUtilityBillInput,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> UtilityBillResponse | JSONResponse:
    """Create a utility bill in DRAFT.

    Returns:
        201: The created bill
        404: Property not found
        422: Invalid input (amount, dates, fields)
    """
    try:
        result = await UtilityBillService(session).create_bill(payload)
    except SQLAlchemyError as e:
        raise _server_error("bill creation", e) from e
    if not result.success:
        return error_response(result)
    return _bill_response(result.data)


@router.get("/bills/{bill_id}", response_model=UtilityBillResponse, responses=_ERROR_RESPONSES)
async def get_bill(
    bill_id: int,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> UtilityBillResponse:
    try:
        bill = await UtilityBillService(session).get_bill_by_id(bill_id)
    except SQLAlchemyError as e:
        raise _server_error("bill lookup", e) from e
    if bill is None:
        raise HTTPException(status_code=404, detail="Utility bill not found")
    return _bill_response(bill)


@router.post(
    "/bills/{bill_id}/allocate",
    response_model=AllocateBillResponse,
    responses={**_ERROR_RESPONSES, 500: {"model": ErrorResponse}},
)
async def allocate_bill(
    bill_id: int,
    session: AsyncSession = Depends(get_session),  # noqa: B008
    timeout_seconds: int = Depends(get_allocation_timeout),  # noqa: B008
) -> AllocateBillResponse | JSONResponse:
    """Split a DRAFT bill across its property's units and move it to PROCESSING.

    Returns:
        200: Allocations and the new status
        404: BILL_NOT_FOUND
        409: INVALID_STATUS, ALREADY_ALLOCATED
        422: INVALID_AMOUNT, NO_UNITS_FOUND, MISSING_SPLIT_DATA
        500: SUM_MISMATCH
    """
    service = UtilityAllocationService(session, allocation_timeout_seconds=timeout_seconds)
    try:
        result = await service.allocate_utility_bill(bill_id)
    except SQLAlchemyError as e:
        raise _server_error("allocation", e) from e
    if not result.success:
        return error_response(result)
    return AllocateBillResponse(
        bill_id=bill_id,
        status=result.data.status,
        allocations=_allocation_items(result.data.allocations),
    )


@router.get("/bills/{bill_id}/allocations", response_model=AllocationListResponse)
async def list_allocations(
    bill_id: int,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> AllocationListResponse:
    try:
        bill = await UtilityBillService(session).get_bill_by_id(bill_id)
        if bill is None:
            raise HTTPException(status_code=404, detail="Utility bill not found")
        allocations = await UtilityAllocationService(session).get_allocations_for_bill(bill_id)
    except SQLAlchemyError as e:
        raise _server_error("allocation lookup", e) from e
    return AllocationListResponse(bill_id=bill_id, allocations=_allocation_items(allocations))


@router.post(
    "/bills/{bill_id}/approve", response_model=UtilityBillResponse, responses=_ERROR_RESPONSES
)
async def approve_bill(
    bill_id: int,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> UtilityBillResponse | JSONResponse:
    try:
        result = await UtilityBillService(session).approve_bill(bill_id)
    except SQLAlchemyError as e:
        raise _server_error("bill approval", e) from e
    if not result.success:
        return error_response(result)
    return _bill_response(result.data)


@router.post(
    "/bills/{bill_id}/review", response_model=UtilityBillResponse, responses=_ERROR_RESPONSES
)
async def flag_bill_for_review(
    bill_id: int,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> UtilityBillResponse | JSONResponse:
    try:
        result = await UtilityBillService(session).flag_for_review(bill_id)
    except SQLAlchemyError as e:
        raise _server_error("bill review", e) from e
    if not result.success:
        return error_response(result)
    return _bill_response(result.data)


@router.post(
    "/bills/{bill_id}/reject", response_model=UtilityBillResponse, responses=_ERROR_RESPONSES
)
async def reject_bill(
    bill_id: int,
    body: RejectBillRequest | None = None,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> UtilityBillResponse | JSONResponse:
    reason = body.reason if body is not None else None
    try:
        result = await UtilityBillService(session).reject_bill(bill_id, reason=reason)
    except SQLAlchemyError as e:
        raise _server_error("bill rejection", e) from e
    if not result.success:
        return error_response(result)
    return _bill_response(result.data)


@router.post(
    "/readings",
    response_model=ReadingResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
)
async def create_reading(
    payload: CreateUtilityReadingInput,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> ReadingResponse | JSONResponse:
    """Record a meter reading against a lease utility.

    Returns:
        201: The recorded reading
        404: LEASE_UTILITY_NOT_FOUND
        409: LEASE_NOT_ACTIVE
        422: INVALID_INPUT, NEGATIVE_VALUE, DECREASING_VALUE,
             UTILITY_NOT_TENANT_RESPONSIBLE
    """
    service = UtilityReadingService(session)
    try:
        result = await service.create_reading(payload)
        if not result.success:
            return error_response(result)
        reading = await session.get(UtilityReading, result.data.reading_id)
    except SQLAlchemyError as e:
        raise _server_error("reading creation", e) from e
    return ReadingResponse.model_validate(reading)


@router.get("/lease-utilities/{lease_utility_id}/readings", response_model=ReadingListResponse)
async def list_readings(
    lease_utility_id: int,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> ReadingListResponse:
    try:
        readings = await UtilityReadingService(session).get_readings_for_lease_utility(
            lease_utility_id
        )
    except SQLAlchemyError as e:
        raise _server_error("reading lookup", e) from e
    return ReadingListResponse(
        lease_utility_id=lease_utility_id,
        readings=[ReadingResponse.model_validate(r) for r in readings],
    )


InputClassifier = Callable[[Sequence[dict[str, Any]]], tuple[Any, str]]

# Endpoints whose body errors are reported with the service's error kinds
_BODY_CLASSIFIERS: dict[Callable[..., Any], InputClassifier] = {
    create_bill: classify_bill_input_errors,
    create_reading: classify_reading_input_errors,
}


async def utility_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render body validation errors as ``{"error": kind, "detail": message}``.

    Only the create endpoints above are mapped; any other route keeps
    FastAPI's default 422 body.
    """
    classify = _BODY_CLASSIFIERS.get(request.scope.get("endpoint"))
    if classify is None:
        return await request_validation_exception_handler(request, exc)

    errors = []
    for error in exc.errors():
        loc = tuple(error.get("loc") or ())
        if loc[:1] == ("body",):
            loc = loc[1:]
        errors.append({**error, "loc": loc})
    kind, message = classify(errors)
    return error_response(ServiceResult.fail(kind, message))


__all__ = ["get_session", "router", "utility_validation_error_handler"]
