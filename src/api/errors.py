"""API error handling and response helpers for the utility endpoints."""

from enum import Enum

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from src.services.utility_types import ServiceResult

# Error kind -> HTTP status. Kinds shared between the error enums carry the
# same meaning, so the table is keyed by value.
_HTTP_STATUS_BY_ERROR: dict[str, int] = {
    "BILL_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PROPERTY_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "LEASE_UTILITY_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_STATUS": status.HTTP_409_CONFLICT,
    "ALREADY_ALLOCATED": status.HTTP_409_CONFLICT,
    "BILL_ALREADY_POSTED": status.HTTP_409_CONFLICT,
    "NO_ALLOCATIONS": status.HTTP_409_CONFLICT,
    "ALLOCATION_SUM_MISMATCH": status.HTTP_409_CONFLICT,
    "LEASE_NOT_ACTIVE": status.HTTP_409_CONFLICT,
    "SUM_MISMATCH": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str | None = None

    model_config = ConfigDict(from_attributes=True)


def http_status_for(error: Enum) -> int:
    """HTTP status for an error kind (422 for input and data problems)."""
    return _HTTP_STATUS_BY_ERROR.get(error.value, status.HTTP_422_UNPROCESSABLE_ENTITY)


def error_response(result: ServiceResult) -> JSONResponse:
    """Render a failed ServiceResult as ``{"error": kind, "detail": message}``."""
    body = ErrorResponse(error=result.error.value, detail=result.message)
    return JSONResponse(status_code=http_status_for(result.error), content=body.model_dump())


__all__ = ["ErrorResponse", "error_response", "http_status_for"]
