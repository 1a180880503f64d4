# core/api.py

"""
API ERROR NORMALIZATION

All views render failures as:

    {"error": {"code": "...", "message": "...", "details": {...}}}
"""

from rest_framework import status
from rest_framework.response import Response

from core.exceptions import (
    ConcurrentModification,
    DebtNotFound,
    DuplicatePendingRequest,
    DuplicateSettlement,
    EngineError,
    InsufficientStock,
    InvalidStatusTransition,
    LedgerValidationError,
    Overpayment,
)

ENGINE_ERROR_STATUS = [
    (InsufficientStock, status.HTTP_409_CONFLICT),
    (Overpayment, status.HTTP_400_BAD_REQUEST),
    (InvalidStatusTransition, status.HTTP_409_CONFLICT),
    (DuplicatePendingRequest, status.HTTP_409_CONFLICT),
    (DuplicateSettlement, status.HTTP_409_CONFLICT),
    (DebtNotFound, status.HTTP_404_NOT_FOUND),
    (ConcurrentModification, status.HTTP_503_SERVICE_UNAVAILABLE),
    (LedgerValidationError, status.HTTP_400_BAD_REQUEST),
]


def error_response(*, code: str, message: str, http_status: int, details=None):
    """
    Canonical API error response.
    """
    payload = {"code": code, "message": message}
    if details:
        payload["details"] = details
    return Response({"error": payload}, status=http_status)


def http_status_for(exc: EngineError) -> int:
    for exc_type, http_status in ENGINE_ERROR_STATUS:
        if isinstance(exc, exc_type):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def engine_error_response(exc: EngineError):
    body = exc.to_dict()
    return error_response(
        code=body["code"],
        message=body["message"],
        http_status=http_status_for(exc),
        details=body.get("details"),
    )
