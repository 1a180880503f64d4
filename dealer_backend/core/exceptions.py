# core/exceptions.py

"""
ENGINE ERRORS (TYPED)

Centralized domain errors for the fulfillment & ledger engine.

Rules:
- Every error carries a stable machine code (used by the API layer).
- Extra context goes into `details` so callers can react specifically
  (e.g. offer a resupply request on INSUFFICIENT_STOCK).
- ConcurrentModification is the only retryable kind.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for all engine failures."""

    code = "ENGINE_ERROR"
    retryable = False

    def __init__(self, message: str = "", **details):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = {k: _jsonable(v) for k, v in self.details.items()}
        return payload


def _jsonable(value):
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)


class LedgerValidationError(EngineError):
    """Raised when an engine call receives unusable input (qty <= 0, missing color...)."""

    code = "VALIDATION_ERROR"


class InsufficientStock(EngineError):
    """Raised when the matching batches cannot cover the requested quantity."""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, message: str = "", *, requested: int = 0, available: int = 0, **details):
        super().__init__(
            message or f"Insufficient stock: requested {requested}, available {available}",
            requested=requested,
            available=available,
            **details,
        )
        self.requested = requested
        self.available = available


class Overpayment(EngineError):
    """Raised when a payment exceeds the remaining balance of a debt."""

    code = "OVERPAYMENT"


class InvalidStatusTransition(EngineError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    code = "INVALID_STATUS_TRANSITION"


class StockAlreadyReversed(InvalidStatusTransition):
    """Raised when an allocation reference has already been reversed."""


class DuplicatePendingRequest(EngineError):
    """Raised when an order already has a pending OrderRequest."""

    code = "DUPLICATE_PENDING_REQUEST"


class DebtNotFound(EngineError):
    """Raised when an expected debt account does not exist."""

    code = "DEBT_NOT_FOUND"


class DuplicateSettlement(EngineError):
    """Raised when a payment reference has already settled a debt."""

    code = "DUPLICATE_SETTLEMENT"


class ConcurrentModification(EngineError):
    """Raised when a conditional update lost a race. Retryable."""

    code = "CONCURRENT_MODIFICATION"
    retryable = True
