# core/money.py

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from core.exceptions import LedgerValidationError

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_int_qty(v, *, field: str = "quantity") -> int:
    """
    Coerce a quantity to int, rejecting fractional values.
    """
    try:
        d = Decimal(str(v))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise LedgerValidationError(f"{field} must be a whole number") from exc

    if not d.is_finite() or d != d.to_integral_value():
        raise LedgerValidationError(f"{field} must be a whole number")
    return int(d)
