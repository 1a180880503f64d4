# orders/services/pricing.py

"""
ORDER ITEM PRICING

Input line (already resolved by the boundary layer):
    {
        "vehicle": Vehicle,
        "color": "Red" | "",
        "quantity": 2,
        "discount": "1000.00",          # manual per-unit discount
        "promotion": Promotion | None,
        "options": [VehicleOption, ...],
        "accessories": [Accessory, ...],
    }

Per unit:
    unit_price = vehicle.price + options + accessories
    net        = max(0, unit_price - discount - promotion_discount)
Line:
    final_amount = net × quantity
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from core.exceptions import LedgerValidationError
from core.money import ZERO, _money, _to_int_qty


@dataclass
class PricedLine:
    vehicle: object
    color: str
    quantity: int
    unit_price: Decimal
    discount: Decimal
    promotion: Optional[object]
    promotion_discount: Decimal
    options: list = field(default_factory=list)
    accessories: list = field(default_factory=list)
    final_amount: Decimal = ZERO

    @property
    def gross_amount(self) -> Decimal:
        return _money(self.unit_price * self.quantity)


def _snapshot(objs) -> list[dict]:
    return [
        {"id": str(o.pk), "name": o.name, "price": str(_money(o.price))}
        for o in (objs or [])
    ]


def price_line(*, line: dict, dealership=None, at=None) -> PricedLine:
    vehicle = line.get("vehicle")
    if vehicle is None:
        raise LedgerValidationError("vehicle is required")
    if not vehicle.is_active:
        raise LedgerValidationError(f"Vehicle {vehicle.sku} is not available for sale")

    qty = _to_int_qty(line.get("quantity"))
    if qty <= 0:
        raise LedgerValidationError("quantity must be greater than zero")

    color = (line.get("color") or "").strip()
    if not color and not vehicle.color_options:
        raise LedgerValidationError(f"color is required for {vehicle.sku} (no color options configured)")
    if color and vehicle.color_options and color not in vehicle.color_options:
        raise LedgerValidationError(f"Color '{color}' is not offered for {vehicle.sku}")

    options = list(line.get("options") or [])
    accessories = list(line.get("accessories") or [])

    unit_price = _money(vehicle.price)
    unit_price += sum((_money(o.price) for o in options), ZERO)
    unit_price += sum((_money(a.price) for a in accessories), ZERO)

    discount = _money(line.get("discount"))
    if discount < ZERO:
        raise LedgerValidationError("discount must be >= 0")

    promotion = line.get("promotion")
    promotion_discount = ZERO
    if promotion is not None:
        if not promotion.applies_to(vehicle=vehicle, dealership=dealership, at=at):
            raise LedgerValidationError(f"Promotion '{promotion.name}' does not apply to {vehicle.sku}")
        promotion_discount = promotion.discount_for(unit_price)

    net = unit_price - discount - promotion_discount
    if net < ZERO:
        net = ZERO

    return PricedLine(
        vehicle=vehicle,
        color=color,
        quantity=qty,
        unit_price=unit_price,
        discount=discount,
        promotion=promotion,
        promotion_discount=promotion_discount,
        options=_snapshot(options),
        accessories=_snapshot(accessories),
        final_amount=_money(net * qty),
    )
