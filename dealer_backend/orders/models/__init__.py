from .order import Order
from .order_item import OrderItem, UsedStock
from .payment import Payment
from .status_log import OrderStatusLog

__all__ = [
    "Order",
    "OrderItem",
    "UsedStock",
    "Payment",
    "OrderStatusLog",
]
