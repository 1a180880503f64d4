from .order_request import OrderRequest, OrderRequestItem
from .request_vehicle import RequestVehicle

__all__ = [
    "OrderRequest",
    "OrderRequestItem",
    "RequestVehicle",
]
