from .stock_batch import OwnerType, StockBatch
from .stock_movement import StockMovement
from .stock_transfer import StockTransfer

__all__ = [
    "OwnerType",
    "StockBatch",
    "StockMovement",
    "StockTransfer",
]
