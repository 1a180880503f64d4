from .base import DebtAccount
from .customer_debt import CustomerDebt
from .dealer_debt import DealerDebtPayment, DealerManufacturerDebt, DebtObligation, DebtSettlement

__all__ = [
    "DebtAccount",
    "CustomerDebt",
    "DealerManufacturerDebt",
    "DebtObligation",
    "DebtSettlement",
    "DealerDebtPayment",
]
