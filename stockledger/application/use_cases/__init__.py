"""Application use cases."""

from stockledger.application.use_cases.check_expiring_stock import (
    CheckExpiringStockUseCase,
    ExpiringStockResult,
)
from stockledger.application.use_cases.issue_stock import IssueStockResult, IssueStockUseCase
from stockledger.application.use_cases.location import resolve_product_at_location
from stockledger.application.use_cases.movement_history import GetMovementHistoryUseCase
from stockledger.application.use_cases.receive_stock import (
    ReceiveStockResult,
    ReceiveStockUseCase,
)
from stockledger.application.use_cases.stock_valuation import GetStockValuationUseCase

__all__ = [
    "ReceiveStockUseCase",
    "ReceiveStockResult",
    "IssueStockUseCase",
    "IssueStockResult",
    "GetStockValuationUseCase",
    "CheckExpiringStockUseCase",
    "ExpiringStockResult",
    "GetMovementHistoryUseCase",
    "resolve_product_at_location",
]
