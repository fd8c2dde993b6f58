"""
Application layer - Use cases and DTOs.

This layer orchestrates business logic by:
1. Defining request/response DTOs for callers
2. Implementing use cases that coordinate core services and stores

Use cases are the only entry point for other services.
"""

from stockledger.application.dto import (
    ExpiryAlertsResponse,
    IssueStockRequest,
    IssueStockResponse,
    MovementHistoryResponse,
    ReceiveStockRequest,
    ReceiveStockResponse,
    StockMovementResponse,
    StockPositionResponse,
    StockValuationResponse,
)
from stockledger.application.use_cases import (
    CheckExpiringStockUseCase,
    GetMovementHistoryUseCase,
    GetStockValuationUseCase,
    IssueStockUseCase,
    ReceiveStockUseCase,
)

__all__ = [
    # Request DTOs
    "ReceiveStockRequest",
    "IssueStockRequest",
    # Response DTOs
    "StockMovementResponse",
    "StockPositionResponse",
    "ReceiveStockResponse",
    "IssueStockResponse",
    "StockValuationResponse",
    "ExpiryAlertsResponse",
    "MovementHistoryResponse",
    # Use Cases
    "ReceiveStockUseCase",
    "IssueStockUseCase",
    "GetStockValuationUseCase",
    "CheckExpiringStockUseCase",
    "GetMovementHistoryUseCase",
]
