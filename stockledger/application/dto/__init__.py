"""Data Transfer Objects for callers of the ledger.

Request DTOs: Validate and parse incoming requests.
Response DTOs: Structure and serialize results.
"""

from stockledger.application.dto.requests import IssueStockRequest, ReceiveStockRequest
from stockledger.application.dto.responses import (
    ExpiryAlertsResponse,
    IssueStockResponse,
    MovementHistoryResponse,
    ReceiveStockResponse,
    StockMovementResponse,
    StockPositionResponse,
    StockValuationResponse,
)

__all__ = [
    # Requests
    "ReceiveStockRequest",
    "IssueStockRequest",
    # Responses
    "StockMovementResponse",
    "StockPositionResponse",
    "ReceiveStockResponse",
    "IssueStockResponse",
    "StockValuationResponse",
    "ExpiryAlertsResponse",
    "MovementHistoryResponse",
]
