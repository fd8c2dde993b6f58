"""
Domain exceptions for the stock ledger.

Provides specific exception types for different error scenarios.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """Base exception for all stock ledger errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for callers that serialize errors."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Validation Exceptions
class ValidationError(LedgerError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )
        self.field = field


# Not Found Exceptions
class NotFoundError(LedgerError):
    """Referenced entity does not exist."""

    pass


class ProductNotFoundError(NotFoundError):
    """Product not found in the tenant's catalog."""

    def __init__(self, product_id: int, tenant_id: int | None = None):
        super().__init__(
            f"Product not found: {product_id}",
            code="PRODUCT_NOT_FOUND",
            details={"product_id": product_id, "tenant_id": tenant_id},
        )


class BranchNotFoundError(NotFoundError):
    """Branch not found for the tenant."""

    def __init__(self, branch_id: int, tenant_id: int | None = None):
        super().__init__(
            f"Branch not found: {branch_id}",
            code="BRANCH_NOT_FOUND",
            details={"branch_id": branch_id, "tenant_id": tenant_id},
        )


class WarehouseNotFoundError(NotFoundError):
    """Warehouse not found, or not part of the given branch."""

    def __init__(self, warehouse_id: int, branch_id: int | None = None):
        super().__init__(
            f"Warehouse not found: {warehouse_id}",
            code="WAREHOUSE_NOT_FOUND",
            details={"warehouse_id": warehouse_id, "branch_id": branch_id},
        )


class MovementNotFoundError(NotFoundError):
    """Stock movement not found."""

    def __init__(self, movement_id: int):
        super().__init__(
            f"Stock movement not found: {movement_id}",
            code="MOVEMENT_NOT_FOUND",
            details={"movement_id": movement_id},
        )


# Stock Exceptions
class StockError(LedgerError):
    """Base exception for stock issuing failures."""

    pass


class InsufficientStockError(StockError):
    """Requested issue quantity exceeds the available quantity."""

    def __init__(
        self,
        product_id: int,
        requested: Decimal,
        available: Decimal,
    ):
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}",
            code="INSUFFICIENT_STOCK",
            details={
                "product_id": product_id,
                "requested": str(requested),
                "available": str(available),
            },
        )
        self.requested = requested
        self.available = available


class AllocationError(StockError):
    """Batches ran out before the requested quantity was allocated."""

    def __init__(
        self,
        product_id: int,
        requested: Decimal,
        remaining: Decimal,
    ):
        super().__init__(
            f"Unable to allocate stock from batches for product {product_id}: "
            f"{remaining} of {requested} unallocated",
            code="ALLOCATION_FAILED",
            details={
                "product_id": product_id,
                "requested": str(requested),
                "remaining": str(remaining),
            },
        )
        self.requested = requested
        self.remaining = remaining


# Storage Exceptions
class StorageError(LedgerError):
    """Base exception for storage operations."""

    pass


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


class ConfigurationError(LedgerError):
    """Configuration error."""

    pass
