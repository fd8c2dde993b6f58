"""Core domain entities."""

from stockledger.core.entities.catalog import Branch, Product, Warehouse
from stockledger.core.entities.ledger import (
    Actor,
    DocumentReference,
    ExpiryAlerts,
    ReferenceKind,
    StockMovement,
    StockMovementInput,
    StockPosition,
    StockValuation,
    TransactionType,
)

__all__ = [
    # Ledger entities
    "StockMovement",
    "StockMovementInput",
    "StockPosition",
    "StockValuation",
    "ExpiryAlerts",
    "TransactionType",
    "DocumentReference",
    "ReferenceKind",
    "Actor",
    # Catalog entities
    "Product",
    "Branch",
    "Warehouse",
]
