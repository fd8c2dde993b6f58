"""
Response DTOs for the stock ledger use cases.

Serializable views of ledger entities handed back to calling services.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from stockledger.core.entities.ledger import StockMovement, StockPosition


class StockMovementResponse(BaseModel):
    """Stock movement response DTO."""

    id: int
    product_id: int
    branch_id: int
    warehouse_id: int | None = None
    transaction_type: str
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    batch_number: str | None = None
    lot_number: str | None = None
    serial_number: str | None = None
    manufacture_date: date | None = None
    expiry_date: date | None = None
    reference_type: str | None = None
    reference_id: int | None = None
    remarks: str | None = None
    created_by: int
    created_at: datetime

    @classmethod
    def from_entity(cls, movement: StockMovement) -> "StockMovementResponse":
        return cls(
            id=movement.id,  # type: ignore[arg-type]
            product_id=movement.product_id,
            branch_id=movement.branch_id,
            warehouse_id=movement.warehouse_id,
            transaction_type=movement.transaction_type.value,
            quantity=movement.quantity,
            unit_cost=movement.unit_cost,
            total_cost=movement.total_cost,
            batch_number=movement.batch_number,
            lot_number=movement.lot_number,
            serial_number=movement.serial_number,
            manufacture_date=movement.manufacture_date,
            expiry_date=movement.expiry_date,
            reference_type=movement.reference.kind.value if movement.reference else None,
            reference_id=movement.reference.id if movement.reference else None,
            remarks=movement.remarks,
            created_by=movement.created_by,
            created_at=movement.created_at,
        )


class StockPositionResponse(BaseModel):
    """Batch position response DTO."""

    product_id: int
    branch_id: int
    warehouse_id: int | None = None
    batch_number: str | None = None
    lot_number: str | None = None
    expiry_date: date | None = None
    current_quantity: Decimal
    average_cost: Decimal
    days_until_expiry: int | None = None

    @classmethod
    def from_entity(
        cls, position: StockPosition, today: date | None = None
    ) -> "StockPositionResponse":
        return cls(
            product_id=position.product_id,
            branch_id=position.branch_id,
            warehouse_id=position.warehouse_id,
            batch_number=position.batch_number,
            lot_number=position.lot_number,
            expiry_date=position.expiry_date,
            current_quantity=position.current_quantity,
            average_cost=position.average_cost,
            days_until_expiry=position.days_until_expiry(today),
        )


class ReceiveStockResponse(BaseModel):
    """Response for stock receive operation."""

    movement: StockMovementResponse
    current_quantity: Decimal


class IssueStockResponse(BaseModel):
    """Response for stock issue operation."""

    movements: list[StockMovementResponse]
    quantity: Decimal
    total_cost: Decimal
    remaining_quantity: Decimal


class StockValuationResponse(BaseModel):
    """Stock valuation for one product at one location."""

    product_id: int
    branch_id: int
    warehouse_id: int | None = None
    quantity: Decimal
    total_value: Decimal
    average_cost: Decimal


class ExpiryAlertsResponse(BaseModel):
    """Expired and near-expiry batches for a branch."""

    branch_id: int | None = None
    within_days: int
    expired: list[StockPositionResponse] = Field(default_factory=list)
    near_expiry: list[StockPositionResponse] = Field(default_factory=list)
    total: int = 0


class MovementHistoryResponse(BaseModel):
    """Page of a product's ledger history."""

    items: list[StockMovementResponse]
    total: int
    limit: int
    offset: int
