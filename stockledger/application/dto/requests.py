"""
Request DTOs for the stock ledger use cases.

Pydantic models validating caller input before it reaches a use case.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from stockledger.core.entities.ledger import DocumentReference, TransactionType


class ReceiveStockRequest(BaseModel):
    """Request to receive stock (incoming movement)."""

    tenant_id: int = Field(..., gt=0, description="Owning tenant")
    product_id: int = Field(..., gt=0, description="Product being received")
    branch_id: int = Field(..., gt=0, description="Receiving branch")
    warehouse_id: int | None = Field(default=None, gt=0, description="Receiving warehouse")
    transaction_type: TransactionType = Field(
        default=TransactionType.PURCHASE,
        description="Incoming transaction type",
    )
    quantity: Decimal = Field(..., gt=0, description="Quantity to receive")
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0, description="Cost per unit")
    batch_number: str | None = Field(default=None, max_length=100)
    lot_number: str | None = Field(default=None, max_length=100)
    serial_number: str | None = Field(default=None, max_length=100)
    manufacture_date: date | None = None
    expiry_date: date | None = None
    reference: DocumentReference | None = Field(
        default=None, description="Originating document, e.g. a purchase order"
    )
    remarks: str | None = Field(default=None, description="Additional notes")


class IssueStockRequest(BaseModel):
    """Request to issue stock (outgoing movements, allocated by batch)."""

    tenant_id: int = Field(..., gt=0, description="Owning tenant")
    product_id: int = Field(..., gt=0, description="Product being issued")
    branch_id: int = Field(..., gt=0, description="Issuing branch")
    warehouse_id: int | None = Field(
        default=None,
        gt=0,
        description="Issuing warehouse (all warehouses of the branch when omitted)",
    )
    transaction_type: TransactionType = Field(
        default=TransactionType.SALE,
        description="Outgoing transaction type",
    )
    quantity: Decimal = Field(..., gt=0, description="Quantity to issue")
    serial_number: str | None = Field(default=None, max_length=100)
    reference: DocumentReference | None = Field(
        default=None, description="Originating document, e.g. a sales order"
    )
    remarks: str | None = Field(default=None, description="Additional notes")
