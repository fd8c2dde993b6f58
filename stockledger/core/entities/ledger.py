"""Stock ledger domain entities."""

from datetime import UTC, date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from stockledger.core.exceptions import ValidationError

QUANTITY_STEP = Decimal("0.0001")  # decimal(12,4)
MONEY_STEP = Decimal("0.01")  # decimal(12,2) / decimal(14,2)
AVERAGE_COST_STEP = Decimal("0.0001")


def to_decimal(value: Any) -> Decimal:
    """Convert int/float/str/Decimal to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def quantize_quantity(value: Any) -> Decimal:
    return to_decimal(value).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def quantize_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(MONEY_STEP, rounding=ROUND_HALF_UP)


def quantize_average_cost(value: Any) -> Decimal:
    return to_decimal(value).quantize(AVERAGE_COST_STEP, rounding=ROUND_HALF_UP)


class TransactionType(str, Enum):
    """Kinds of stock movement. Direction comes from the kind, never the sign."""

    PURCHASE = "purchase"
    TRANSFER_IN = "transfer_in"
    ADJUSTMENT_IN = "adjustment_in"
    RETURN = "return"
    PRODUCTION = "production"
    SALE = "sale"
    TRANSFER_OUT = "transfer_out"
    ADJUSTMENT_OUT = "adjustment_out"

    @classmethod
    def incoming(cls) -> frozenset["TransactionType"]:
        return frozenset(
            {cls.PURCHASE, cls.TRANSFER_IN, cls.ADJUSTMENT_IN, cls.RETURN, cls.PRODUCTION}
        )

    @classmethod
    def outgoing(cls) -> frozenset["TransactionType"]:
        return frozenset({cls.SALE, cls.TRANSFER_OUT, cls.ADJUSTMENT_OUT})

    @classmethod
    def parse(cls, value: "str | TransactionType") -> "TransactionType":
        """Parse a transaction type, raising ValidationError for unknown kinds."""
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                "transaction_type",
                f"unknown transaction type (expected one of: {', '.join(t.value for t in cls)})",
                value,
            ) from None

    @property
    def is_incoming(self) -> bool:
        return self in TransactionType.incoming()

    @property
    def is_outgoing(self) -> bool:
        return self in TransactionType.outgoing()

    @property
    def sign(self) -> int:
        return 1 if self.is_incoming else -1


class ReferenceKind(str, Enum):
    """Business documents a movement can originate from."""

    PURCHASE_ORDER = "purchase_order"
    PURCHASE_INVOICE = "purchase_invoice"
    GOODS_RECEIPT = "goods_receipt"
    SALES_ORDER = "sales_order"
    SALES_INVOICE = "sales_invoice"
    SALES_RETURN = "sales_return"
    STOCK_TRANSFER = "stock_transfer"
    STOCK_ADJUSTMENT = "stock_adjustment"
    PRODUCTION_ORDER = "production_order"


class DocumentReference(BaseModel):
    """Typed pointer to the originating business document."""

    model_config = ConfigDict(frozen=True)

    kind: ReferenceKind
    id: int = Field(gt=0)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class Actor(BaseModel):
    """Authenticated identity that movements are attributed to."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)


class StockMovementInput(BaseModel):
    """Fields supplied by callers when appending a movement."""

    tenant_id: int
    product_id: int
    branch_id: int
    warehouse_id: int | None = None
    transaction_type: TransactionType
    quantity: Decimal
    unit_cost: Decimal = Decimal("0")

    batch_number: str | None = None
    lot_number: str | None = None
    serial_number: str | None = None
    manufacture_date: date | None = None
    expiry_date: date | None = None

    reference: DocumentReference | None = None
    remarks: str | None = None
    created_by: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StockMovementInput":
        """Build an input from loosely typed data, raising the domain ValidationError."""
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "movement"
            raise ValidationError(field, first["msg"], first.get("input")) from e


class StockMovement(BaseModel):
    """A single immutable row of the stock ledger."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    tenant_id: int
    product_id: int
    branch_id: int
    warehouse_id: int | None = None
    transaction_type: TransactionType
    quantity: Decimal  # always positive
    unit_cost: Decimal = Decimal("0.00")
    total_cost: Decimal = Decimal("0.00")  # captured at append time

    batch_number: str | None = None
    lot_number: str | None = None
    serial_number: str | None = None
    manufacture_date: date | None = None
    expiry_date: date | None = None

    reference: DocumentReference | None = None
    remarks: str | None = None
    created_by: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_incoming(self) -> bool:
        return self.transaction_type.is_incoming

    @property
    def is_outgoing(self) -> bool:
        return self.transaction_type.is_outgoing

    @property
    def signed_quantity(self) -> Decimal:
        return self.quantity * self.transaction_type.sign

    def has_expired(self, today: date | None = None) -> bool:
        today = today or date.today()
        return self.expiry_date is not None and self.expiry_date < today

    def is_near_expiry(self, days: int = 30, today: date | None = None) -> bool:
        """True when the expiry date falls within [today, today + days]."""
        today = today or date.today()
        if self.expiry_date is None:
            return False
        return today <= self.expiry_date <= today + timedelta(days=days)


class StockPosition(BaseModel):
    """
    Derived quantity on hand for one batch group.

    Grouped by (tenant, product, branch, warehouse, batch_number,
    lot_number, expiry_date). Never written directly.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: int
    product_id: int
    branch_id: int
    warehouse_id: int | None = None
    batch_number: str | None = None
    lot_number: str | None = None
    expiry_date: date | None = None
    current_quantity: Decimal
    average_cost: Decimal = Decimal("0")

    # Receipt that established the group
    first_movement_id: int | None = None
    first_received_at: datetime | None = None

    @property
    def value(self) -> Decimal:
        return self.current_quantity * self.average_cost

    def has_expired(self, today: date | None = None) -> bool:
        today = today or date.today()
        return self.expiry_date is not None and self.expiry_date < today

    def days_until_expiry(self, today: date | None = None) -> int | None:
        if self.expiry_date is None:
            return None
        return (self.expiry_date - (today or date.today())).days


class StockValuation(BaseModel):
    """Quantity and value of a product's stock at one location."""

    quantity: Decimal = Decimal("0")
    total_value: Decimal = Decimal("0.00")
    average_cost: Decimal = Decimal("0")


class ExpiryAlerts(BaseModel):
    """Expired and soon-to-expire batches that still hold stock."""

    expired: list[StockPosition] = Field(default_factory=list)
    near_expiry: list[StockPosition] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.expired) + len(self.near_expiry)
