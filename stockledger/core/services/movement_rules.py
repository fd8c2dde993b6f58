"""
Validation and normalization of movements before they are appended.

Pure functions: no storage access. Everything a store needs to reject a
movement is checked here so that a rejected movement never reaches the
database.
"""

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from stockledger.core.entities.ledger import (
    Actor,
    StockMovement,
    StockMovementInput,
    TransactionType,
    quantize_money,
    quantize_quantity,
)
from stockledger.core.exceptions import ValidationError


def parse_quantity(value: Any, field: str = "quantity") -> Decimal:
    """Convert to a 4dp quantity, rejecting anything that is not strictly positive."""
    try:
        quantity = quantize_quantity(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(field, "must be a decimal number", value) from None
    if not quantity.is_finite() or quantity <= 0:
        raise ValidationError(field, "must be greater than zero", value)
    return quantity


def parse_unit_cost(value: Any, field: str = "unit_cost") -> Decimal:
    """Convert to a 2dp cost, rejecting negatives."""
    try:
        cost = quantize_money(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(field, "must be a decimal number", value) from None
    if not cost.is_finite() or cost < 0:
        raise ValidationError(field, "must not be negative", value)
    return cost


def _require_id(field: str, value: int | None) -> int:
    if value is None or value <= 0:
        raise ValidationError(field, "is required", value)
    return value


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def prepare_movement(
    movement: StockMovementInput,
    actor: Actor | None = None,
) -> StockMovement:
    """
    Validate an input and turn it into an unsaved ledger row.

    Quantity is quantized to 4 places, costs to 2, and total_cost is
    captured as quantity * unit_cost. created_by falls back to the actor.

    Raises:
        ValidationError: if any required field is missing or out of range.
    """
    tenant_id = _require_id("tenant_id", movement.tenant_id)
    product_id = _require_id("product_id", movement.product_id)
    branch_id = _require_id("branch_id", movement.branch_id)
    if movement.warehouse_id is not None:
        _require_id("warehouse_id", movement.warehouse_id)

    transaction_type = TransactionType.parse(movement.transaction_type)
    quantity = parse_quantity(movement.quantity)
    unit_cost = parse_unit_cost(movement.unit_cost)

    if (
        movement.manufacture_date is not None
        and movement.expiry_date is not None
        and movement.expiry_date < movement.manufacture_date
    ):
        raise ValidationError(
            "expiry_date", "must not be before manufacture_date", movement.expiry_date
        )

    created_by = movement.created_by
    if created_by is None and actor is not None:
        created_by = actor.id
    if created_by is None:
        raise ValidationError("created_by", "no actor to attribute the movement to")
    _require_id("created_by", created_by)

    return StockMovement(
        tenant_id=tenant_id,
        product_id=product_id,
        branch_id=branch_id,
        warehouse_id=movement.warehouse_id,
        transaction_type=transaction_type,
        quantity=quantity,
        unit_cost=unit_cost,
        total_cost=quantize_money(quantity * unit_cost),
        batch_number=_clean(movement.batch_number),
        lot_number=_clean(movement.lot_number),
        serial_number=_clean(movement.serial_number),
        manufacture_date=movement.manufacture_date,
        expiry_date=movement.expiry_date,
        reference=movement.reference,
        remarks=movement.remarks,
        created_by=created_by,
        created_at=datetime.now(UTC),
    )
