"""
Stock Allocation Service.

Turns one logical "issue N units" request into one ledger movement per
batch consumed, walking batches in FIFO or FEFO order. The whole issuance
runs inside a single ledger unit of work: either every movement commits
or none does.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from stockledger.config import get_logger
from stockledger.core.entities.catalog import Product
from stockledger.core.entities.ledger import (
    Actor,
    DocumentReference,
    StockMovement,
    StockMovementInput,
    StockPosition,
    TransactionType,
)
from stockledger.core.exceptions import (
    AllocationError,
    InsufficientStockError,
    ValidationError,
)
from stockledger.core.interfaces.ledger_store import ILedgerStore
from stockledger.core.services.movement_rules import parse_quantity

logger = get_logger(__name__)


class AllocationPolicy(str, Enum):
    """Order in which batches are consumed."""

    FIFO = "fifo"
    FEFO = "fefo"


def select_policy(product: Product) -> AllocationPolicy:
    """Expiry-tracked products are issued FEFO, everything else FIFO."""
    return AllocationPolicy.FEFO if product.track_expiry else AllocationPolicy.FIFO


@dataclass(frozen=True)
class BatchAllocation:
    """Quantity drawn from one position."""

    position: StockPosition
    quantity: Decimal


@dataclass(frozen=True)
class IssueMetadata:
    """Caller-supplied attributes copied onto every emitted movement."""

    reference: DocumentReference | None = None
    remarks: str | None = None
    serial_number: str | None = None
    created_by: int | None = None


def plan_allocation(
    positions: list[StockPosition],
    quantity: Decimal,
    product_id: int,
) -> list[BatchAllocation]:
    """
    Greedily split a quantity across positions in the given order.

    Deterministic: the same positions and quantity always give the same plan.

    Raises:
        AllocationError: if the positions run out before the quantity is covered.
    """
    remaining = quantity
    plan: list[BatchAllocation] = []

    for position in positions:
        if remaining <= 0:
            break
        if position.current_quantity <= 0:
            continue
        drawn = min(remaining, position.current_quantity)
        plan.append(BatchAllocation(position=position, quantity=drawn))
        remaining -= drawn

    if remaining > 0:
        raise AllocationError(
            product_id=product_id,
            requested=quantity,
            remaining=remaining,
        )

    return plan


class StockAllocationService:
    """
    Layer-pure service that issues stock from batches.

    Depends only on the ILedgerStore port.
    """

    def __init__(self, ledger_store: ILedgerStore) -> None:
        self._ledger_store = ledger_store

    async def issue_stock(
        self,
        product: Product,
        branch_id: int,
        quantity: Any,
        transaction_type: TransactionType | str,
        warehouse_id: int | None = None,
        metadata: IssueMetadata | None = None,
        actor: Actor | None = None,
    ) -> list[StockMovement]:
        """
        Issue a quantity of a product from a branch (and optionally a warehouse).

        Args:
            product: Product being issued; its track_expiry flag picks the policy.
            branch_id: Branch to issue from.
            quantity: Units to issue, must be positive.
            transaction_type: One of the outgoing transaction types.
            warehouse_id: Restrict to one warehouse; all of the branch when None.
            metadata: Reference, remarks and attribution for the movements.
            actor: Identity recorded as created_by when metadata has none.

        Returns:
            Emitted movements in allocation order; quantities sum to the request.

        Raises:
            ValidationError: non-positive quantity, non-outgoing type, or a
                serial number on anything other than one unit from one batch.
            InsufficientStockError: available quantity is below the request.
            AllocationError: batches exhausted despite a passing availability check.
        """
        requested = parse_quantity(quantity)
        tx_type = TransactionType.parse(transaction_type)
        if not tx_type.is_outgoing:
            raise ValidationError(
                "transaction_type",
                "must be an outgoing transaction type",
                tx_type.value,
            )

        metadata = metadata or IssueMetadata()
        if metadata.serial_number and requested != 1:
            raise ValidationError(
                "serial_number",
                "a serial number identifies one unit; issue quantity must be 1",
                metadata.serial_number,
            )
        tenant_id = product.tenant_id
        policy = select_policy(product)

        logger.info(
            "issue_stock_started",
            tenant_id=tenant_id,
            product_id=product.id,
            branch_id=branch_id,
            warehouse_id=warehouse_id,
            quantity=str(requested),
            policy=policy.value,
        )

        async with self._ledger_store.unit_of_work() as ledger:
            available = await ledger.current_quantity(
                tenant_id, product.id, branch_id, warehouse_id
            )
            if available < requested:
                raise InsufficientStockError(
                    product_id=product.id,
                    requested=requested,
                    available=available,
                )

            positions = await self._ordered_positions(
                ledger, policy, tenant_id, product.id, branch_id, warehouse_id
            )

            try:
                plan = plan_allocation(positions, requested, product.id)
            except AllocationError as e:
                logger.error(
                    "allocation_exhausted",
                    tenant_id=tenant_id,
                    product_id=product.id,
                    branch_id=branch_id,
                    warehouse_id=warehouse_id,
                    requested=str(requested),
                    available=str(available),
                    remaining=str(e.remaining),
                )
                raise

            if metadata.serial_number and len(plan) > 1:
                raise ValidationError(
                    "serial_number",
                    "serialized unit cannot be split across batches",
                    metadata.serial_number,
                )

            movements: list[StockMovement] = []
            for allocation in plan:
                position = allocation.position
                movement = await ledger.record_movement(
                    StockMovementInput(
                        tenant_id=tenant_id,
                        product_id=product.id,
                        branch_id=position.branch_id,
                        warehouse_id=position.warehouse_id,
                        transaction_type=tx_type,
                        quantity=allocation.quantity,
                        unit_cost=position.average_cost,
                        batch_number=position.batch_number,
                        lot_number=position.lot_number,
                        serial_number=metadata.serial_number,
                        expiry_date=position.expiry_date,
                        reference=metadata.reference,
                        remarks=metadata.remarks,
                        created_by=metadata.created_by,
                    ),
                    actor,
                )
                movements.append(movement)

        logger.info(
            "stock_issued",
            tenant_id=tenant_id,
            product_id=product.id,
            branch_id=branch_id,
            quantity=str(requested),
            batches=len(movements),
        )
        return movements

    @staticmethod
    async def _ordered_positions(
        ledger: ILedgerStore,
        policy: AllocationPolicy,
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None,
    ) -> list[StockPosition]:
        """Positions in consumption order for the policy."""
        fifo = await ledger.batches_fifo(tenant_id, product_id, branch_id, warehouse_id)
        if policy is AllocationPolicy.FIFO:
            return fifo

        # Undated stock is still counted as available; issue it after dated batches
        fefo = await ledger.batches_fefo(tenant_id, product_id, branch_id, warehouse_id)
        undated = [p for p in fifo if p.expiry_date is None]
        return fefo + undated
