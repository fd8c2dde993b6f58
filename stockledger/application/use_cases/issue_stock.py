"""Issue Stock Use Case: outgoing movements allocated FIFO/FEFO by batch."""

from dataclasses import dataclass, field
from decimal import Decimal

from stockledger.application.dto.requests import IssueStockRequest
from stockledger.application.dto.responses import (
    IssueStockResponse,
    StockMovementResponse,
)
from stockledger.application.use_cases.location import resolve_product_at_location
from stockledger.config import get_logger
from stockledger.core.entities.ledger import Actor, StockMovement, quantize_money
from stockledger.core.interfaces.catalog_store import ICatalogStore
from stockledger.core.interfaces.ledger_store import ILedgerStore
from stockledger.core.services.allocation import IssueMetadata, StockAllocationService

logger = get_logger(__name__)


@dataclass
class IssueStockResult:
    """Result of issuing stock."""

    movements: list[StockMovement] = field(default_factory=list)
    remaining_quantity: Decimal = Decimal("0")

    @property
    def quantity(self) -> Decimal:
        return sum((m.quantity for m in self.movements), Decimal("0"))

    @property
    def total_cost(self) -> Decimal:
        return quantize_money(sum((m.total_cost for m in self.movements), Decimal("0")))


class IssueStockUseCase:
    """Issue stock with batch allocation and an upfront balance check."""

    def __init__(
        self,
        ledger_store: ILedgerStore | None = None,
        catalog_store: ICatalogStore | None = None,
    ):
        self._ledger_store = ledger_store
        self._catalog_store = catalog_store

    async def _get_ledger_store(self) -> ILedgerStore:
        if self._ledger_store is None:
            from stockledger.infrastructure.storage.sqlite import get_ledger_store

            self._ledger_store = await get_ledger_store()
        return self._ledger_store

    async def _get_catalog_store(self) -> ICatalogStore:
        if self._catalog_store is None:
            from stockledger.infrastructure.storage.sqlite import get_catalog_store

            self._catalog_store = await get_catalog_store()
        return self._catalog_store

    async def execute(
        self,
        request: IssueStockRequest,
        actor: Actor | None = None,
    ) -> IssueStockResult:
        """Execute issue stock use case."""
        catalog = await self._get_catalog_store()
        product = await resolve_product_at_location(
            catalog,
            request.tenant_id,
            request.product_id,
            request.branch_id,
            request.warehouse_id,
        )

        ledger = await self._get_ledger_store()
        allocator = StockAllocationService(ledger)
        movements = await allocator.issue_stock(
            product=product,
            branch_id=request.branch_id,
            quantity=request.quantity,
            transaction_type=request.transaction_type,
            warehouse_id=request.warehouse_id,
            metadata=IssueMetadata(
                reference=request.reference,
                remarks=request.remarks,
                serial_number=request.serial_number,
            ),
            actor=actor,
        )

        remaining = await ledger.current_quantity(
            request.tenant_id,
            request.product_id,
            request.branch_id,
            request.warehouse_id,
        )

        logger.info(
            "issue_stock_complete",
            product_id=request.product_id,
            movements=len(movements),
            remaining_qty=str(remaining),
        )

        return IssueStockResult(movements=movements, remaining_quantity=remaining)

    def to_response(self, result: IssueStockResult) -> IssueStockResponse:
        """Convert result to response DTO."""
        return IssueStockResponse(
            movements=[StockMovementResponse.from_entity(m) for m in result.movements],
            quantity=result.quantity,
            total_cost=result.total_cost,
            remaining_quantity=result.remaining_quantity,
        )
