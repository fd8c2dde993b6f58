"""Get Stock Valuation Use Case."""

from stockledger.application.dto.responses import StockValuationResponse
from stockledger.application.use_cases.location import resolve_product_at_location
from stockledger.config import get_logger
from stockledger.core.entities.ledger import StockValuation
from stockledger.core.interfaces.catalog_store import ICatalogStore
from stockledger.core.interfaces.ledger_store import ILedgerStore
from stockledger.core.services.valuation import StockValuationService

logger = get_logger(__name__)


class GetStockValuationUseCase:
    """Value a product's on-hand stock at average cost per batch."""

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
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None = None,
    ) -> StockValuation:
        """
        Compute quantity, total value and average cost for the location.

        Raises:
            ProductNotFoundError, BranchNotFoundError, WarehouseNotFoundError
        """
        catalog = await self._get_catalog_store()
        await resolve_product_at_location(
            catalog, tenant_id, product_id, branch_id, warehouse_id
        )

        service = StockValuationService(await self._get_ledger_store())
        valuation = await service.valuation(tenant_id, product_id, branch_id, warehouse_id)

        logger.debug(
            "stock_valuation_computed",
            product_id=product_id,
            branch_id=branch_id,
            quantity=str(valuation.quantity),
            total_value=str(valuation.total_value),
        )
        return valuation

    def to_response(
        self,
        valuation: StockValuation,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None = None,
    ) -> StockValuationResponse:
        """Convert result to response DTO."""
        return StockValuationResponse(
            product_id=product_id,
            branch_id=branch_id,
            warehouse_id=warehouse_id,
            quantity=valuation.quantity,
            total_value=valuation.total_value,
            average_cost=valuation.average_cost,
        )
