"""Receive Stock Use Case: straight append of an incoming movement."""

from dataclasses import dataclass
from decimal import Decimal

from stockledger.application.dto.requests import ReceiveStockRequest
from stockledger.application.dto.responses import (
    ReceiveStockResponse,
    StockMovementResponse,
)
from stockledger.application.use_cases.location import resolve_product_at_location
from stockledger.config import get_logger, get_settings
from stockledger.core.entities.catalog import Product
from stockledger.core.entities.ledger import Actor, StockMovement, StockMovementInput
from stockledger.core.exceptions import ValidationError
from stockledger.core.interfaces.catalog_store import ICatalogStore
from stockledger.core.interfaces.ledger_store import ILedgerStore

logger = get_logger(__name__)


@dataclass
class ReceiveStockResult:
    """Result of receiving stock."""

    movement: StockMovement
    current_quantity: Decimal


class ReceiveStockUseCase:
    """Receive stock (incoming movement), no allocation involved."""

    def __init__(
        self,
        ledger_store: ILedgerStore | None = None,
        catalog_store: ICatalogStore | None = None,
        enforce_lot_tracking: bool | None = None,
    ):
        self._ledger_store = ledger_store
        self._catalog_store = catalog_store
        self._enforce_lot_tracking = enforce_lot_tracking

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

    @property
    def enforce_lot_tracking(self) -> bool:
        if self._enforce_lot_tracking is None:
            return get_settings().ledger.enforce_lot_tracking
        return self._enforce_lot_tracking

    async def execute(
        self,
        request: ReceiveStockRequest,
        actor: Actor | None = None,
    ) -> ReceiveStockResult:
        """Execute receive stock use case."""
        logger.info(
            "receive_stock_started",
            tenant_id=request.tenant_id,
            product_id=request.product_id,
            quantity=str(request.quantity),
        )

        if not request.transaction_type.is_incoming:
            raise ValidationError(
                "transaction_type",
                "must be an incoming transaction type",
                request.transaction_type.value,
            )

        # 1. Validate product and location
        catalog = await self._get_catalog_store()
        product = await resolve_product_at_location(
            catalog,
            request.tenant_id,
            request.product_id,
            request.branch_id,
            request.warehouse_id,
        )

        # 2. Lot identity required by the product
        if self.enforce_lot_tracking:
            self._check_lot_identity(product, request)

        # 3. Append the movement
        ledger = await self._get_ledger_store()
        movement = await ledger.record_movement(
            StockMovementInput(
                tenant_id=request.tenant_id,
                product_id=request.product_id,
                branch_id=request.branch_id,
                warehouse_id=request.warehouse_id,
                transaction_type=request.transaction_type,
                quantity=request.quantity,
                unit_cost=request.unit_cost,
                batch_number=request.batch_number,
                lot_number=request.lot_number,
                serial_number=request.serial_number,
                manufacture_date=request.manufacture_date,
                expiry_date=request.expiry_date,
                reference=request.reference,
                remarks=request.remarks,
            ),
            actor,
        )

        current_quantity = await ledger.current_quantity(
            request.tenant_id,
            request.product_id,
            request.branch_id,
            request.warehouse_id,
        )

        logger.info(
            "receive_stock_complete",
            movement_id=movement.id,
            current_qty=str(current_quantity),
        )

        return ReceiveStockResult(movement=movement, current_quantity=current_quantity)

    @staticmethod
    def _check_lot_identity(product: Product, request: ReceiveStockRequest) -> None:
        if product.track_batch and not request.batch_number:
            raise ValidationError("batch_number", f"required for product {product.sku}")
        if product.track_serial and not request.serial_number:
            raise ValidationError("serial_number", f"required for product {product.sku}")
        if product.track_expiry and request.expiry_date is None:
            raise ValidationError("expiry_date", f"required for product {product.sku}")

    def to_response(self, result: ReceiveStockResult) -> ReceiveStockResponse:
        """Convert result to response DTO."""
        return ReceiveStockResponse(
            movement=StockMovementResponse.from_entity(result.movement),
            current_quantity=result.current_quantity,
        )
