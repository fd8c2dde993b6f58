"""Get Movement History Use Case: read access to the ledger trail."""

from stockledger.application.dto.responses import (
    MovementHistoryResponse,
    StockMovementResponse,
)
from stockledger.core.entities.ledger import DocumentReference, StockMovement
from stockledger.core.exceptions import MovementNotFoundError, ValidationError
from stockledger.core.interfaces.ledger_store import ILedgerStore

MAX_PAGE_SIZE = 500


class GetMovementHistoryUseCase:
    """Newest-first movement history, document and serial traces."""

    def __init__(self, ledger_store: ILedgerStore | None = None):
        self._ledger_store = ledger_store

    async def _get_ledger_store(self) -> ILedgerStore:
        if self._ledger_store is None:
            from stockledger.infrastructure.storage.sqlite import get_ledger_store

            self._ledger_store = await get_ledger_store()
        return self._ledger_store

    async def execute(
        self,
        tenant_id: int,
        product_id: int,
        branch_id: int | None = None,
        warehouse_id: int | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[StockMovement]:
        """List a product's movements, newest first."""
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError("limit", f"must be between 1 and {MAX_PAGE_SIZE}", limit)
        if offset < 0:
            raise ValidationError("offset", "must not be negative", offset)

        ledger = await self._get_ledger_store()
        return await ledger.list_movements(
            tenant_id,
            product_id,
            branch_id=branch_id,
            warehouse_id=warehouse_id,
            limit=limit,
            offset=offset,
        )

    async def get(self, tenant_id: int, movement_id: int) -> StockMovement:
        """Fetch one movement or raise MovementNotFoundError."""
        ledger = await self._get_ledger_store()
        movement = await ledger.get_movement(tenant_id, movement_id)
        if movement is None:
            raise MovementNotFoundError(movement_id)
        return movement

    async def for_reference(
        self, tenant_id: int, reference: DocumentReference
    ) -> list[StockMovement]:
        """All movements posted for a business document."""
        ledger = await self._get_ledger_store()
        return await ledger.movements_for_reference(tenant_id, reference)

    async def trace_serial(
        self, tenant_id: int, product_id: int, serial_number: str
    ) -> list[StockMovement]:
        """Movements carrying a serial number, oldest first."""
        if not serial_number or not serial_number.strip():
            raise ValidationError("serial_number", "must not be empty")
        ledger = await self._get_ledger_store()
        return await ledger.find_by_serial(tenant_id, product_id, serial_number.strip())

    def to_response(
        self, movements: list[StockMovement], limit: int = 100, offset: int = 0
    ) -> MovementHistoryResponse:
        """Convert a page of movements to response DTO."""
        return MovementHistoryResponse(
            items=[StockMovementResponse.from_entity(m) for m in movements],
            total=len(movements),
            limit=limit,
            offset=offset,
        )
