"""Abstract interface for the stock ledger."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import date
from decimal import Decimal

from stockledger.core.entities.ledger import (
    Actor,
    DocumentReference,
    StockMovement,
    StockMovementInput,
    StockPosition,
)


class ILedgerStore(ABC):
    """
    Append-only storage of stock movements and their derived positions.

    Every query is scoped by an explicit tenant_id. Movements are never
    updated or deleted once appended.
    """

    @abstractmethod
    def unit_of_work(self) -> AbstractAsyncContextManager["ILedgerStore"]:
        """
        Open a serialized write transaction.

        Yields a store bound to the transaction. Everything appended through
        it commits together on clean exit and is discarded on any exception.
        """
        pass

    @abstractmethod
    async def record_movement(
        self,
        movement: StockMovementInput,
        actor: Actor | None = None,
    ) -> StockMovement:
        """Validate and append a movement."""
        pass

    @abstractmethod
    async def current_quantity(
        self,
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None = None,
    ) -> Decimal:
        """Quantity on hand across matching positions (0 when none)."""
        pass

    @abstractmethod
    async def batches_fifo(
        self,
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None = None,
    ) -> list[StockPosition]:
        """Positions with stock, oldest receipt first."""
        pass

    @abstractmethod
    async def batches_fefo(
        self,
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None = None,
    ) -> list[StockPosition]:
        """Dated positions with stock, soonest expiry first."""
        pass

    @abstractmethod
    async def expired_batches(
        self,
        tenant_id: int,
        branch_id: int | None = None,
        today: date | None = None,
    ) -> list[StockPosition]:
        """Positions with stock whose expiry date is before today."""
        pass

    @abstractmethod
    async def near_expiry_batches(
        self,
        tenant_id: int,
        within_days: int,
        branch_id: int | None = None,
        today: date | None = None,
    ) -> list[StockPosition]:
        """Positions with stock expiring within [today, today + within_days]."""
        pass

    @abstractmethod
    async def get_movement(self, tenant_id: int, movement_id: int) -> StockMovement | None:
        """Get a movement by ID."""
        pass

    @abstractmethod
    async def list_movements(
        self,
        tenant_id: int,
        product_id: int,
        branch_id: int | None = None,
        warehouse_id: int | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[StockMovement]:
        """List a product's movements, newest first."""
        pass

    @abstractmethod
    async def movements_for_reference(
        self, tenant_id: int, reference: DocumentReference
    ) -> list[StockMovement]:
        """List movements originating from a business document."""
        pass

    @abstractmethod
    async def find_by_serial(
        self, tenant_id: int, product_id: int, serial_number: str
    ) -> list[StockMovement]:
        """Trace every movement of a serial number."""
        pass
