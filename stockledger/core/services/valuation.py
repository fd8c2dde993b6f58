"""Stock valuation and expiry alerts derived from ledger positions."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from stockledger.config import get_logger, get_settings
from stockledger.core.entities.ledger import (
    ExpiryAlerts,
    StockValuation,
    quantize_average_cost,
    quantize_money,
    quantize_quantity,
)
from stockledger.core.exceptions import ValidationError
from stockledger.core.interfaces.ledger_store import ILedgerStore

logger = get_logger(__name__)


class StockValuationService:
    """Read-only reports over the ledger's batch positions."""

    def __init__(
        self,
        ledger_store: ILedgerStore,
        near_expiry_days: int | None = None,
    ) -> None:
        self._ledger_store = ledger_store
        self._near_expiry_days = near_expiry_days

    @property
    def near_expiry_days(self) -> int:
        """Default look-ahead window, LEDGER_NEAR_EXPIRY_DAYS unless injected."""
        if self._near_expiry_days is not None:
            return self._near_expiry_days
        return get_settings().ledger.near_expiry_days

    async def valuation(
        self,
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None = None,
    ) -> StockValuation:
        """
        Value a product's stock at a branch (optionally one warehouse).

        total_value sums quantity * average_cost per batch; average_cost is
        total_value / quantity, or 0 for an empty position.
        """
        positions = await self._ledger_store.batches_fifo(
            tenant_id, product_id, branch_id, warehouse_id
        )

        quantity = Decimal("0")
        total_value = Decimal("0")
        for position in positions:
            quantity += position.current_quantity
            total_value += position.value

        average_cost = total_value / quantity if quantity > 0 else Decimal("0")

        return StockValuation(
            quantity=quantize_quantity(quantity),
            total_value=quantize_money(total_value),
            average_cost=quantize_average_cost(average_cost),
        )

    async def expiry_alerts(
        self,
        tenant_id: int,
        branch_id: int | None,
        days: int | None = None,
        today: date | None = None,
    ) -> ExpiryAlerts:
        """Expired batches plus batches expiring within the look-ahead window."""
        days = self.near_expiry_days if days is None else days
        if days < 0:
            raise ValidationError("days", "must not be negative", days)

        expired = await self._ledger_store.expired_batches(
            tenant_id, branch_id=branch_id, today=today
        )
        near_expiry = await self._ledger_store.near_expiry_batches(
            tenant_id, days, branch_id=branch_id, today=today
        )

        logger.info(
            "expiry_alerts_evaluated",
            tenant_id=tenant_id,
            branch_id=branch_id,
            days=days,
            expired=len(expired),
            near_expiry=len(near_expiry),
        )
        return ExpiryAlerts(expired=expired, near_expiry=near_expiry)
