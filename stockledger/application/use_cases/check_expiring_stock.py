"""
Check Expiring Stock Use Case.

Lists batches that have already expired and batches expiring within a
configurable look-ahead window (LEDGER_NEAR_EXPIRY_DAYS by default).
"""

from dataclasses import dataclass, field
from datetime import date

from stockledger.application.dto.responses import (
    ExpiryAlertsResponse,
    StockPositionResponse,
)
from stockledger.config import get_logger
from stockledger.core.entities.ledger import StockPosition
from stockledger.core.interfaces.ledger_store import ILedgerStore
from stockledger.core.services.valuation import StockValuationService

logger = get_logger(__name__)


@dataclass
class ExpiringStockResult:
    """Result of an expiring stock check."""

    within_days: int
    branch_id: int | None = None
    expired: list[StockPosition] = field(default_factory=list)
    near_expiry: list[StockPosition] = field(default_factory=list)
    checked_on: date | None = None

    @property
    def total(self) -> int:
        return len(self.expired) + len(self.near_expiry)


class CheckExpiringStockUseCase:
    """Use case for expired and near-expiry batch alerts."""

    def __init__(
        self,
        ledger_store: ILedgerStore | None = None,
        default_days: int | None = None,
    ):
        self._ledger_store = ledger_store
        self._default_days = default_days

    async def _get_ledger_store(self) -> ILedgerStore:
        if self._ledger_store is None:
            from stockledger.infrastructure.storage.sqlite import get_ledger_store

            self._ledger_store = await get_ledger_store()
        return self._ledger_store

    async def execute(
        self,
        tenant_id: int,
        branch_id: int | None = None,
        within_days: int | None = None,
        today: date | None = None,
    ) -> ExpiringStockResult:
        """
        Check a tenant's batches for expiry.

        Args:
            tenant_id: Tenant whose stock is checked.
            branch_id: Restrict to one branch; all branches when None.
            within_days: Look-ahead window; defaults to the configured value.
            today: Reference date, defaults to the current date.

        Returns:
            ExpiringStockResult with expired and near-expiry positions.
        """
        service = StockValuationService(
            await self._get_ledger_store(), near_expiry_days=self._default_days
        )
        if within_days is None:
            within_days = service.near_expiry_days
        today = today or date.today()

        alerts = await service.expiry_alerts(
            tenant_id, branch_id, days=within_days, today=today
        )

        if alerts.total:
            logger.warning(
                "expiring_stock_found",
                tenant_id=tenant_id,
                branch_id=branch_id,
                expired=len(alerts.expired),
                near_expiry=len(alerts.near_expiry),
            )

        return ExpiringStockResult(
            within_days=within_days,
            branch_id=branch_id,
            expired=alerts.expired,
            near_expiry=alerts.near_expiry,
            checked_on=today,
        )

    def to_response(self, result: ExpiringStockResult) -> ExpiryAlertsResponse:
        """Convert result to response DTO."""
        return ExpiryAlertsResponse(
            branch_id=result.branch_id,
            within_days=result.within_days,
            expired=[
                StockPositionResponse.from_entity(p, result.checked_on)
                for p in result.expired
            ],
            near_expiry=[
                StockPositionResponse.from_entity(p, result.checked_on)
                for p in result.near_expiry
            ],
            total=result.total,
        )
