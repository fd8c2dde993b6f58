"""Pytest configuration for unit service tests.

Services get an AsyncMock ledger store whose unit_of_work() yields itself
and whose record_movement() echoes back a validated, numbered movement.
"""

import itertools
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from stockledger.core.entities.ledger import StockPosition
from stockledger.core.services.movement_rules import prepare_movement


def make_position(
    batch_number: str | None,
    quantity: str,
    average_cost: str = "0",
    first_movement_id: int = 1,
    expiry_date: date | None = None,
    warehouse_id: int | None = 1,
    lot_number: str | None = None,
) -> StockPosition:
    return StockPosition(
        tenant_id=1,
        product_id=1,
        branch_id=1,
        warehouse_id=warehouse_id,
        batch_number=batch_number,
        lot_number=lot_number,
        expiry_date=expiry_date,
        current_quantity=Decimal(quantity),
        average_cost=Decimal(average_cost),
        first_movement_id=first_movement_id,
    )


@pytest.fixture
def position_factory():
    return make_position


@pytest.fixture
def mock_ledger_store() -> AsyncMock:
    store = AsyncMock()

    uow = MagicMock()
    uow.__aenter__.return_value = store
    uow.__aexit__.return_value = False
    store.unit_of_work = MagicMock(return_value=uow)

    ids = itertools.count(1)

    async def _record(movement, actor=None):
        return prepare_movement(movement, actor).model_copy(update={"id": next(ids)})

    store.record_movement.side_effect = _record
    store.batches_fifo.return_value = []
    store.batches_fefo.return_value = []
    return store
