"""Tests for SQLite ledger store."""

import sqlite3
from datetime import date
from decimal import Decimal
from pathlib import Path

import aiosqlite
import pytest

from stockledger.core.entities.ledger import (
    Actor,
    DocumentReference,
    ReferenceKind,
    TransactionType,
)
from stockledger.core.exceptions import (
    BranchNotFoundError,
    DatabaseError,
    InsufficientStockError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
    WarehouseNotFoundError,
)
from stockledger.infrastructure.storage.sqlite.ledger_store import SQLiteLedgerStore

TODAY = date(2025, 3, 1)


async def _row_count(db_path: Path) -> int:
    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("SELECT COUNT(*) FROM stock_ledger")
        row = await cursor.fetchone()
        return row[0]


class TestRecordMovement:
    """Tests for SQLiteLedgerStore.record_movement()."""

    async def test_record_assigns_id_and_captures_cost(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        movement = await store.record_movement(
            make_movement(quantity=Decimal("2.5"), unit_cost=Decimal("4.10"), batch_number="B1")
        )

        assert movement.id is not None
        assert movement.quantity == Decimal("2.5000")
        assert movement.unit_cost == Decimal("4.10")
        assert movement.total_cost == Decimal("10.25")
        assert movement.created_at.tzinfo is not None

    async def test_record_round_trips_all_fields(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        reference = DocumentReference(kind=ReferenceKind.PURCHASE_ORDER, id=42)
        created = await store.record_movement(
            make_movement(
                batch_number="B1",
                lot_number="L7",
                manufacture_date=date(2024, 1, 1),
                expiry_date=date(2026, 1, 1),
                reference=reference,
                remarks="first delivery",
            )
        )

        fetched = await store.get_movement(1, created.id)

        assert fetched is not None
        assert fetched.transaction_type == TransactionType.PURCHASE
        assert fetched.quantity == Decimal("10")
        assert fetched.unit_cost == Decimal("5.00")
        assert fetched.total_cost == Decimal("50.00")
        assert fetched.batch_number == "B1"
        assert fetched.lot_number == "L7"
        assert fetched.manufacture_date == date(2024, 1, 1)
        assert fetched.expiry_date == date(2026, 1, 1)
        assert fetched.reference == reference
        assert fetched.remarks == "first delivery"
        assert fetched.created_by == 1
        assert fetched.created_at == created.created_at

    async def test_created_by_falls_back_to_actor(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        movement = await store.record_movement(make_movement(created_by=None), Actor(id=1))
        assert movement.created_by == 1

    async def test_invalid_quantity_writes_nothing(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(ValidationError) as exc_info:
            await store.record_movement(make_movement(quantity=Decimal("0")))

        assert exc_info.value.field == "quantity"
        assert await _row_count(ledger_pool) == 0

    async def test_missing_actor_writes_nothing(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(ValidationError) as exc_info:
            await store.record_movement(make_movement(created_by=None))

        assert exc_info.value.field == "created_by"
        assert await _row_count(ledger_pool) == 0

    async def test_unknown_product_not_found(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(ProductNotFoundError) as exc_info:
            await store.record_movement(make_movement(product_id=999))

        assert isinstance(exc_info.value, NotFoundError)
        assert await _row_count(ledger_pool) == 0

    async def test_unknown_branch_not_found(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(BranchNotFoundError):
            await store.record_movement(make_movement(branch_id=999, warehouse_id=None))

        assert await _row_count(ledger_pool) == 0

    async def test_warehouse_of_other_branch_not_found(self, ledger_pool, make_movement):
        """Warehouse 3 exists but belongs to branch 2."""
        store = SQLiteLedgerStore()

        with pytest.raises(WarehouseNotFoundError):
            await store.record_movement(make_movement(branch_id=1, warehouse_id=3))

        assert await _row_count(ledger_pool) == 0

    async def test_unknown_user_raises_database_error(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(DatabaseError):
            await store.record_movement(make_movement(created_by=999))

        assert await _row_count(ledger_pool) == 0


class TestOutgoingMovements:
    """Outgoing rows may only draw on their own position."""

    async def test_outgoing_without_matching_position_rejected(self, ledger_pool, make_movement):
        """A sale from an unbatched group cannot consume batch B1's stock."""
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement(batch_number="B1", quantity=Decimal("100")))

        with pytest.raises(InsufficientStockError) as exc_info:
            await store.record_movement(
                make_movement(transaction_type=TransactionType.SALE, quantity=Decimal("10"))
            )

        assert exc_info.value.available == Decimal("0")
        assert await _row_count(ledger_pool) == 1
        assert await store.current_quantity(1, 1, 1) == Decimal("100")

    async def test_outgoing_above_position_rejected(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement(batch_number="B1", quantity=Decimal("5")))

        with pytest.raises(InsufficientStockError) as exc_info:
            await store.record_movement(
                make_movement(
                    transaction_type=TransactionType.ADJUSTMENT_OUT,
                    batch_number="B1",
                    quantity=Decimal("5.0001"),
                )
            )

        assert exc_info.value.requested == Decimal("5.0001")
        assert exc_info.value.available == Decimal("5")
        assert await store.current_quantity(1, 1, 1) == Decimal("5")

    async def test_outgoing_must_match_warehouse(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement(warehouse_id=1))

        with pytest.raises(InsufficientStockError):
            await store.record_movement(
                make_movement(transaction_type=TransactionType.SALE, warehouse_id=2)
            )

    async def test_outgoing_must_match_expiry(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(
            make_movement(product_id=2, batch_number="L1", expiry_date=date(2025, 6, 1))
        )

        with pytest.raises(InsufficientStockError):
            await store.record_movement(
                make_movement(
                    product_id=2,
                    transaction_type=TransactionType.SALE,
                    batch_number="L1",
                    quantity=Decimal("1"),
                )
            )

    async def test_outgoing_sees_earlier_rows_of_same_unit_of_work(
        self, ledger_pool, make_movement
    ):
        store = SQLiteLedgerStore()

        async with store.unit_of_work() as uow:
            await uow.record_movement(make_movement(batch_number="B1", quantity=Decimal("3")))
            await uow.record_movement(
                make_movement(
                    transaction_type=TransactionType.SALE,
                    batch_number="B1",
                    quantity=Decimal("3"),
                )
            )

        assert await store.current_quantity(1, 1, 1) == Decimal("0")

    async def test_rejection_rolls_back_unit_of_work(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(InsufficientStockError):
            async with store.unit_of_work() as uow:
                await uow.record_movement(make_movement(batch_number="B1"))
                await uow.record_movement(
                    make_movement(
                        transaction_type=TransactionType.SALE,
                        batch_number="B2",
                        quantity=Decimal("1"),
                    )
                )

        assert await _row_count(ledger_pool) == 0

    async def test_quantity_equals_signed_sum_of_recorded_rows(self, ledger_pool, make_movement):
        """Whatever is accepted, current quantity matches the ledger rows."""
        store = SQLiteLedgerStore()
        attempts = [
            make_movement(batch_number="B1", quantity=Decimal("100")),
            make_movement(transaction_type=TransactionType.SALE, quantity=Decimal("10")),
            make_movement(
                transaction_type=TransactionType.SALE, batch_number="B1", quantity=Decimal("40")
            ),
            make_movement(
                transaction_type=TransactionType.TRANSFER_OUT,
                batch_number="B1",
                quantity=Decimal("70"),
            ),
            make_movement(batch_number="B2", warehouse_id=2, quantity=Decimal("8")),
        ]
        for attempt in attempts:
            try:
                await store.record_movement(attempt)
            except InsufficientStockError:
                pass

        recorded = await store.list_movements(1, 1, limit=500)
        signed_sum = sum((m.signed_quantity for m in recorded), Decimal("0"))

        assert len(recorded) == 3
        assert await store.current_quantity(1, 1, 1) == signed_sum == Decimal("68")


class TestAppendOnly:
    """The ledger table rejects UPDATE and DELETE."""

    async def test_update_rejected(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        movement = await store.record_movement(make_movement())

        async with aiosqlite.connect(ledger_pool) as conn:
            with pytest.raises(sqlite3.DatabaseError, match="append-only"):
                await conn.execute(
                    "UPDATE stock_ledger SET quantity = 1 WHERE id = ?", (movement.id,)
                )

        fetched = await store.get_movement(1, movement.id)
        assert fetched.quantity == Decimal("10")

    async def test_delete_rejected(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement())

        async with aiosqlite.connect(ledger_pool) as conn:
            with pytest.raises(sqlite3.DatabaseError, match="append-only"):
                await conn.execute("DELETE FROM stock_ledger")

        assert await _row_count(ledger_pool) == 1

    async def test_check_constraint_rejects_negative_quantity(self, ledger_pool):
        async with aiosqlite.connect(ledger_pool) as conn:
            with pytest.raises(sqlite3.IntegrityError):
                await conn.execute(
                    """
                    INSERT INTO stock_ledger (
                        tenant_id, product_id, branch_id, transaction_type,
                        quantity, created_by
                    ) VALUES (1, 1, 1, 'purchase', -5, 1)
                    """
                )


class TestCurrentQuantity:
    """Tests for current_quantity()."""

    async def test_zero_without_movements(self, ledger_pool):
        store = SQLiteLedgerStore()
        assert await store.current_quantity(1, 1, 1) == Decimal("0")

    async def test_conservation(self, ledger_pool, make_movement):
        """Quantity equals the signed sum of recorded quantities."""
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement(quantity=Decimal("100")))
        await store.record_movement(make_movement(quantity=Decimal("20.5")))
        await store.record_movement(
            make_movement(transaction_type=TransactionType.SALE, quantity=Decimal("30.25"))
        )
        await store.record_movement(
            make_movement(transaction_type=TransactionType.ADJUSTMENT_OUT, quantity=Decimal("0.25"))
        )
        await store.record_movement(
            make_movement(transaction_type=TransactionType.RETURN, quantity=Decimal("5"))
        )

        assert await store.current_quantity(1, 1, 1) == Decimal("95")

    async def test_warehouse_scope(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement(warehouse_id=1, quantity=Decimal("7")))
        await store.record_movement(make_movement(warehouse_id=2, quantity=Decimal("3")))

        assert await store.current_quantity(1, 1, 1, 1) == Decimal("7")
        assert await store.current_quantity(1, 1, 1, 2) == Decimal("3")
        assert await store.current_quantity(1, 1, 1) == Decimal("10")

    async def test_branch_scope(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement(branch_id=1, warehouse_id=1))
        await store.record_movement(make_movement(branch_id=2, warehouse_id=3))

        assert await store.current_quantity(1, 1, 1) == Decimal("10")
        assert await store.current_quantity(1, 1, 2) == Decimal("10")


class TestBatchQueries:
    """Tests for FIFO/FEFO batch ordering."""

    async def test_fifo_orders_by_first_receipt(self, ledger_pool, make_movement):
        """Receipt order wins over lexical batch order."""
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement(batch_number="B2"))
        await store.record_movement(make_movement(batch_number="B1"))
        await store.record_movement(make_movement(batch_number="B2", quantity=Decimal("5")))

        batches = await store.batches_fifo(1, 1, 1)

        assert [b.batch_number for b in batches] == ["B2", "B1"]
        assert batches[0].current_quantity == Decimal("15")
        assert batches[0].first_movement_id < batches[1].first_movement_id

    async def test_consumed_batch_disappears(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement(batch_number="B1", quantity=Decimal("0.3")))
        await store.record_movement(make_movement(batch_number="B1", quantity=Decimal("0.3")))
        await store.record_movement(make_movement(batch_number="B2"))
        await store.record_movement(
            make_movement(
                transaction_type=TransactionType.SALE,
                batch_number="B1",
                quantity=Decimal("0.6"),
            )
        )

        batches = await store.batches_fifo(1, 1, 1)

        assert [b.batch_number for b in batches] == ["B2"]

    async def test_average_cost_is_mean_unit_cost(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(make_movement(batch_number="B1", unit_cost=Decimal("10")))
        await store.record_movement(make_movement(batch_number="B1", unit_cost=Decimal("15")))

        [batch] = await store.batches_fifo(1, 1, 1)

        assert batch.current_quantity == Decimal("20")
        assert batch.average_cost == Decimal("12.5")

    async def test_fefo_orders_by_expiry_and_skips_undated(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(
            make_movement(product_id=2, batch_number="L2", expiry_date=date(2025, 6, 1))
        )
        await store.record_movement(make_movement(product_id=2, batch_number="U1"))
        await store.record_movement(
            make_movement(product_id=2, batch_number="L1", expiry_date=date(2025, 1, 1))
        )

        fefo = await store.batches_fefo(1, 2, 1)

        assert [b.batch_number for b in fefo] == ["L1", "L2"]

    async def test_expired_and_near_expiry(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(
            make_movement(product_id=2, batch_number="OLD", expiry_date=date(2025, 2, 1))
        )
        await store.record_movement(
            make_movement(product_id=2, batch_number="SOON", expiry_date=date(2025, 3, 20))
        )
        await store.record_movement(
            make_movement(product_id=2, batch_number="EDGE", expiry_date=TODAY)
        )
        await store.record_movement(
            make_movement(product_id=2, batch_number="LATER", expiry_date=date(2025, 12, 1))
        )
        await store.record_movement(
            make_movement(
                product_id=2,
                branch_id=2,
                warehouse_id=3,
                batch_number="NORTH",
                expiry_date=date(2025, 1, 15),
            )
        )

        expired = await store.expired_batches(1, today=TODAY)
        expired_main = await store.expired_batches(1, branch_id=1, today=TODAY)
        near = await store.near_expiry_batches(1, 30, today=TODAY)

        assert [b.batch_number for b in expired] == ["NORTH", "OLD"]
        assert [b.batch_number for b in expired_main] == ["OLD"]
        assert [b.batch_number for b in near] == ["EDGE", "SOON"]

    async def test_fully_issued_expired_batch_not_reported(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(
            make_movement(product_id=2, batch_number="OLD", expiry_date=date(2025, 2, 1))
        )
        await store.record_movement(
            make_movement(
                product_id=2,
                transaction_type=TransactionType.ADJUSTMENT_OUT,
                batch_number="OLD",
                expiry_date=date(2025, 2, 1),
            )
        )

        assert await store.expired_batches(1, today=TODAY) == []


class TestTenantIsolation:
    """Queries never cross tenants."""

    async def test_other_tenant_movements_invisible(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        foreign = await store.record_movement(
            make_movement(
                tenant_id=2,
                product_id=4,
                branch_id=3,
                warehouse_id=4,
                created_by=2,
                expiry_date=date(2025, 1, 1),
            )
        )

        assert await store.current_quantity(1, 4, 3) == Decimal("0")
        assert await store.batches_fifo(1, 4, 3) == []
        assert await store.expired_batches(1, today=TODAY) == []
        assert await store.get_movement(1, foreign.id) is None
        assert await store.list_movements(1, 4) == []

        assert await store.current_quantity(2, 4, 3) == Decimal("10")
        assert len(await store.expired_batches(2, today=TODAY)) == 1

    async def test_other_tenant_product_rejected(self, ledger_pool, make_movement):
        """Product 4 belongs to tenant 2."""
        store = SQLiteLedgerStore()

        with pytest.raises(ProductNotFoundError):
            await store.record_movement(make_movement(product_id=4))

        assert await _row_count(ledger_pool) == 0
        assert await store.current_quantity(1, 4, 1) == Decimal("0")

    async def test_other_tenant_branch_rejected(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(BranchNotFoundError):
            await store.record_movement(make_movement(branch_id=3, warehouse_id=None))

        assert await _row_count(ledger_pool) == 0

    async def test_other_tenant_warehouse_rejected(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(WarehouseNotFoundError):
            await store.record_movement(make_movement(warehouse_id=4))

        assert await _row_count(ledger_pool) == 0


class TestHistoryQueries:
    """Tests for movement history lookups."""

    async def test_list_movements_newest_first_with_paging(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        ids = [
            (await store.record_movement(make_movement(remarks=f"m{i}"))).id
            for i in range(5)
        ]

        page1 = await store.list_movements(1, 1, limit=2)
        page2 = await store.list_movements(1, 1, limit=2, offset=2)

        assert [m.id for m in page1] == [ids[4], ids[3]]
        assert [m.id for m in page2] == [ids[2], ids[1]]

    async def test_movements_for_reference(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        order = DocumentReference(kind=ReferenceKind.SALES_ORDER, id=7)
        other = DocumentReference(kind=ReferenceKind.PURCHASE_ORDER, id=7)
        await store.record_movement(make_movement(reference=order))
        await store.record_movement(make_movement(reference=other))
        await store.record_movement(make_movement(reference=order, batch_number="B9"))

        movements = await store.movements_for_reference(1, order)

        assert len(movements) == 2
        assert all(m.reference == order for m in movements)

    async def test_find_by_serial(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()
        await store.record_movement(
            make_movement(product_id=5, quantity=Decimal("1"), serial_number="SN-1")
        )
        await store.record_movement(
            make_movement(product_id=5, quantity=Decimal("1"), serial_number="SN-2")
        )
        await store.record_movement(
            make_movement(
                product_id=5,
                transaction_type=TransactionType.SALE,
                quantity=Decimal("1"),
                serial_number="SN-1",
            )
        )

        trail = await store.find_by_serial(1, 5, "SN-1")

        assert [m.transaction_type for m in trail] == [
            TransactionType.PURCHASE,
            TransactionType.SALE,
        ]


class TestUnitOfWork:
    """Tests for unit_of_work()."""

    async def test_commits_on_success(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        async with store.unit_of_work() as uow:
            await uow.record_movement(make_movement())
            await uow.record_movement(make_movement())
            assert await uow.current_quantity(1, 1, 1) == Decimal("20")

        assert await store.current_quantity(1, 1, 1) == Decimal("20")

    async def test_rolls_back_on_error(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(RuntimeError):
            async with store.unit_of_work() as uow:
                await uow.record_movement(make_movement())
                raise RuntimeError("boom")

        assert await _row_count(ledger_pool) == 0

    async def test_nested_unit_of_work_joins_outer(self, ledger_pool, make_movement):
        store = SQLiteLedgerStore()

        with pytest.raises(RuntimeError):
            async with store.unit_of_work() as outer:
                async with outer.unit_of_work() as inner:
                    assert inner is outer
                    await inner.record_movement(make_movement())
                raise RuntimeError("boom")

        assert await _row_count(ledger_pool) == 0
