"""SQLite implementation of the append-only stock ledger."""

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import aiosqlite

from stockledger.config import get_logger
from stockledger.core.entities.ledger import (
    Actor,
    DocumentReference,
    ReferenceKind,
    StockMovement,
    StockMovementInput,
    StockPosition,
    TransactionType,
    quantize_average_cost,
    quantize_money,
    quantize_quantity,
)
from stockledger.core.exceptions import (
    BranchNotFoundError,
    DatabaseError,
    InsufficientStockError,
    ProductNotFoundError,
    WarehouseNotFoundError,
)
from stockledger.core.interfaces.ledger_store import ILedgerStore
from stockledger.core.services.movement_rules import prepare_movement
from stockledger.infrastructure.storage.sqlite.connection import (
    get_connection,
    get_write_transaction,
)

logger = get_logger(__name__)

_POSITION_COLUMNS = """
    tenant_id, product_id, branch_id, warehouse_id,
    batch_number, lot_number, expiry_date,
    current_quantity, average_cost,
    first_movement_id, first_received_at
"""


class SQLiteLedgerStore(ILedgerStore):
    """
    SQLite implementation of the stock ledger.

    Movements go to the stock_ledger table; positions are read from the
    stock_summary view. A store created with a connection is bound to that
    connection's transaction (see unit_of_work).
    """

    def __init__(self, conn: aiosqlite.Connection | None = None):
        self._conn = conn

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator["SQLiteLedgerStore"]:
        """Serialized write transaction; nested calls join the outer one."""
        if self._conn is not None:
            yield self
            return

        async with get_write_transaction() as conn:
            yield type(self)(conn)

    @asynccontextmanager
    async def _reader(self) -> AsyncIterator[aiosqlite.Connection]:
        if self._conn is not None:
            yield self._conn
        else:
            async with get_connection() as conn:
                yield conn

    @asynccontextmanager
    async def _writer(self) -> AsyncIterator[aiosqlite.Connection]:
        if self._conn is not None:
            yield self._conn
        else:
            async with get_write_transaction() as conn:
                yield conn

    async def record_movement(
        self,
        movement: StockMovementInput,
        actor: Actor | None = None,
    ) -> StockMovement:
        """
        Validate and append a movement.

        Product, branch and warehouse must belong to the movement's tenant,
        and the warehouse to the branch. An outgoing movement draws on the
        position with its own warehouse, batch, lot and expiry date, and
        never for more than that position holds.

        Raises:
            ValidationError: invalid fields or no actor.
            ProductNotFoundError, BranchNotFoundError, WarehouseNotFoundError:
                location not in the tenant.
            InsufficientStockError: outgoing quantity exceeds the position.
            DatabaseError: any other integrity failure.
        """
        row = prepare_movement(movement, actor)

        async with self._writer() as conn:
            await self._check_location(conn, row)
            if row.is_outgoing:
                await self._check_position(conn, row)

            try:
                cursor = await conn.execute(
                    """
                    INSERT INTO stock_ledger (
                        tenant_id, product_id, branch_id, warehouse_id,
                        transaction_type, reference_type, reference_id,
                        quantity, unit_cost, total_cost,
                        batch_number, lot_number, serial_number,
                        manufacture_date, expiry_date,
                        remarks, created_by, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        row.tenant_id,
                        row.product_id,
                        row.branch_id,
                        row.warehouse_id,
                        row.transaction_type.value,
                        row.reference.kind.value if row.reference else None,
                        row.reference.id if row.reference else None,
                        float(row.quantity),
                        float(row.unit_cost),
                        float(row.total_cost),
                        row.batch_number,
                        row.lot_number,
                        row.serial_number,
                        row.manufacture_date.isoformat() if row.manufacture_date else None,
                        row.expiry_date.isoformat() if row.expiry_date else None,
                        row.remarks,
                        row.created_by,
                        row.created_at.isoformat(),
                    ),
                )
            except sqlite3.IntegrityError as e:
                logger.warning(
                    "stock_movement_rejected",
                    tenant_id=row.tenant_id,
                    product_id=row.product_id,
                    error=str(e),
                )
                raise DatabaseError("record_movement", str(e)) from e

        saved = row.model_copy(update={"id": cursor.lastrowid})
        logger.info(
            "stock_movement_recorded",
            movement_id=saved.id,
            tenant_id=saved.tenant_id,
            product_id=saved.product_id,
            branch_id=saved.branch_id,
            type=saved.transaction_type.value,
            qty=str(saved.quantity),
            batch=saved.batch_number,
        )
        return saved

    @staticmethod
    async def _check_location(conn: aiosqlite.Connection, row: StockMovement) -> None:
        cursor = await conn.execute(
            "SELECT 1 FROM products WHERE id = ? AND tenant_id = ?",
            (row.product_id, row.tenant_id),
        )
        if await cursor.fetchone() is None:
            raise ProductNotFoundError(row.product_id, tenant_id=row.tenant_id)

        cursor = await conn.execute(
            "SELECT 1 FROM branches WHERE id = ? AND tenant_id = ?",
            (row.branch_id, row.tenant_id),
        )
        if await cursor.fetchone() is None:
            raise BranchNotFoundError(row.branch_id, tenant_id=row.tenant_id)

        if row.warehouse_id is not None:
            cursor = await conn.execute(
                "SELECT 1 FROM warehouses WHERE id = ? AND tenant_id = ? AND branch_id = ?",
                (row.warehouse_id, row.tenant_id, row.branch_id),
            )
            if await cursor.fetchone() is None:
                raise WarehouseNotFoundError(row.warehouse_id, branch_id=row.branch_id)

    @staticmethod
    async def _check_position(conn: aiosqlite.Connection, row: StockMovement) -> None:
        """Reject an outgoing row its own batch group cannot cover."""
        cursor = await conn.execute(
            """
            SELECT current_quantity FROM stock_summary
            WHERE tenant_id = ? AND product_id = ? AND branch_id = ?
              AND warehouse_id IS ? AND batch_number IS ?
              AND lot_number IS ? AND expiry_date IS ?
            """,
            (
                row.tenant_id,
                row.product_id,
                row.branch_id,
                row.warehouse_id,
                row.batch_number,
                row.lot_number,
                row.expiry_date.isoformat() if row.expiry_date else None,
            ),
        )
        found = await cursor.fetchone()
        available = quantize_quantity(found[0] if found else 0)
        if available < row.quantity:
            logger.warning(
                "outgoing_movement_uncovered",
                tenant_id=row.tenant_id,
                product_id=row.product_id,
                batch=row.batch_number,
                requested=str(row.quantity),
                available=str(available),
            )
            raise InsufficientStockError(
                product_id=row.product_id,
                requested=row.quantity,
                available=available,
            )

    async def current_quantity(
        self,
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None = None,
    ) -> Decimal:
        """Quantity on hand across matching positions (0 when none)."""
        where, params = self._position_scope(tenant_id, product_id, branch_id, warehouse_id)
        async with self._reader() as conn:
            cursor = await conn.execute(
                f"SELECT COALESCE(SUM(current_quantity), 0) FROM stock_summary WHERE {where}",
                params,
            )
            row = await cursor.fetchone()
        return quantize_quantity(row[0] if row else 0)

    async def batches_fifo(
        self,
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None = None,
    ) -> list[StockPosition]:
        """Positions with stock, oldest receipt first."""
        where, params = self._position_scope(tenant_id, product_id, branch_id, warehouse_id)
        return await self._fetch_positions(
            f"""
            SELECT {_POSITION_COLUMNS} FROM stock_summary
            WHERE {where}
            ORDER BY first_movement_id, batch_number, lot_number
            """,
            params,
        )

    async def batches_fefo(
        self,
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None = None,
    ) -> list[StockPosition]:
        """Dated positions with stock, soonest expiry first."""
        where, params = self._position_scope(tenant_id, product_id, branch_id, warehouse_id)
        return await self._fetch_positions(
            f"""
            SELECT {_POSITION_COLUMNS} FROM stock_summary
            WHERE {where} AND expiry_date IS NOT NULL
            ORDER BY expiry_date, first_movement_id, batch_number
            """,
            params,
        )

    async def expired_batches(
        self,
        tenant_id: int,
        branch_id: int | None = None,
        today: date | None = None,
    ) -> list[StockPosition]:
        """Positions with stock whose expiry date is before today."""
        today = today or date.today()
        query = f"""
            SELECT {_POSITION_COLUMNS} FROM stock_summary
            WHERE tenant_id = ? AND expiry_date IS NOT NULL AND expiry_date < ?
        """
        params: list = [tenant_id, today.isoformat()]
        if branch_id is not None:
            query += " AND branch_id = ?"
            params.append(branch_id)
        query += " ORDER BY expiry_date, first_movement_id"
        return await self._fetch_positions(query, params)

    async def near_expiry_batches(
        self,
        tenant_id: int,
        within_days: int,
        branch_id: int | None = None,
        today: date | None = None,
    ) -> list[StockPosition]:
        """Positions with stock expiring within [today, today + within_days]."""
        today = today or date.today()
        horizon = today + timedelta(days=within_days)
        query = f"""
            SELECT {_POSITION_COLUMNS} FROM stock_summary
            WHERE tenant_id = ? AND expiry_date IS NOT NULL
              AND expiry_date >= ? AND expiry_date <= ?
        """
        params: list = [tenant_id, today.isoformat(), horizon.isoformat()]
        if branch_id is not None:
            query += " AND branch_id = ?"
            params.append(branch_id)
        query += " ORDER BY expiry_date, first_movement_id"
        return await self._fetch_positions(query, params)

    async def get_movement(self, tenant_id: int, movement_id: int) -> StockMovement | None:
        """Get a movement by ID."""
        async with self._reader() as conn:
            cursor = await conn.execute(
                "SELECT * FROM stock_ledger WHERE tenant_id = ? AND id = ?",
                (tenant_id, movement_id),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_movement(row)

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
        query = "SELECT * FROM stock_ledger WHERE tenant_id = ? AND product_id = ?"
        params: list = [tenant_id, product_id]
        if branch_id is not None:
            query += " AND branch_id = ?"
            params.append(branch_id)
        if warehouse_id is not None:
            query += " AND warehouse_id = ?"
            params.append(warehouse_id)
        query += " ORDER BY id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        return await self._fetch_movements(query, params)

    async def movements_for_reference(
        self, tenant_id: int, reference: DocumentReference
    ) -> list[StockMovement]:
        """List movements originating from a business document."""
        return await self._fetch_movements(
            """
            SELECT * FROM stock_ledger
            WHERE tenant_id = ? AND reference_type = ? AND reference_id = ?
            ORDER BY id
            """,
            [tenant_id, reference.kind.value, reference.id],
        )

    async def find_by_serial(
        self, tenant_id: int, product_id: int, serial_number: str
    ) -> list[StockMovement]:
        """Trace every movement of a serial number."""
        return await self._fetch_movements(
            """
            SELECT * FROM stock_ledger
            WHERE tenant_id = ? AND product_id = ? AND serial_number = ?
            ORDER BY id
            """,
            [tenant_id, product_id, serial_number],
        )

    @staticmethod
    def _position_scope(
        tenant_id: int,
        product_id: int,
        branch_id: int,
        warehouse_id: int | None,
    ) -> tuple[str, list]:
        where = "tenant_id = ? AND product_id = ? AND branch_id = ?"
        params: list = [tenant_id, product_id, branch_id]
        if warehouse_id is not None:
            where += " AND warehouse_id = ?"
            params.append(warehouse_id)
        return where, params

    async def _fetch_positions(self, query: str, params: list) -> list[StockPosition]:
        async with self._reader() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
        return [self._row_to_position(row) for row in rows]

    async def _fetch_movements(self, query: str, params: list) -> list[StockMovement]:
        async with self._reader() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
        return [self._row_to_movement(row) for row in rows]

    @staticmethod
    def _parse_date(value: str | None) -> date | None:
        return date.fromisoformat(value) if value else None

    @staticmethod
    def _parse_timestamp(value: str | None) -> datetime | None:
        if not value:
            return None
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed

    @classmethod
    def _row_to_position(cls, row: aiosqlite.Row) -> StockPosition:
        """Convert a stock_summary row to a StockPosition entity."""
        return StockPosition(
            tenant_id=row["tenant_id"],
            product_id=row["product_id"],
            branch_id=row["branch_id"],
            warehouse_id=row["warehouse_id"],
            batch_number=row["batch_number"],
            lot_number=row["lot_number"],
            expiry_date=cls._parse_date(row["expiry_date"]),
            current_quantity=quantize_quantity(row["current_quantity"]),
            average_cost=quantize_average_cost(row["average_cost"] or 0),
            first_movement_id=row["first_movement_id"],
            first_received_at=cls._parse_timestamp(row["first_received_at"]),
        )

    @classmethod
    def _row_to_movement(cls, row: aiosqlite.Row) -> StockMovement:
        """Convert a stock_ledger row to a StockMovement entity."""
        reference = None
        if row["reference_type"] is not None:
            reference = DocumentReference(
                kind=ReferenceKind(row["reference_type"]),
                id=row["reference_id"],
            )

        return StockMovement(
            id=row["id"],
            tenant_id=row["tenant_id"],
            product_id=row["product_id"],
            branch_id=row["branch_id"],
            warehouse_id=row["warehouse_id"],
            transaction_type=TransactionType(row["transaction_type"]),
            quantity=quantize_quantity(row["quantity"]),
            unit_cost=quantize_money(row["unit_cost"]),
            total_cost=quantize_money(row["total_cost"]),
            batch_number=row["batch_number"],
            lot_number=row["lot_number"],
            serial_number=row["serial_number"],
            manufacture_date=cls._parse_date(row["manufacture_date"]),
            expiry_date=cls._parse_date(row["expiry_date"]),
            reference=reference,
            remarks=row["remarks"],
            created_by=row["created_by"],
            created_at=cls._parse_timestamp(row["created_at"]),
        )
