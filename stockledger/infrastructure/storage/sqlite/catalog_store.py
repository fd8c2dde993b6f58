"""SQLite implementation of catalog lookups."""

import aiosqlite

from stockledger.core.entities.catalog import Branch, Product, Warehouse
from stockledger.core.interfaces.catalog_store import ICatalogStore
from stockledger.infrastructure.storage.sqlite.connection import get_connection


class SQLiteCatalogStore(ICatalogStore):
    """Reads products, branches and warehouses from the shared database."""

    async def get_product(self, tenant_id: int, product_id: int) -> Product | None:
        """Get product by ID."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM products WHERE tenant_id = ? AND id = ?",
                (tenant_id, product_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_product(row)

    async def get_branch(self, tenant_id: int, branch_id: int) -> Branch | None:
        """Get branch by ID."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM branches WHERE tenant_id = ? AND id = ?",
                (tenant_id, branch_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return Branch(
                id=row["id"],
                tenant_id=row["tenant_id"],
                name=row["name"],
                code=row["code"],
            )

    async def get_warehouse(self, tenant_id: int, warehouse_id: int) -> Warehouse | None:
        """Get warehouse by ID."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM warehouses WHERE tenant_id = ? AND id = ?",
                (tenant_id, warehouse_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return Warehouse(
                id=row["id"],
                tenant_id=row["tenant_id"],
                branch_id=row["branch_id"],
                name=row["name"],
                code=row["code"],
            )

    @staticmethod
    def _row_to_product(row: aiosqlite.Row) -> Product:
        """Convert a database row to a Product entity."""
        return Product(
            id=row["id"],
            tenant_id=row["tenant_id"],
            sku=row["sku"],
            name=row["name"],
            unit=row["unit"],
            track_inventory=bool(row["track_inventory"]),
            track_batch=bool(row["track_batch"]),
            track_serial=bool(row["track_serial"]),
            track_expiry=bool(row["track_expiry"]),
        )
