"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

import aiosqlite
import pytest

from stockledger.config import reset_settings
from stockledger.core.entities.ledger import StockMovementInput, TransactionType
from stockledger.infrastructure.storage.sqlite.migrations import initialize_database

# Seeded master data
TENANT_ID = 1
OTHER_TENANT_ID = 2
USER_ID = 1
MAIN_BRANCH_ID = 1
NORTH_BRANCH_ID = 2
WAREHOUSE_A_ID = 1
WAREHOUSE_B_ID = 2
NORTH_WAREHOUSE_ID = 3
WIDGET_ID = 1  # batch tracked, FIFO
MEDICINE_ID = 2  # batch + expiry tracked, FEFO
BULK_ID = 3  # untracked
OTHER_TENANT_PRODUCT_ID = 4
PHONE_ID = 5  # serial tracked


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point settings at a throwaway data directory."""
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "data"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "ledger.db"


@pytest.fixture
async def ledger_db(temp_db_path: Path) -> AsyncGenerator[Path, None]:
    """Migrated database with two tenants' master data."""
    results = await initialize_database(temp_db_path, create_backup_before=False)
    assert all(r.success for r in results)

    async with aiosqlite.connect(temp_db_path) as conn:
        await conn.execute("PRAGMA foreign_keys=ON")
        await conn.executemany(
            "INSERT INTO tenants (id, name) VALUES (?, ?)",
            [(TENANT_ID, "Acme"), (OTHER_TENANT_ID, "Globex")],
        )
        await conn.executemany(
            "INSERT INTO users (id, tenant_id, name) VALUES (?, ?, ?)",
            [(USER_ID, TENANT_ID, "Alice"), (2, OTHER_TENANT_ID, "Bob")],
        )
        await conn.executemany(
            "INSERT INTO branches (id, tenant_id, name, code) VALUES (?, ?, ?, ?)",
            [
                (MAIN_BRANCH_ID, TENANT_ID, "Main", "MAIN"),
                (NORTH_BRANCH_ID, TENANT_ID, "North", "NRTH"),
                (3, OTHER_TENANT_ID, "Globex HQ", "HQ"),
            ],
        )
        await conn.executemany(
            "INSERT INTO warehouses (id, tenant_id, branch_id, name, code) VALUES (?, ?, ?, ?, ?)",
            [
                (WAREHOUSE_A_ID, TENANT_ID, MAIN_BRANCH_ID, "Warehouse A", "WH-A"),
                (WAREHOUSE_B_ID, TENANT_ID, MAIN_BRANCH_ID, "Warehouse B", "WH-B"),
                (NORTH_WAREHOUSE_ID, TENANT_ID, NORTH_BRANCH_ID, "North Store", "WH-N"),
                (4, OTHER_TENANT_ID, 3, "Globex Store", "WH-G"),
            ],
        )
        await conn.executemany(
            """
            INSERT INTO products (
                id, tenant_id, sku, name, unit,
                track_batch, track_serial, track_expiry
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (WIDGET_ID, TENANT_ID, "WID-001", "Widget", "pcs", 1, 0, 0),
                (MEDICINE_ID, TENANT_ID, "MED-001", "Paracetamol 500mg", "box", 1, 0, 1),
                (BULK_ID, TENANT_ID, "BLK-001", "Sand", "kg", 0, 0, 0),
                (OTHER_TENANT_PRODUCT_ID, OTHER_TENANT_ID, "GLX-001", "Globex Widget", "pcs", 0, 0, 0),
                (PHONE_ID, TENANT_ID, "PHN-001", "Phone", "pcs", 0, 1, 0),
            ],
        )
        await conn.commit()

    yield temp_db_path


@pytest.fixture
async def ledger_pool(ledger_db: Path) -> AsyncGenerator[Path, None]:
    """Route the global connection pool to the seeded database."""
    import stockledger.infrastructure.storage.sqlite.connection as conn_module

    conn_module._pool = None
    mock_settings = MagicMock()
    mock_settings.storage.db_path = ledger_db
    mock_settings.storage.pool_size = 3
    mock_settings.storage.busy_timeout = 5000

    with patch.object(conn_module, "get_settings", return_value=mock_settings):
        try:
            yield ledger_db
        finally:
            await conn_module.close_pool()


@pytest.fixture
def make_movement() -> Callable[..., StockMovementInput]:
    """Factory for movement inputs with tenant 1 / widget / main branch defaults."""

    def _make(**overrides) -> StockMovementInput:
        data = {
            "tenant_id": TENANT_ID,
            "product_id": WIDGET_ID,
            "branch_id": MAIN_BRANCH_ID,
            "warehouse_id": WAREHOUSE_A_ID,
            "transaction_type": TransactionType.PURCHASE,
            "quantity": Decimal("10"),
            "unit_cost": Decimal("5.00"),
            "created_by": USER_ID,
        }
        data.update(overrides)
        return StockMovementInput(**data)

    return _make

