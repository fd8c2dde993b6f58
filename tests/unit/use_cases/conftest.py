"""Fixtures for use case tests: AsyncMock stores over a small catalog."""

from unittest.mock import AsyncMock

import pytest

from stockledger.core.entities.catalog import Branch, Product, Warehouse

PRODUCTS = {
    1: Product(id=1, tenant_id=1, sku="WID-001", name="Widget", track_batch=True),
    2: Product(
        id=2, tenant_id=1, sku="MED-001", name="Medicine", track_batch=True, track_expiry=True
    ),
    3: Product(id=3, tenant_id=1, sku="BLK-001", name="Sand"),
    5: Product(id=5, tenant_id=1, sku="PHN-001", name="Phone", track_serial=True),
}
BRANCHES = {1: Branch(id=1, tenant_id=1, name="Main"), 2: Branch(id=2, tenant_id=1, name="North")}
WAREHOUSES = {
    1: Warehouse(id=1, tenant_id=1, branch_id=1, name="Warehouse A"),
    3: Warehouse(id=3, tenant_id=1, branch_id=2, name="North Store"),
}


@pytest.fixture
def mock_catalog_store() -> AsyncMock:
    store = AsyncMock()

    async def _product(tenant_id, product_id):
        product = PRODUCTS.get(product_id)
        return product if product and product.tenant_id == tenant_id else None

    async def _branch(tenant_id, branch_id):
        branch = BRANCHES.get(branch_id)
        return branch if branch and branch.tenant_id == tenant_id else None

    async def _warehouse(tenant_id, warehouse_id):
        warehouse = WAREHOUSES.get(warehouse_id)
        return warehouse if warehouse and warehouse.tenant_id == tenant_id else None

    store.get_product.side_effect = _product
    store.get_branch.side_effect = _branch
    store.get_warehouse.side_effect = _warehouse
    return store


@pytest.fixture
def mock_ledger_store() -> AsyncMock:
    return AsyncMock()
