"""Shared catalog checks for use cases that touch a stock location."""

from stockledger.core.entities.catalog import Product
from stockledger.core.exceptions import (
    BranchNotFoundError,
    ProductNotFoundError,
    WarehouseNotFoundError,
)
from stockledger.core.interfaces.catalog_store import ICatalogStore


async def resolve_product_at_location(
    catalog: ICatalogStore,
    tenant_id: int,
    product_id: int,
    branch_id: int,
    warehouse_id: int | None = None,
) -> Product:
    """
    Load a product and check that the branch (and warehouse) exist for the tenant.

    A warehouse must belong to the given branch.

    Raises:
        ProductNotFoundError, BranchNotFoundError, WarehouseNotFoundError
    """
    product = await catalog.get_product(tenant_id, product_id)
    if product is None:
        raise ProductNotFoundError(product_id, tenant_id=tenant_id)

    branch = await catalog.get_branch(tenant_id, branch_id)
    if branch is None:
        raise BranchNotFoundError(branch_id, tenant_id=tenant_id)

    if warehouse_id is not None:
        warehouse = await catalog.get_warehouse(tenant_id, warehouse_id)
        if warehouse is None or warehouse.branch_id != branch_id:
            raise WarehouseNotFoundError(warehouse_id, branch_id=branch_id)

    return product
