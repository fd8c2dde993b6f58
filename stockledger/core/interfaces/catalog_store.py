"""Abstract interface for catalog lookups."""

from abc import ABC, abstractmethod

from stockledger.core.entities.catalog import Branch, Product, Warehouse


class ICatalogStore(ABC):
    """Read-only access to products and stock locations, scoped by tenant."""

    @abstractmethod
    async def get_product(self, tenant_id: int, product_id: int) -> Product | None:
        """Get product by ID."""
        pass

    @abstractmethod
    async def get_branch(self, tenant_id: int, branch_id: int) -> Branch | None:
        """Get branch by ID."""
        pass

    @abstractmethod
    async def get_warehouse(self, tenant_id: int, warehouse_id: int) -> Warehouse | None:
        """Get warehouse by ID."""
        pass
