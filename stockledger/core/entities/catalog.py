"""Catalog entities the ledger reads but never writes."""

from pydantic import BaseModel


class Product(BaseModel):
    """A stocked product and its lot-tracking flags."""

    id: int
    tenant_id: int
    sku: str
    name: str
    unit: str | None = None
    track_inventory: bool = True
    track_batch: bool = False
    track_serial: bool = False
    track_expiry: bool = False


class Branch(BaseModel):
    """A tenant's branch (stock location root)."""

    id: int
    tenant_id: int
    name: str
    code: str | None = None


class Warehouse(BaseModel):
    """A warehouse within a branch."""

    id: int
    tenant_id: int
    branch_id: int
    name: str
    code: str | None = None
