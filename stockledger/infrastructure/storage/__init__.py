"""Storage infrastructure implementations."""

from stockledger.infrastructure.storage.sqlite import (
    SQLiteCatalogStore,
    SQLiteLedgerStore,
    close_pool,
    get_connection,
    get_pool,
    get_write_transaction,
)

__all__ = [
    # SQLite stores
    "SQLiteLedgerStore",
    "SQLiteCatalogStore",
    # Connection pool
    "get_pool",
    "close_pool",
    "get_connection",
    "get_write_transaction",
]
