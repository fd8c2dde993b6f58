"""Append-only inventory stock ledger with FIFO/FEFO allocation."""

__version__ = "1.0.0"
