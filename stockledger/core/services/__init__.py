"""
Core business logic services.

Layer-pure services that depend only on:
- stockledger/core/entities/*
- stockledger/core/interfaces/*
- stockledger/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from stockledger.core.services.allocation import (
    AllocationPolicy,
    BatchAllocation,
    IssueMetadata,
    StockAllocationService,
    plan_allocation,
    select_policy,
)
from stockledger.core.services.movement_rules import (
    parse_quantity,
    parse_unit_cost,
    prepare_movement,
)
from stockledger.core.services.valuation import StockValuationService

__all__ = [
    # Allocation
    "StockAllocationService",
    "AllocationPolicy",
    "BatchAllocation",
    "IssueMetadata",
    "plan_allocation",
    "select_policy",
    # Movement rules
    "prepare_movement",
    "parse_quantity",
    "parse_unit_cost",
    # Valuation
    "StockValuationService",
]
