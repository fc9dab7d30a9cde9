"""Reconciliation engine components."""

from .matcher import (
    TransactionMatcher,
    find_field_mismatches,
    parse_amount,
    reconcile_transactions,
)
from .batch import (
    BatchOrchestrator,
    BatchCallbacks,
    CancellationToken,
    PairValidation,
    calculate_batch_stats,
    check_file_pair,
    validate_file_pairs,
)

__all__ = [
    "TransactionMatcher",
    "find_field_mismatches",
    "parse_amount",
    "reconcile_transactions",
    "BatchOrchestrator",
    "BatchCallbacks",
    "CancellationToken",
    "PairValidation",
    "calculate_batch_stats",
    "check_file_pair",
    "validate_file_pairs",
]
