"""Data models for the reconciliation engine."""

from .enums import (
    FilePairStatus,
    OutcomeKind,
    MatchRateBasis,
    InsightType,
    InsightImpact,
    TimeRange,
)
from .transaction import (
    Transaction,
    ParsedFile,
    FieldMismatch,
    TransactionMatch,
)
from .reconciliation import (
    ReconciliationStats,
    ReconciliationResult,
    FilePair,
    BatchStats,
    BatchReconciliationResult,
    SingleOutcome,
    BatchOutcome,
    Outcome,
    outcome_from_dict,
    safe_percentage,
)
from .analytics import (
    OutcomeSummary,
    AnalyticsInsight,
    AmountBucket,
    StatusBreakdown,
    MismatchPattern,
    TrendPoint,
    PerformanceMetrics,
    AnalyticsReport,
    RecordMetadata,
    HistoricalRecord,
)

__all__ = [
    # Enums
    "FilePairStatus",
    "OutcomeKind",
    "MatchRateBasis",
    "InsightType",
    "InsightImpact",
    "TimeRange",
    # Transactions
    "Transaction",
    "ParsedFile",
    "FieldMismatch",
    "TransactionMatch",
    # Reconciliation
    "ReconciliationStats",
    "ReconciliationResult",
    "FilePair",
    "BatchStats",
    "BatchReconciliationResult",
    "SingleOutcome",
    "BatchOutcome",
    "Outcome",
    "outcome_from_dict",
    "safe_percentage",
    # Analytics / history
    "OutcomeSummary",
    "AnalyticsInsight",
    "AmountBucket",
    "StatusBreakdown",
    "MismatchPattern",
    "TrendPoint",
    "PerformanceMetrics",
    "AnalyticsReport",
    "RecordMetadata",
    "HistoricalRecord",
]
