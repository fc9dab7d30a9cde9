"""Aggregation, insights and reporting over reconciliation outcomes."""

from .insights import (
    summarize_outcome,
    match_rate_insight,
    generate_insights,
    detect_anomalies,
)
from .distributions import (
    AMOUNT_BUCKETS,
    amount_distribution,
    status_breakdown,
    mismatch_patterns,
)
from .aggregator import (
    outcome_transactions,
    trend_data,
    performance_metrics,
    generate_analytics,
    executive_summary,
)
from .reports import single_summary_report, batch_summary_report

__all__ = [
    "summarize_outcome",
    "match_rate_insight",
    "generate_insights",
    "detect_anomalies",
    "AMOUNT_BUCKETS",
    "amount_distribution",
    "status_breakdown",
    "mismatch_patterns",
    "outcome_transactions",
    "trend_data",
    "performance_metrics",
    "generate_analytics",
    "executive_summary",
    "single_summary_report",
    "batch_summary_report",
]
