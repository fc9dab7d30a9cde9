"""
Analytics aggregation across one outcome and its history.

Read-only over its inputs: results and records are never modified, every
function returns new frozen values.
"""

from typing import List, Optional, Sequence, Tuple

import structlog

from ..config import Settings
from ..models import (
    Outcome,
    SingleOutcome,
    BatchOutcome,
    Transaction,
    TransactionMatch,
    HistoricalRecord,
    TrendPoint,
    PerformanceMetrics,
    AnalyticsReport,
    InsightImpact,
)
from ..utils.clock import utc_now
from .distributions import amount_distribution, status_breakdown, mismatch_patterns
from .insights import summarize_outcome, generate_insights, detect_anomalies

logger = structlog.get_logger()

TREND_DATE_FORMAT = "%b %d, %Y"


def outcome_transactions(outcome: Outcome) -> Tuple[List[Transaction], List[TransactionMatch]]:
    """
    Flatten an outcome into (transactions, matches).

    Matched pairs contribute their internal side only, so each reference is
    counted once.
    """
    if isinstance(outcome, SingleOutcome):
        results = [outcome.result]
    elif isinstance(outcome, BatchOutcome):
        results = [p.result for p in outcome.result.file_pairs if p.result is not None]
    else:
        raise TypeError(f"Unsupported outcome type: {type(outcome).__name__}")

    transactions: List[Transaction] = []
    matches: List[TransactionMatch] = []
    for result in results:
        transactions.extend(m.internal for m in result.matched)
        transactions.extend(result.internal_only)
        transactions.extend(result.provider_only)
        matches.extend(result.matched)
    return transactions, matches


def trend_data(history: Sequence[HistoricalRecord]) -> List[TrendPoint]:
    """One point per record, oldest first."""
    points = []
    for record in sorted(history, key=lambda r: r.timestamp):
        summary = summarize_outcome(record.outcome)
        points.append(TrendPoint(
            date=record.timestamp.strftime(TREND_DATE_FORMAT),
            timestamp=record.timestamp,
            match_rate=summary.match_rate,
            total_transactions=summary.total_transactions,
            total_matched=summary.total_matched,
            total_discrepancies=summary.total_discrepancies,
        ))
    return points


def performance_metrics(history: Sequence[HistoricalRecord]) -> PerformanceMetrics:
    """Averages over the stored history; zeros when there is none."""
    if not history:
        return PerformanceMetrics(
            average_processing_time=0.0,
            average_match_rate=0.0,
            total_reconciliations=0,
            total_transactions_processed=0,
        )

    summaries = [summarize_outcome(r.outcome) for r in history]
    return PerformanceMetrics(
        average_processing_time=sum(r.metadata.processing_time_ms for r in history) / len(history),
        average_match_rate=sum(s.match_rate for s in summaries) / len(summaries),
        total_reconciliations=len(history),
        total_transactions_processed=sum(s.total_transactions for s in summaries),
        last_updated=utc_now(),
    )


def generate_analytics(
    outcome: Outcome,
    history: Sequence[HistoricalRecord] = (),
    settings: Optional[Settings] = None,
) -> AnalyticsReport:
    """
    Full analytics report for an outcome.

    Args:
        outcome: The outcome being reported on
        history: Earlier records, used for trends, comparisons and anomalies
        settings: Threshold overrides

    Returns:
        AnalyticsReport
    """
    transactions, matches = outcome_transactions(outcome)
    insights = generate_insights(outcome, history, settings=settings)
    insights.extend(detect_anomalies(outcome, history, settings=settings))

    report = AnalyticsReport(
        summary=summarize_outcome(outcome),
        historical_trends=tuple(trend_data(history)),
        insights=tuple(insights),
        amount_distribution=tuple(amount_distribution(transactions)),
        status_breakdown=tuple(status_breakdown(transactions)),
        mismatch_patterns=tuple(mismatch_patterns(matches)),
        performance_metrics=performance_metrics(history),
    )

    logger.info(
        "Analytics generated",
        kind=report.summary.kind.value,
        insights=len(report.insights),
        history=len(history),
    )
    return report


def executive_summary(report: AnalyticsReport) -> str:
    """Plain-text digest of an analytics report."""
    metrics = report.performance_metrics
    critical = [i for i in report.insights if i.impact == InsightImpact.HIGH]

    lines = [
        "Executive Summary:",
        "",
        f"- Processed {metrics.total_transactions_processed:,} transactions across "
        f"{metrics.total_reconciliations} reconciliation sessions",
        f"- Average match rate: {metrics.average_match_rate:.1f}%",
        f"- Average processing time: {metrics.average_processing_time:.2f}ms per reconciliation",
        "",
    ]

    if critical:
        lines.append("Key Areas for Attention:")
        lines.extend(f"- {i.title}: {i.description}" for i in critical)
    else:
        lines.append(
            "System Performance: All metrics are within acceptable ranges. "
            "No critical issues detected."
        )

    return "\n".join(lines)
