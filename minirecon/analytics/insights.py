"""
Insight generation for reconciliation outcomes.

Turns an outcome (and the records that came before it) into short
human-readable observations: match-rate tier, volume, trend versus the
previous run, batch failures and statistical anomalies.
"""

from typing import List, Optional, Sequence

import structlog

from ..config import Settings, get_settings
from ..models import (
    Outcome,
    SingleOutcome,
    BatchOutcome,
    OutcomeKind,
    OutcomeSummary,
    AnalyticsInsight,
    HistoricalRecord,
    InsightType,
    InsightImpact,
    safe_percentage,
)

logger = structlog.get_logger()


def summarize_outcome(outcome: Outcome) -> OutcomeSummary:
    """Headline numbers for either outcome kind."""
    if isinstance(outcome, SingleOutcome):
        stats = outcome.result.stats
        return OutcomeSummary(
            kind=OutcomeKind.SINGLE,
            match_rate=stats.match_rate,
            total_internal=stats.total_internal,
            total_provider=stats.total_provider,
            total_matched=stats.matched,
            total_discrepancies=stats.discrepancies,
        )
    if isinstance(outcome, BatchOutcome):
        stats = outcome.result.aggregate_stats
        return OutcomeSummary(
            kind=OutcomeKind.BATCH,
            match_rate=stats.overall_match_rate,
            total_internal=stats.total_transactions_internal,
            total_provider=stats.total_transactions_provider,
            total_matched=stats.total_matched,
            total_discrepancies=stats.total_discrepancies,
        )
    raise TypeError(f"Unsupported outcome type: {type(outcome).__name__}")


def _chronological(history: Sequence[HistoricalRecord]) -> List[HistoricalRecord]:
    return sorted(history, key=lambda r: r.timestamp)


def match_rate_insight(match_rate: float, settings: Settings) -> AnalyticsInsight:
    """Classify the match rate as excellent, good or needing attention."""
    rate = f"{match_rate:.1f}%"

    if match_rate >= settings.excellent_match_rate:
        return AnalyticsInsight(
            id="high-match-rate",
            type=InsightType.SUCCESS,
            title="Excellent Match Rate",
            description=f"Your reconciliation achieved a {rate} match rate, indicating strong data quality.",
            value=rate,
            impact=InsightImpact.LOW,
            recommendation="Continue monitoring for consistency.",
        )
    if match_rate >= settings.good_match_rate:
        return AnalyticsInsight(
            id="good-match-rate",
            type=InsightType.INFO,
            title="Good Match Rate",
            description=f"Match rate of {rate} is within acceptable range.",
            value=rate,
            impact=InsightImpact.MEDIUM,
            recommendation="Review unmatched transactions for patterns.",
        )
    return AnalyticsInsight(
        id="low-match-rate",
        type=InsightType.WARNING,
        title="Low Match Rate Alert",
        description=f"Match rate of {rate} is below optimal threshold; needs attention.",
        value=rate,
        impact=InsightImpact.HIGH,
        recommendation="Investigate data quality issues and reconciliation processes.",
    )


def generate_insights(
    outcome: Outcome,
    history: Sequence[HistoricalRecord] = (),
    settings: Optional[Settings] = None,
) -> List[AnalyticsInsight]:
    """
    Build insights for an outcome.

    Args:
        outcome: The outcome being reported on
        history: Records that precede the outcome (the outcome itself excluded)
        settings: Threshold overrides, defaults to the cached settings

    Returns:
        Insights in display order
    """
    settings = settings or get_settings()
    summary = summarize_outcome(outcome)
    insights = [match_rate_insight(summary.match_rate, settings)]

    total = summary.total_transactions
    if total > settings.high_volume_threshold:
        insights.append(AnalyticsInsight(
            id="high-volume",
            type=InsightType.INFO,
            title="High Volume Processing",
            description=f"Processed {total:,} transactions successfully.",
            value=f"{total:,}",
            impact=InsightImpact.MEDIUM,
            recommendation="Consider implementing automated reconciliation for such volumes.",
        ))

    if history:
        previous = summarize_outcome(_chronological(history)[-1].outcome)
        change = summary.match_rate - previous.match_rate
        if abs(change) >= settings.trend_change_threshold:
            improved = change > 0
            insights.append(AnalyticsInsight(
                id="match-rate-trend",
                type=InsightType.SUCCESS if improved else InsightType.WARNING,
                title=f"Match Rate {'Improvement' if improved else 'Decline'}",
                description=(
                    f"Match rate {'increased' if improved else 'decreased'} by "
                    f"{abs(change):.1f}% compared to previous reconciliation."
                ),
                value=f"{'+' if improved else ''}{change:.1f}%",
                impact=(
                    InsightImpact.HIGH
                    if abs(change) >= settings.trend_change_high_impact
                    else InsightImpact.MEDIUM
                ),
                recommendation=(
                    "Great progress! Maintain current processes."
                    if improved else "Investigate recent changes in data sources."
                ),
            ))

    if isinstance(outcome, BatchOutcome) and outcome.result.aggregate_stats.failed_pairs > 0:
        stats = outcome.result.aggregate_stats
        failure_rate = safe_percentage(stats.failed_pairs, stats.total_file_pairs)
        insights.append(AnalyticsInsight(
            id="batch-failures",
            type=InsightType.ERROR,
            title="Batch Processing Failures",
            description=f"{stats.failed_pairs} of {stats.total_file_pairs} file pairs failed to process.",
            value=f"{failure_rate:.1f}%",
            impact=(
                InsightImpact.HIGH
                if failure_rate > settings.batch_failure_high_impact_rate
                else InsightImpact.MEDIUM
            ),
            recommendation="Review failed pairs for data format issues or corrupted files.",
        ))

    return insights


def detect_anomalies(
    outcome: Outcome,
    history: Sequence[HistoricalRecord] = (),
    threshold: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> List[AnalyticsInsight]:
    """Flag a match rate that deviates from the historical mean by more than threshold points."""
    settings = settings or get_settings()
    threshold = settings.anomaly_threshold if threshold is None else threshold

    if len(history) < settings.anomaly_min_history:
        return []

    rates = [summarize_outcome(r.outcome).match_rate for r in history]
    average = sum(rates) / len(rates)
    current = summarize_outcome(outcome).match_rate
    deviation = abs(current - average)

    if deviation <= threshold:
        return []

    below = current < average
    logger.info(
        "Match rate anomaly detected",
        current=round(current, 2),
        historical_average=round(average, 2),
        threshold=threshold,
    )
    return [AnalyticsInsight(
        id="match-rate-anomaly",
        type=InsightType.ERROR if below else InsightType.INFO,
        title="Unusual Match Rate Detected",
        description=(
            f"Current match rate ({current:.1f}%) deviates significantly from "
            f"historical average ({average:.1f}%)."
        ),
        value=f"{deviation:.1f}% deviation",
        impact=InsightImpact.HIGH,
        recommendation=(
            "Investigate potential data quality issues or system changes."
            if below else
            "Excellent improvement! Document what contributed to this enhancement."
        ),
    )]
