"""Plain-text summary reports for single and batch reconciliations."""

from typing import List

from ..models import (
    ReconciliationResult,
    BatchReconciliationResult,
    FilePairStatus,
)

REPORT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def _heading(title: str) -> List[str]:
    return [title, "=" * 32, ""]


def single_summary_report(result: ReconciliationResult, title: str = "RECONCILIATION SUMMARY") -> str:
    """Text summary of one reconciliation result."""
    stats = result.stats
    lines = _heading(title)
    lines += [
        "TRANSACTION SUMMARY:",
        f"- Internal Transactions: {stats.total_internal:,}",
        f"- Provider Transactions: {stats.total_provider:,}",
        f"- Matched: {stats.matched:,}",
        f"  - Perfect Matches: {result.perfect_matches:,}",
        f"  - With Field Mismatches: {len(result.mismatched):,}",
        f"- Internal Only: {stats.internal_only:,}",
        f"- Provider Only: {stats.provider_only:,}",
        f"- Match Rate: {stats.match_rate:.2f}%",
        "",
    ]

    if result.warnings:
        lines.append("DATA QUALITY WARNINGS:")
        lines.extend(f"- {w}" for w in result.warnings)
        lines.append("")

    return "\n".join(lines)


def batch_summary_report(result: BatchReconciliationResult) -> str:
    """Text summary of a batch run, aggregate numbers first then one block per pair."""
    stats = result.aggregate_stats
    lines = _heading("BATCH RECONCILIATION SUMMARY")
    lines += [
        f"Processing Date: {result.processed_at.strftime(REPORT_TIMESTAMP_FORMAT)}",
        f"Total Processing Time: {result.processing_time_ms / 1000:.2f} seconds",
        f"Average Time per Pair: {stats.average_processing_time / 1000:.2f} seconds",
        "",
        "FILE PAIRS PROCESSED:",
        f"- Total Pairs: {stats.total_file_pairs}",
        f"- Successful: {stats.successful_pairs}",
        f"- Failed: {stats.failed_pairs}",
        f"- Success Rate: {stats.success_rate:.1f}%",
    ]
    if result.cancelled:
        lines.append("- Run cancelled before all pairs were processed")
    lines += [
        "",
        "TRANSACTION SUMMARY:",
        f"- Total Internal Transactions: {stats.total_transactions_internal:,}",
        f"- Total Provider Transactions: {stats.total_transactions_provider:,}",
        f"- Total Matched: {stats.total_matched:,}",
        f"- Internal Only: {stats.total_internal_only:,}",
        f"- Provider Only: {stats.total_provider_only:,}",
        f"- Overall Match Rate: {stats.overall_match_rate:.2f}%",
        "",
    ]

    if result.file_pairs:
        lines += ["INDIVIDUAL PAIR RESULTS:", "-" * 24]
        for index, pair in enumerate(result.file_pairs, start=1):
            lines.append(f"{index}. {pair.name}")
            if pair.status == FilePairStatus.COMPLETED and pair.result:
                pair_stats = pair.result.stats
                lines.append("   Status: Completed")
                lines.append(
                    f"   Matched: {pair_stats.matched}/{pair_stats.total_internal} "
                    f"({pair_stats.match_rate:.1f}%)"
                )
            elif pair.status == FilePairStatus.FAILED:
                lines.append(f"   Status: Failed - {pair.error}")
            else:
                lines.append(f"   Status: {pair.status.value.capitalize()}")
            lines.append("")

    return "\n".join(lines)
