"""
Tests for plain-text summary reports.
"""

import pytest

from minirecon.analytics import batch_summary_report, single_summary_report
from minirecon.models import FilePair, FilePairStatus
from minirecon.reconciliation import BatchOrchestrator, CancellationToken, TransactionMatcher

from conftest import make_file, make_txn


class TestSingleReport:

    def test_counts(self, internal_transactions, provider_transactions):
        result = TransactionMatcher().reconcile(internal_transactions, provider_transactions)

        report = single_summary_report(result)

        assert report.startswith("RECONCILIATION SUMMARY")
        assert "- Internal Transactions: 4" in report
        assert "- Matched: 3" in report
        assert "  - Perfect Matches: 2" in report
        assert "  - With Field Mismatches: 1" in report
        assert "- Internal Only: 1" in report
        assert "- Provider Only: 1" in report
        assert "- Match Rate: 75.00%" in report
        assert "DATA QUALITY WARNINGS" not in report

    def test_warnings_listed(self):
        result = TransactionMatcher().reconcile(
            [make_txn("TXN005"), make_txn("TXN005")],
            [make_txn("TXN005")],
        )

        report = single_summary_report(result, title="MONTHLY CHECK")

        assert report.startswith("MONTHLY CHECK")
        assert "DATA QUALITY WARNINGS:" in report
        assert "TXN005" in report


class TestBatchReport:

    @pytest.mark.asyncio
    async def test_pair_sections(self):
        pairs = [
            FilePair(
                internal_file=make_file("jan_internal.csv", [make_txn("A1"), make_txn("A2")]),
                provider_file=make_file("jan_provider.csv", [make_txn("A1")]),
            ),
            FilePair(
                internal_file=make_file("feb_internal.csv", []),
                provider_file=make_file("feb_provider.csv", [make_txn("B1")]),
            ),
        ]
        result = await BatchOrchestrator(pair_delay_seconds=0).run(pairs)

        report = batch_summary_report(result)

        assert report.startswith("BATCH RECONCILIATION SUMMARY")
        assert "FILE PAIRS PROCESSED:" in report
        assert "- Successful: 1" in report
        assert "- Failed: 1" in report
        assert "- Success Rate: 50.0%" in report
        assert "INDIVIDUAL PAIR RESULTS:" in report
        assert "1. jan_internal.csv <-> jan_provider.csv" in report
        assert "   Status: Completed" in report
        assert "   Matched: 1/2 (50.0%)" in report
        assert '   Status: Failed - Internal file "feb_internal.csv" has no transaction data' in report

    @pytest.mark.asyncio
    async def test_cancelled_run(self):
        token = CancellationToken()
        token.cancel()
        pair = FilePair(
            internal_file=make_file("a.csv", [make_txn("A1")]),
            provider_file=make_file("b.csv", [make_txn("A1")]),
        )
        result = await BatchOrchestrator(pair_delay_seconds=0).run([pair], cancel_token=token)

        report = batch_summary_report(result)

        assert "- Run cancelled before all pairs were processed" in report
        assert "   Status: Pending" in report
        assert pair.status == FilePairStatus.PENDING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
