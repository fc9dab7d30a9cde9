"""
Tests for the record model and its JSON representation.
"""

import json
from datetime import datetime, timezone

import pytest

from minirecon.models import (
    BatchOutcome,
    FilePair,
    FilePairStatus,
    HistoricalRecord,
    ParsedFile,
    RecordMetadata,
    ReconciliationResult,
    SingleOutcome,
    TimeRange,
    Transaction,
    outcome_from_dict,
    safe_percentage,
)
from minirecon.reconciliation import BatchOrchestrator, TransactionMatcher
from minirecon.utils.clock import parse_timestamp

from conftest import make_file, make_txn


class TestTransaction:

    def test_from_dict_keeps_extra_columns(self):
        txn = Transaction.from_dict({
            "transaction_reference": "TXN001",
            "amount": 12.5,
            "currency": "EUR",
        })

        assert txn.reference == "TXN001"
        assert txn.get("currency") == "EUR"
        assert txn.to_dict()["currency"] == "EUR"

    def test_missing_reference_has_empty_key(self):
        assert Transaction.from_dict({"amount": 1}).key == ""

    def test_numeric_reference_is_stringified(self):
        assert Transaction.from_dict({"reference": 1001}).key == "1001"

    def test_parsed_file_record_count(self):
        parsed = ParsedFile.from_dict({
            "name": "internal.csv",
            "data": [{"reference": "A"}, {"reference": "B"}],
        })

        assert parsed.record_count == 2
        assert parsed.headers == []


class TestResultSerialization:

    def test_single_result_round_trip(self, internal_transactions, provider_transactions):
        result = TransactionMatcher().reconcile(internal_transactions, provider_transactions)

        restored = ReconciliationResult.from_dict(json.loads(json.dumps(result.to_dict())))

        assert restored.stats == result.stats
        assert [m.reference for m in restored.matched] == [m.reference for m in result.matched]
        assert restored.mismatched[0].mismatched_fields == ["amount"]

    @pytest.mark.asyncio
    async def test_batch_record_round_trip(self, file_pair):
        result = await BatchOrchestrator(pair_delay_seconds=0).run([file_pair])
        record = HistoricalRecord(
            outcome=BatchOutcome(result),
            metadata=RecordMetadata(processing_time_ms=result.processing_time_ms, file_pair_count=1),
        )

        data = json.loads(json.dumps(record.to_dict()))
        restored = HistoricalRecord.from_dict(data)

        assert data["type"] == "batch"
        assert data["metadata"]["file_pair_count"] == 1
        assert isinstance(restored.outcome, BatchOutcome)
        pair = restored.outcome.result.file_pairs[0]
        assert pair.id == file_pair.id
        assert pair.status == FilePairStatus.COMPLETED
        assert pair.result.stats == file_pair.result.stats

    def test_file_pair_to_dict(self):
        pair = FilePair(internal_file=make_file("a.csv", [make_txn("A1")]), provider_file=None)

        data = pair.to_dict()

        assert data["status"] == "pending"
        assert data["provider_file"] is None
        assert data["processed_at"] is None
        assert pair.name == "a.csv <-> <missing>"

    def test_outcome_from_dict(self):
        outcome = outcome_from_dict("single", ReconciliationResult().to_dict())
        assert isinstance(outcome, SingleOutcome)

    def test_unknown_outcome_kind(self):
        with pytest.raises(ValueError):
            outcome_from_dict("weekly", {})


class TestHelpers:

    def test_safe_percentage(self):
        assert safe_percentage(1, 4) == 25.0
        assert safe_percentage(5, 0) == 0.0

    def test_time_range(self):
        now = datetime(2025, 3, 1, tzinfo=timezone.utc)

        assert TimeRange.LAST_7_DAYS.days == 7
        assert TimeRange.ALL.cutoff(now) is None
        assert TimeRange("90d").cutoff(now) == datetime(2024, 12, 1, tzinfo=timezone.utc)

    def test_parse_timestamp_zulu_suffix(self):
        assert parse_timestamp("2025-03-01T12:00:00Z") == datetime(2025, 3, 1, 12, tzinfo=timezone.utc)
        assert parse_timestamp("2025-03-01T12:00:00") == datetime(2025, 3, 1, 12, tzinfo=timezone.utc)
        assert parse_timestamp(None) is None

    def test_parse_timestamp_rejects_non_string(self):
        with pytest.raises(TypeError):
            parse_timestamp(1700000000)

    def test_record_without_timestamp_rejected(self):
        data = HistoricalRecord(
            outcome=SingleOutcome(ReconciliationResult()),
            metadata=RecordMetadata(processing_time_ms=1.0),
        ).to_dict()
        data["timestamp"] = None

        with pytest.raises(ValueError):
            HistoricalRecord.from_dict(data)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
