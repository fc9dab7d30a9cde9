"""
Tests for the Batch Orchestrator.
"""

import pytest

from minirecon.errors import BatchInputError, InvalidTransitionError
from minirecon.models import FilePair, FilePairStatus
from minirecon.reconciliation import (
    BatchCallbacks,
    BatchOrchestrator,
    CancellationToken,
    TransactionMatcher,
    calculate_batch_stats,
    validate_file_pairs,
)

from conftest import make_file, make_txn


def make_pair(name, internal, provider, pair_id=None):
    pair = FilePair(
        internal_file=make_file(f"{name}_internal.csv", internal),
        provider_file=make_file(f"{name}_provider.csv", provider),
    )
    if pair_id:
        pair.id = pair_id
    return pair


@pytest.fixture
def orchestrator():
    return BatchOrchestrator(pair_delay_seconds=0)


@pytest.fixture
def pairs():
    return [
        make_pair("jan", [make_txn("A1"), make_txn("A2")], [make_txn("A1"), make_txn("A2")]),
        make_pair("feb", [make_txn("B1"), make_txn("B2")], [make_txn("B1")]),
        make_pair("mar", [make_txn("C1")], [make_txn("C1"), make_txn("C9")]),
    ]


class ExplodingMatcher(TransactionMatcher):
    """Raises a non-domain error for one specific reference."""

    def reconcile(self, internal, provider):
        if any(t.key == "BOOM" for t in internal):
            raise RuntimeError("matcher crashed")
        return super().reconcile(internal, provider)


class TestBatchRun:

    @pytest.mark.asyncio
    async def test_all_pairs_complete(self, orchestrator, pairs):
        result = await orchestrator.run(pairs)
        stats = result.aggregate_stats

        assert [p.status for p in result.file_pairs] == [FilePairStatus.COMPLETED] * 3
        assert stats.total_file_pairs == 3
        assert stats.successful_pairs == 3
        assert stats.failed_pairs == 0
        assert stats.total_transactions_internal == 5
        assert stats.total_transactions_provider == 5
        assert stats.total_matched == 4
        assert stats.total_internal_only == 1
        assert stats.total_provider_only == 1
        assert stats.overall_match_rate == pytest.approx(80.0)
        assert not result.cancelled

    @pytest.mark.asyncio
    async def test_pair_order_preserved(self, orchestrator, pairs):
        ids = [p.id for p in pairs]
        result = await orchestrator.run(pairs)
        assert [p.id for p in result.file_pairs] == ids

    @pytest.mark.asyncio
    async def test_failing_pair_is_isolated(self, orchestrator, pairs):
        pairs.insert(1, make_pair("empty", [], [make_txn("X1")]))

        result = await orchestrator.run(pairs)
        failed = result.file_pairs[1]

        assert failed.status == FilePairStatus.FAILED
        assert failed.error == 'Internal file "empty_internal.csv" has no transaction data'
        assert failed.result is None
        assert failed.processed_at is not None
        assert result.aggregate_stats.successful_pairs == 3
        assert result.aggregate_stats.failed_pairs == 1
        # Failed pairs do not contribute transaction counts
        assert result.aggregate_stats.total_transactions_internal == 5

    @pytest.mark.asyncio
    async def test_bad_amount_fails_only_its_pair(self, orchestrator, pairs):
        pairs.append(make_pair("bad", [make_txn("D1", amount=True)], [make_txn("D1")]))

        result = await orchestrator.run(pairs)

        assert result.file_pairs[-1].status == FilePairStatus.FAILED
        assert "boolean" in result.file_pairs[-1].error
        assert len(result.completed_pairs) == 3

    @pytest.mark.asyncio
    async def test_unexpected_error_is_recorded(self, pairs):
        orchestrator = BatchOrchestrator(matcher=ExplodingMatcher(), pair_delay_seconds=0)
        pairs.append(make_pair("boom", [make_txn("BOOM")], [make_txn("BOOM")]))

        result = await orchestrator.run(pairs)

        assert result.file_pairs[-1].status == FilePairStatus.FAILED
        assert result.file_pairs[-1].error == "matcher crashed"
        assert len(result.failed_pairs) == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self, orchestrator):
        result = await orchestrator.run([])

        assert result.file_pairs == ()
        assert result.aggregate_stats.total_file_pairs == 0
        assert result.aggregate_stats.average_processing_time == 0.0

    @pytest.mark.asyncio
    async def test_average_time_over_attempted_pairs(self, orchestrator, pairs):
        result = await orchestrator.run(pairs)
        stats = result.aggregate_stats

        assert stats.average_processing_time == pytest.approx(result.processing_time_ms / 3)


class TestBatchCallbacks:

    @pytest.mark.asyncio
    async def test_events_in_order(self, orchestrator, pairs):
        pairs.insert(1, make_pair("empty", [], [make_txn("X1")]))
        events = []

        callbacks = BatchCallbacks(
            on_progress=lambda current, total, pair: events.append(("progress", current, total)),
            on_pair_completed=lambda pair: events.append(("completed", pair.status)),
            on_pair_failed=lambda pair, error: events.append(("failed", pair.status)),
        )
        await orchestrator.run(pairs, callbacks=callbacks)

        assert events == [
            ("progress", 1, 4),
            ("completed", FilePairStatus.COMPLETED),
            ("progress", 2, 4),
            ("failed", FilePairStatus.FAILED),
            ("progress", 3, 4),
            ("completed", FilePairStatus.COMPLETED),
            ("progress", 4, 4),
            ("completed", FilePairStatus.COMPLETED),
        ]

    @pytest.mark.asyncio
    async def test_progress_sees_processing_state(self, orchestrator, pairs):
        seen = []
        callbacks = BatchCallbacks(on_progress=lambda current, total, pair: seen.append(pair.status))

        await orchestrator.run(pairs, callbacks=callbacks)

        assert seen == [FilePairStatus.PROCESSING] * 3

    @pytest.mark.asyncio
    async def test_callback_error_does_not_break_run(self, orchestrator, pairs):
        def broken(pair):
            raise ValueError("observer bug")

        result = await orchestrator.run(pairs, callbacks=BatchCallbacks(on_pair_completed=broken))

        assert len(result.completed_pairs) == 3


class TestBatchCancellation:

    @pytest.mark.asyncio
    async def test_cancel_between_pairs(self, orchestrator, pairs):
        token = CancellationToken()
        callbacks = BatchCallbacks(on_pair_completed=lambda pair: token.cancel("user request"))

        result = await orchestrator.run(pairs, callbacks=callbacks, cancel_token=token)

        assert result.cancelled
        assert [p.status for p in result.file_pairs] == [
            FilePairStatus.COMPLETED,
            FilePairStatus.PENDING,
            FilePairStatus.PENDING,
        ]
        assert result.aggregate_stats.total_file_pairs == 3
        assert result.aggregate_stats.successful_pairs == 1
        assert result.aggregate_stats.average_processing_time == pytest.approx(
            result.processing_time_ms
        )

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, orchestrator, pairs):
        token = CancellationToken()
        token.cancel()

        result = await orchestrator.run(pairs, cancel_token=token)

        assert result.cancelled
        assert all(p.status == FilePairStatus.PENDING for p in result.file_pairs)
        assert result.aggregate_stats.average_processing_time == 0.0


class TestBatchSubmission:

    @pytest.mark.asyncio
    async def test_duplicate_ids_rejected(self, orchestrator):
        pairs = [
            make_pair("a", [make_txn("A1")], [make_txn("A1")], pair_id="same"),
            make_pair("b", [make_txn("B1")], [make_txn("B1")], pair_id="same"),
        ]

        with pytest.raises(BatchInputError):
            await orchestrator.run(pairs)
        assert all(p.status == FilePairStatus.PENDING for p in pairs)

    @pytest.mark.asyncio
    async def test_non_pending_pair_rejected(self, orchestrator, pairs):
        await orchestrator.run(pairs)

        with pytest.raises(BatchInputError):
            await orchestrator.run(pairs)


class TestValidation:

    def test_empty_list(self):
        validation = validate_file_pairs([])

        assert not validation.valid
        assert validation.errors == ["No file pairs available for processing"]

    def test_missing_side(self):
        pairs = [
            make_pair("ok", [make_txn("A1")], [make_txn("A1")]),
            FilePair(internal_file=make_file("x.csv", [make_txn("A1")]), provider_file=None),
        ]

        validation = validate_file_pairs(pairs)

        assert not validation.valid
        assert validation.errors == ["Pair 2: Missing internal or provider file"]

    def test_valid_pairs(self, pairs):
        assert validate_file_pairs(pairs).valid


class TestFilePairLifecycle:

    def test_illegal_transition(self, file_pair):
        with pytest.raises(InvalidTransitionError):
            file_pair.transition_to(FilePairStatus.COMPLETED)

    def test_terminal_state_is_final(self, file_pair):
        file_pair.transition_to(FilePairStatus.PROCESSING)
        file_pair.mark_failed("broken")

        with pytest.raises(InvalidTransitionError):
            file_pair.transition_to(FilePairStatus.PROCESSING)
        assert file_pair.status.is_terminal

    def test_stats_for_no_pairs(self):
        stats = calculate_batch_stats([], 0.0)

        assert stats.success_rate == 0.0
        assert stats.overall_match_rate == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
