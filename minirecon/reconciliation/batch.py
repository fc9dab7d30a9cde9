"""
Batch Orchestrator - runs the matcher over many file pairs.

Pairs are processed one at a time in caller order, so peak memory is bounded
by a single pair and progress events arrive in a deterministic order. A failing
pair is recorded and the run moves on to the next one.

Pair lifecycle: pending -> processing -> completed | failed
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import structlog

from ..config import get_settings
from ..errors import BatchInputError, InvalidFilePairError, ReconciliationError
from ..models import (
    FilePair,
    FilePairStatus,
    BatchStats,
    BatchReconciliationResult,
    safe_percentage,
)
from ..utils.clock import utc_now
from .matcher import TransactionMatcher

logger = structlog.get_logger()

ProgressCallback = Callable[[int, int, FilePair], None]
PairCompletedCallback = Callable[[FilePair], None]
PairFailedCallback = Callable[[FilePair, str], None]


@dataclass
class BatchCallbacks:
    """
    Observer hooks for a batch run. All fire between pairs, never while the
    matcher is running.

    on_progress: (current, total, pair), current is 1-based
    on_pair_completed: (pair) after the result is attached
    on_pair_failed: (pair, error) after the error is attached
    """
    on_progress: Optional[ProgressCallback] = None
    on_pair_completed: Optional[PairCompletedCallback] = None
    on_pair_failed: Optional[PairFailedCallback] = None


class CancellationToken:
    """Cooperative stop flag checked by the orchestrator between pairs."""

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class PairValidation:
    """Result of the caller-side precondition check."""
    valid: bool
    errors: List[str] = field(default_factory=list)


def check_file_pair(pair: FilePair) -> None:
    """Raise InvalidFilePairError if a side is missing or has no records."""
    if pair.internal_file is None or pair.provider_file is None:
        raise InvalidFilePairError("Missing internal or provider file", pair_id=pair.id)
    if not pair.internal_file.data:
        raise InvalidFilePairError(
            f'Internal file "{pair.internal_file.name}" has no transaction data',
            pair_id=pair.id,
        )
    if not pair.provider_file.data:
        raise InvalidFilePairError(
            f'Provider file "{pair.provider_file.name}" has no transaction data',
            pair_id=pair.id,
        )


def validate_file_pairs(pairs: Sequence[FilePair]) -> PairValidation:
    """
    Check the batch precondition before submitting pairs.

    The orchestrator does not require this: invalid pairs met during a run
    simply fail on their own.
    """
    if not pairs:
        return PairValidation(valid=False, errors=["No file pairs available for processing"])

    errors = []
    for index, pair in enumerate(pairs, start=1):
        try:
            check_file_pair(pair)
        except InvalidFilePairError as e:
            errors.append(f"Pair {index}: {e.message}")

    return PairValidation(valid=not errors, errors=errors)


def calculate_batch_stats(
    pairs: Sequence[FilePair],
    processing_time_ms: float,
) -> BatchStats:
    """
    Aggregate statistics over a processed pair list.

    Only completed pairs contribute transaction counts. The average time is
    spread over every attempted pair, failed ones included.
    """
    completed = [p for p in pairs if p.status == FilePairStatus.COMPLETED and p.result]
    failed = [p for p in pairs if p.status == FilePairStatus.FAILED]

    total_internal = sum(p.result.stats.total_internal for p in completed)
    total_provider = sum(p.result.stats.total_provider for p in completed)
    total_matched = sum(p.result.stats.matched for p in completed)
    total_internal_only = sum(p.result.stats.internal_only for p in completed)
    total_provider_only = sum(p.result.stats.provider_only for p in completed)

    attempted = len(completed) + len(failed)

    return BatchStats(
        total_file_pairs=len(pairs),
        successful_pairs=len(completed),
        failed_pairs=len(failed),
        total_transactions_internal=total_internal,
        total_transactions_provider=total_provider,
        total_matched=total_matched,
        total_internal_only=total_internal_only,
        total_provider_only=total_provider_only,
        overall_match_rate=safe_percentage(total_matched, total_internal),
        average_processing_time=processing_time_ms / attempted if attempted else 0.0,
    )


class BatchOrchestrator:
    """
    Sequential batch runner with per-pair failure isolation.

    The orchestrator owns the pair list for the duration of ``run``; callers
    must not mutate the pairs while a run is in flight.
    """

    def __init__(
        self,
        matcher: Optional[TransactionMatcher] = None,
        pair_delay_seconds: Optional[float] = None,
    ):
        self.settings = get_settings()
        self.matcher = matcher or TransactionMatcher()
        self.pair_delay_seconds = (
            self.settings.batch_pair_delay_seconds
            if pair_delay_seconds is None else pair_delay_seconds
        )

    async def run(
        self,
        pairs: Sequence[FilePair],
        callbacks: Optional[BatchCallbacks] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BatchReconciliationResult:
        """
        Reconcile every pair in order.

        Args:
            pairs: Pending file pairs with unique ids
            callbacks: Optional progress / completion / failure hooks
            cancel_token: Optional token checked before each pair

        Returns:
            BatchReconciliationResult; pair-level errors never escape
        """
        self._check_submission(pairs)
        callbacks = callbacks or BatchCallbacks()
        total = len(pairs)
        cancelled = False

        logger.info("Starting batch reconciliation", pairs=total)
        start = time.perf_counter()

        for index, pair in enumerate(pairs, start=1):
            if index > 1:
                # Only suspension point: lets observers react between pairs
                await asyncio.sleep(self.pair_delay_seconds)

            if cancel_token is not None and cancel_token.cancelled:
                cancelled = True
                logger.warning(
                    "Batch cancelled",
                    processed=index - 1,
                    remaining=total - index + 1,
                    reason=cancel_token.reason,
                )
                break

            self._process_pair(pair, index, total, callbacks)

        processing_time_ms = (time.perf_counter() - start) * 1000
        stats = calculate_batch_stats(pairs, processing_time_ms)

        logger.info(
            "Batch reconciliation complete",
            cancelled=cancelled,
            processing_time_ms=round(processing_time_ms, 2),
            **stats.to_dict(),
        )

        return BatchReconciliationResult(
            file_pairs=tuple(pairs),
            aggregate_stats=stats,
            processed_at=utc_now(),
            processing_time_ms=processing_time_ms,
            cancelled=cancelled,
        )

    def _check_submission(self, pairs: Sequence[FilePair]) -> None:
        """Reject duplicate ids and pairs that already left the pending state."""
        seen = set()
        for pair in pairs:
            if pair.id in seen:
                raise BatchInputError(f"Duplicate file pair id: {pair.id}", details={"pair_id": pair.id})
            seen.add(pair.id)
            if pair.status != FilePairStatus.PENDING:
                raise BatchInputError(
                    f"File pair {pair.id} is {pair.status.value}, expected pending",
                    details={"pair_id": pair.id, "status": pair.status.value},
                )

    def _process_pair(
        self,
        pair: FilePair,
        index: int,
        total: int,
        callbacks: BatchCallbacks,
    ) -> None:
        pair.transition_to(FilePairStatus.PROCESSING)
        self._notify(callbacks.on_progress, index, total, pair)

        try:
            check_file_pair(pair)
            result = self.matcher.reconcile(pair.internal_file.data, pair.provider_file.data)
        except ReconciliationError as e:
            logger.warning("File pair failed", pair_id=pair.id, pair=pair.name, error=e.message)
            self._fail(pair, e.message, callbacks)
        except Exception as e:
            logger.exception("File pair failed unexpectedly", pair_id=pair.id, pair=pair.name)
            self._fail(pair, str(e) or type(e).__name__, callbacks)
        else:
            pair.mark_completed(result)
            logger.info(
                "File pair completed",
                pair_id=pair.id,
                current=index,
                total=total,
                match_rate=round(result.stats.match_rate, 2),
            )
            self._notify(callbacks.on_pair_completed, pair)

    def _fail(self, pair: FilePair, message: str, callbacks: BatchCallbacks) -> None:
        pair.mark_failed(message)
        self._notify(callbacks.on_pair_failed, pair, message)

    def _notify(self, callback: Optional[Callable], *args) -> None:
        """Invoke an observer; its errors are logged and never affect the pair."""
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception(
                "Batch callback raised",
                callback=getattr(callback, "__name__", repr(callback)),
            )
