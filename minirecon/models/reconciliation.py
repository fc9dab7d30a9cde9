"""Reconciliation result models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Optional, List, Dict, Any, Tuple, Union
from uuid import uuid4

from ..errors import InvalidTransitionError
from ..utils.clock import utc_now, to_iso, parse_timestamp
from .enums import FilePairStatus, OutcomeKind, PAIR_TRANSITIONS
from .transaction import Transaction, TransactionMatch, ParsedFile


def safe_percentage(part: float, whole: float) -> float:
    """part / whole * 100, or 0.0 when whole is zero."""
    if not whole:
        return 0.0
    return (part / whole) * 100


@dataclass(frozen=True)
class ReconciliationStats:
    """Summary statistics of one matcher run."""
    total_internal: int = 0
    total_provider: int = 0
    matched: int = 0
    internal_only: int = 0
    provider_only: int = 0
    match_rate: float = 0.0

    @property
    def discrepancies(self) -> int:
        """Records present on one side only."""
        return self.internal_only + self.provider_only

    @property
    def total_transactions(self) -> int:
        return self.total_internal + self.total_provider

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_internal": self.total_internal,
            "total_provider": self.total_provider,
            "matched": self.matched,
            "internal_only": self.internal_only,
            "provider_only": self.provider_only,
            "match_rate": self.match_rate,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReconciliationStats":
        return cls(**{key: data[key] for key in cls().to_dict() if key in data})


@dataclass(frozen=True)
class ReconciliationResult:
    """Complete result of reconciling one internal file against one provider file."""
    matched: Tuple[TransactionMatch, ...] = ()
    internal_only: Tuple[Transaction, ...] = ()
    provider_only: Tuple[Transaction, ...] = ()
    stats: ReconciliationStats = field(default_factory=ReconciliationStats)

    # Data-quality notes (duplicate references, skipped rows)
    warnings: Tuple[str, ...] = ()

    @property
    def mismatched(self) -> List[TransactionMatch]:
        """Matches with at least one field disagreement."""
        return [m for m in self.matched if not m.is_perfect]

    @property
    def perfect_matches(self) -> int:
        return sum(1 for m in self.matched if m.is_perfect)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched": [m.to_dict() for m in self.matched],
            "internal_only": [t.to_dict() for t in self.internal_only],
            "provider_only": [t.to_dict() for t in self.provider_only],
            "stats": self.stats.to_dict(),
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReconciliationResult":
        return cls(
            matched=tuple(TransactionMatch.from_dict(m) for m in data.get("matched", [])),
            internal_only=tuple(Transaction.from_dict(t) for t in data.get("internal_only", [])),
            provider_only=tuple(Transaction.from_dict(t) for t in data.get("provider_only", [])),
            stats=ReconciliationStats.from_dict(data.get("stats", {})),
            warnings=tuple(data.get("warnings", [])),
        )


@dataclass
class FilePair:
    """
    One unit of batch work: an internal file and a provider file.

    Owned by the batch orchestrator while a run is in flight. Status only moves
    forward: pending -> processing -> completed | failed.
    """
    internal_file: Optional[ParsedFile]
    provider_file: Optional[ParsedFile]
    id: str = field(default_factory=lambda: str(uuid4()))

    status: FilePairStatus = FilePairStatus.PENDING
    result: Optional[ReconciliationResult] = None
    error: Optional[str] = None

    created_at: datetime = field(default_factory=utc_now)
    processed_at: Optional[datetime] = None

    @property
    def name(self) -> str:
        internal = self.internal_file.name if self.internal_file else "<missing>"
        provider = self.provider_file.name if self.provider_file else "<missing>"
        return f"{internal} <-> {provider}"

    def transition_to(self, target: FilePairStatus) -> None:
        """Move along the state machine or raise InvalidTransitionError."""
        if target not in PAIR_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.id, self.status.value, target.value)
        self.status = target

    def mark_completed(self, result: ReconciliationResult) -> None:
        self.transition_to(FilePairStatus.COMPLETED)
        self.result = result
        self.processed_at = utc_now()

    def mark_failed(self, error: str) -> None:
        self.transition_to(FilePairStatus.FAILED)
        self.error = error
        self.processed_at = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "internal_file": self.internal_file.to_dict() if self.internal_file else None,
            "provider_file": self.provider_file.to_dict() if self.provider_file else None,
            "status": self.status.value,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
            "created_at": to_iso(self.created_at),
            "processed_at": to_iso(self.processed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilePair":
        internal = data.get("internal_file")
        provider = data.get("provider_file")
        result = data.get("result")
        return cls(
            id=data["id"],
            internal_file=ParsedFile.from_dict(internal) if internal else None,
            provider_file=ParsedFile.from_dict(provider) if provider else None,
            status=FilePairStatus(data.get("status", FilePairStatus.PENDING.value)),
            result=ReconciliationResult.from_dict(result) if result else None,
            error=data.get("error"),
            created_at=parse_timestamp(data.get("created_at")) or utc_now(),
            processed_at=parse_timestamp(data.get("processed_at")),
        )


@dataclass(frozen=True)
class BatchStats:
    """Aggregate statistics across every pair of one batch run."""
    total_file_pairs: int = 0
    successful_pairs: int = 0
    failed_pairs: int = 0
    total_transactions_internal: int = 0
    total_transactions_provider: int = 0
    total_matched: int = 0
    total_internal_only: int = 0
    total_provider_only: int = 0
    overall_match_rate: float = 0.0
    average_processing_time: float = 0.0  # ms per attempted pair

    @property
    def success_rate(self) -> float:
        return safe_percentage(self.successful_pairs, self.total_file_pairs)

    @property
    def failure_rate(self) -> float:
        return safe_percentage(self.failed_pairs, self.total_file_pairs)

    @property
    def total_discrepancies(self) -> int:
        return self.total_internal_only + self.total_provider_only

    @property
    def total_transactions(self) -> int:
        return self.total_transactions_internal + self.total_transactions_provider

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_file_pairs": self.total_file_pairs,
            "successful_pairs": self.successful_pairs,
            "failed_pairs": self.failed_pairs,
            "total_transactions_internal": self.total_transactions_internal,
            "total_transactions_provider": self.total_transactions_provider,
            "total_matched": self.total_matched,
            "total_internal_only": self.total_internal_only,
            "total_provider_only": self.total_provider_only,
            "overall_match_rate": self.overall_match_rate,
            "average_processing_time": self.average_processing_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchStats":
        return cls(**{key: data[key] for key in cls().to_dict() if key in data})


@dataclass(frozen=True)
class BatchReconciliationResult:
    """Final state of a batch run."""
    file_pairs: Tuple[FilePair, ...]
    aggregate_stats: BatchStats
    processed_at: datetime = field(default_factory=utc_now)
    processing_time_ms: float = 0.0

    # True when a cancellation token stopped the run between pairs
    cancelled: bool = False

    @property
    def completed_pairs(self) -> List[FilePair]:
        return [p for p in self.file_pairs if p.status == FilePairStatus.COMPLETED]

    @property
    def failed_pairs(self) -> List[FilePair]:
        return [p for p in self.file_pairs if p.status == FilePairStatus.FAILED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_pairs": [p.to_dict() for p in self.file_pairs],
            "aggregate_stats": self.aggregate_stats.to_dict(),
            "processed_at": to_iso(self.processed_at),
            "processing_time_ms": self.processing_time_ms,
            "cancelled": self.cancelled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchReconciliationResult":
        return cls(
            file_pairs=tuple(FilePair.from_dict(p) for p in data.get("file_pairs", [])),
            aggregate_stats=BatchStats.from_dict(data.get("aggregate_stats", {})),
            processed_at=parse_timestamp(data.get("processed_at")) or utc_now(),
            processing_time_ms=data.get("processing_time_ms", 0.0),
            cancelled=data.get("cancelled", False),
        )


@dataclass(frozen=True)
class SingleOutcome:
    """Outcome of reconciling one file pair outside a batch."""
    result: ReconciliationResult
    kind: ClassVar[OutcomeKind] = OutcomeKind.SINGLE


@dataclass(frozen=True)
class BatchOutcome:
    """Outcome of a batch run."""
    result: BatchReconciliationResult
    kind: ClassVar[OutcomeKind] = OutcomeKind.BATCH


Outcome = Union[SingleOutcome, BatchOutcome]


def outcome_from_dict(kind: Union[str, OutcomeKind], data: Dict[str, Any]) -> Outcome:
    """Rebuild a tagged outcome from its serialized result."""
    kind = OutcomeKind(kind)
    if kind == OutcomeKind.SINGLE:
        return SingleOutcome(ReconciliationResult.from_dict(data))
    return BatchOutcome(BatchReconciliationResult.from_dict(data))
