"""Analytics and history models."""

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Tuple
from uuid import uuid4

from ..utils.clock import utc_now, to_iso, parse_timestamp
from .enums import InsightType, InsightImpact, OutcomeKind
from .reconciliation import Outcome, outcome_from_dict


def to_plain(value: Any) -> Any:
    """Recursively convert dataclasses, enums and datetimes to JSON types."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    return value


class _PlainValue:
    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)


@dataclass(frozen=True)
class OutcomeSummary(_PlainValue):
    """Headline numbers of a single or batch outcome."""
    kind: OutcomeKind
    match_rate: float
    total_internal: int
    total_provider: int
    total_matched: int
    total_discrepancies: int

    @property
    def total_transactions(self) -> int:
        return self.total_internal + self.total_provider


@dataclass(frozen=True)
class AnalyticsInsight(_PlainValue):
    """A human-readable observation about an outcome."""
    id: str
    type: InsightType
    title: str
    description: str
    impact: InsightImpact
    value: Optional[str] = None
    recommendation: Optional[str] = None


@dataclass(frozen=True)
class AmountBucket(_PlainValue):
    range: str
    count: int
    percentage: float


@dataclass(frozen=True)
class StatusBreakdown(_PlainValue):
    status: str
    count: int
    percentage: float
    average_amount: float


@dataclass(frozen=True)
class MismatchPattern(_PlainValue):
    field: str
    frequency: int
    percentage: float
    examples: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TrendPoint(_PlainValue):
    date: str  # display label, e.g. "Mar 04, 2025"
    timestamp: datetime
    match_rate: float
    total_transactions: int
    total_matched: int
    total_discrepancies: int


@dataclass(frozen=True)
class PerformanceMetrics(_PlainValue):
    average_processing_time: float  # ms per reconciliation
    average_match_rate: float
    total_reconciliations: int
    total_transactions_processed: int
    last_updated: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class AnalyticsReport(_PlainValue):
    """Everything the analytics dashboard renders for one outcome."""
    summary: OutcomeSummary
    historical_trends: Tuple[TrendPoint, ...]
    insights: Tuple[AnalyticsInsight, ...]
    amount_distribution: Tuple[AmountBucket, ...]
    status_breakdown: Tuple[StatusBreakdown, ...]
    mismatch_patterns: Tuple[MismatchPattern, ...]
    performance_metrics: PerformanceMetrics


@dataclass(frozen=True)
class RecordMetadata(_PlainValue):
    """Processing context stored next to a historical outcome."""
    processing_time_ms: float
    internal_file_name: Optional[str] = None
    provider_file_name: Optional[str] = None
    file_pair_count: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecordMetadata":
        return cls(
            processing_time_ms=float(data["processing_time_ms"]),
            internal_file_name=data.get("internal_file_name"),
            provider_file_name=data.get("provider_file_name"),
            file_pair_count=data.get("file_pair_count"),
        )


@dataclass(frozen=True)
class HistoricalRecord:
    """One persisted reconciliation outcome."""
    outcome: Outcome
    metadata: RecordMetadata
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def kind(self) -> OutcomeKind:
        return self.outcome.kind

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": to_iso(self.timestamp),
            "type": self.kind.value,
            "result": self.outcome.result.to_dict(),
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalRecord":
        timestamp = parse_timestamp(data["timestamp"])
        if timestamp is None:
            raise ValueError(f"History record {data.get('id')!r} has no timestamp")
        return cls(
            id=data["id"],
            timestamp=timestamp,
            outcome=outcome_from_dict(data["type"], data["result"]),
            metadata=RecordMetadata.from_dict(data["metadata"]),
        )
