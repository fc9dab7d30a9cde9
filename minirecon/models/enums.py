"""Enumerations for the reconciliation engine."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class FilePairStatus(str, Enum):
    """
    Lifecycle of one file pair inside a batch run.

    PENDING: Submitted, not yet picked up
    PROCESSING: Currently being reconciled
    COMPLETED: Reconciled, result attached (terminal)
    FAILED: Reconciliation raised, error attached (terminal)
    """
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (FilePairStatus.COMPLETED, FilePairStatus.FAILED)


# Allowed moves of the file pair state machine
PAIR_TRANSITIONS = {
    FilePairStatus.PENDING: (FilePairStatus.PROCESSING,),
    FilePairStatus.PROCESSING: (FilePairStatus.COMPLETED, FilePairStatus.FAILED),
    FilePairStatus.COMPLETED: (),
    FilePairStatus.FAILED: (),
}


class OutcomeKind(str, Enum):
    """Whether an outcome comes from one file pair or from a batch run."""
    SINGLE = "single"
    BATCH = "batch"


class MatchRateBasis(str, Enum):
    """
    Denominator used for the match rate.

    INPUT_ROWS: Raw internal input length, duplicates included
    UNIQUE_REFERENCES: Internal lookup size after last-write-wins dedupe
    """
    INPUT_ROWS = "input_rows"
    UNIQUE_REFERENCES = "unique_references"


class InsightType(str, Enum):
    """Tone of an analytics insight."""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


class InsightImpact(str, Enum):
    """How urgently an insight should be acted on."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TimeRange(str, Enum):
    """Look-back windows for historical queries."""
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    ALL = "all"

    @property
    def days(self) -> Optional[int]:
        if self == TimeRange.ALL:
            return None
        return int(self.value[:-1])

    def cutoff(self, now: datetime) -> Optional[datetime]:
        """Earliest timestamp inside the window, None for ALL."""
        if self.days is None:
            return None
        return now - timedelta(days=self.days)
