"""Exceptions raised by the reconciliation engine."""

from typing import Any, Optional


class ReconciliationError(Exception):
    """Base class for reconciliation errors."""
    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class TransactionDataError(ReconciliationError):
    """A transaction field holds a value the matcher cannot compare."""
    def __init__(self, message: str, reference: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message, details={"reference": reference, "field": field})
        self.reference = reference
        self.field = field


class InvalidFilePairError(ReconciliationError):
    """A file pair is missing a side or one side carries no records."""
    def __init__(self, message: str, pair_id: Optional[str] = None):
        super().__init__(message, details={"pair_id": pair_id})
        self.pair_id = pair_id


class InvalidTransitionError(ReconciliationError):
    """A file pair was moved along an edge the state machine does not have."""
    def __init__(self, pair_id: str, current: str, target: str):
        super().__init__(
            f"File pair {pair_id} cannot move from {current} to {target}",
            details={"pair_id": pair_id, "current": current, "target": target},
        )
        self.pair_id = pair_id
        self.current = current
        self.target = target


class BatchInputError(ReconciliationError):
    """The pair list handed to a batch run is unusable as a whole."""


class HistoryStoreError(ReconciliationError):
    """History store used outside its lifecycle or its backing file is unreadable."""
