"""
Transaction Matcher - reference-keyed reconciliation of one file pair.

Single-pass hash join of the internal and provider collections:
1. Index both sides by trimmed reference (last occurrence wins)
2. Walk the internal index in insertion order, pairing with provider hits
3. Compare amount / status / date on every pair
4. Whatever is left in the provider index is provider-only
"""

import math
import time
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from ..config import get_settings
from ..errors import TransactionDataError
from ..models import (
    Transaction,
    FieldMismatch,
    TransactionMatch,
    ReconciliationStats,
    ReconciliationResult,
    MatchRateBasis,
    safe_percentage,
)

logger = structlog.get_logger()

COMPARED_FIELDS = ("amount", "status", "date")

# Number of duplicate references quoted in a warning message
MAX_QUOTED_REFERENCES = 5


def parse_amount(value, reference: Optional[str] = None) -> float:
    """
    Coerce an amount to float.

    Numeric strings are parsed; strings that are not numbers become NaN so the
    comparison reports a mismatch. Other types cannot be compared.
    """
    if isinstance(value, bool):
        raise TransactionDataError(
            f"Amount for {reference!r} is a boolean", reference=reference, field="amount"
        )
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.nan
    raise TransactionDataError(
        f"Amount for {reference!r} has unsupported type {type(value).__name__}",
        reference=reference,
        field="amount",
    )


def find_field_mismatches(
    internal: Transaction,
    provider: Transaction,
    amount_tolerance: float = 0.01,
) -> Tuple[FieldMismatch, ...]:
    """Compare the tracked fields of a matched pair. Absent values are skipped."""
    mismatches = []

    for name in COMPARED_FIELDS:
        internal_value = internal.get(name)
        provider_value = provider.get(name)

        if internal_value is None or provider_value is None:
            continue

        if name == "amount":
            a = parse_amount(internal_value, internal.key)
            b = parse_amount(provider_value, internal.key)
            values_match = abs(a - b) < amount_tolerance
        else:
            values_match = str(internal_value).lower() == str(provider_value).lower()

        if not values_match:
            mismatches.append(FieldMismatch(
                field=name,
                internal_value=internal_value,
                provider_value=provider_value,
            ))

    return tuple(mismatches)


class TransactionMatcher:
    """
    Matches internal against provider transactions by reference.

    O(n + m): both sides are indexed once, no sorting, no pairwise scans.
    Each provider record is matched at most once.
    """

    def __init__(
        self,
        amount_tolerance: Optional[float] = None,
        match_rate_basis: Optional[MatchRateBasis] = None,
    ):
        self.settings = get_settings()
        self.amount_tolerance = (
            self.settings.amount_tolerance if amount_tolerance is None else amount_tolerance
        )
        self.match_rate_basis = MatchRateBasis(
            match_rate_basis or self.settings.match_rate_basis
        )

    def reconcile(
        self,
        internal: Sequence[Transaction],
        provider: Sequence[Transaction],
    ) -> ReconciliationResult:
        """
        Reconcile two transaction collections.

        Args:
            internal: Records from the internal system
            provider: Records from the payment provider

        Returns:
            ReconciliationResult with matches, one-sided records and stats
        """
        logger.info(
            "Starting reconciliation",
            internal=len(internal),
            provider=len(provider),
        )

        warnings: List[str] = []
        provider_index = self._build_reference_index(provider, "provider", warnings)
        internal_index = self._build_reference_index(internal, "internal", warnings)

        matched: List[TransactionMatch] = []
        internal_only: List[Transaction] = []

        for ref, internal_txn in internal_index.items():
            provider_txn = provider_index.pop(ref, None)
            if provider_txn is None:
                internal_only.append(internal_txn)
                continue

            matched.append(TransactionMatch(
                internal=internal_txn,
                provider=provider_txn,
                mismatches=find_field_mismatches(
                    internal_txn, provider_txn, self.amount_tolerance
                ),
            ))

        provider_only = list(provider_index.values())

        if self.match_rate_basis == MatchRateBasis.UNIQUE_REFERENCES:
            denominator = len(internal_index)
        else:
            denominator = len(internal)

        stats = ReconciliationStats(
            total_internal=len(internal),
            total_provider=len(provider),
            matched=len(matched),
            internal_only=len(internal_only),
            provider_only=len(provider_only),
            match_rate=safe_percentage(len(matched), denominator),
        )

        logger.info(
            "Reconciliation complete",
            mismatched=sum(1 for m in matched if m.mismatches),
            warnings=len(warnings),
            **stats.to_dict(),
        )

        return ReconciliationResult(
            matched=tuple(matched),
            internal_only=tuple(internal_only),
            provider_only=tuple(provider_only),
            stats=stats,
            warnings=tuple(warnings),
        )

    def _build_reference_index(
        self,
        transactions: Sequence[Transaction],
        side: str,
        warnings: List[str],
    ) -> Dict[str, Transaction]:
        """Index transactions by trimmed reference; later duplicates overwrite."""
        index: Dict[str, Transaction] = {}
        seen_twice: Dict[str, None] = {}
        skipped = 0

        for txn in transactions:
            ref = txn.key
            if not ref:
                skipped += 1
                continue
            if ref in index:
                seen_twice[ref] = None
            index[ref] = txn

        duplicates = list(seen_twice)

        if skipped:
            logger.warning("Records without reference skipped", side=side, count=skipped)
            warnings.append(f"{skipped} {side} record(s) without a reference were skipped")

        if duplicates:
            logger.warning(
                "Duplicate references, keeping last occurrence",
                side=side,
                count=len(duplicates),
                references=duplicates[:MAX_QUOTED_REFERENCES],
            )
            quoted = ", ".join(duplicates[:MAX_QUOTED_REFERENCES])
            if len(duplicates) > MAX_QUOTED_REFERENCES:
                quoted += ", ..."
            warnings.append(
                f"{len(duplicates)} duplicate {side} reference(s), last occurrence kept: {quoted}"
            )

        return index


def reconcile_transactions(
    internal: Sequence[Transaction],
    provider: Sequence[Transaction],
) -> Tuple[ReconciliationResult, float]:
    """Reconcile with default settings and return (result, processing_time_ms)."""
    start = time.perf_counter()
    result = TransactionMatcher().reconcile(internal, provider)
    return result, (time.perf_counter() - start) * 1000
