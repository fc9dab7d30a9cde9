"""Distribution statistics over transactions and mismatches."""

import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..errors import TransactionDataError
from ..models import (
    Transaction,
    TransactionMatch,
    AmountBucket,
    StatusBreakdown,
    MismatchPattern,
    safe_percentage,
)
from ..reconciliation.matcher import parse_amount

# (lower bound inclusive, upper bound exclusive, label)
AMOUNT_BUCKETS = (
    (0, 10, "$0 - $10"),
    (10, 50, "$10 - $50"),
    (50, 100, "$50 - $100"),
    (100, 500, "$100 - $500"),
    (500, 1000, "$500 - $1K"),
    (1000, 5000, "$1K - $5K"),
    (5000, math.inf, "$5K+"),
)

UNKNOWN_STATUS = "unknown"
MAX_PATTERN_EXAMPLES = 3


def absolute_amount(txn: Transaction) -> Optional[float]:
    """abs(amount), or None when the amount is absent or not a finite number."""
    if txn.amount is None:
        return None
    try:
        value = abs(parse_amount(txn.amount, txn.key))
    except TransactionDataError:
        return None
    return value if math.isfinite(value) else None


def amount_distribution(transactions: Sequence[Transaction]) -> List[AmountBucket]:
    """
    Histogram of absolute amounts over fixed ranges.

    Percentages are relative to all transactions given, including those without
    a usable amount. Empty buckets are left out.
    """
    amounts = [a for a in (absolute_amount(t) for t in transactions) if a is not None]
    edges = np.array([lower for lower, _, _ in AMOUNT_BUCKETS[1:]], dtype=float)
    indices = np.digitize(np.array(amounts, dtype=float), edges)
    counts = np.bincount(indices, minlength=len(AMOUNT_BUCKETS))

    total = len(transactions)
    return [
        AmountBucket(
            range=label,
            count=int(count),
            percentage=safe_percentage(int(count), total),
        )
        for (_, _, label), count in zip(AMOUNT_BUCKETS, counts)
        if count > 0
    ]


def status_breakdown(transactions: Sequence[Transaction]) -> List[StatusBreakdown]:
    """Count, share and average absolute amount per status, most frequent first."""
    totals: Dict[str, List[float]] = {}
    for txn in transactions:
        status = txn.status or UNKNOWN_STATUS
        entry = totals.setdefault(status, [0, 0.0])
        entry[0] += 1
        entry[1] += absolute_amount(txn) or 0.0

    total = len(transactions)
    breakdown = [
        StatusBreakdown(
            status=status,
            count=int(count),
            percentage=safe_percentage(count, total),
            average_amount=amount_sum / count if count else 0.0,
        )
        for status, (count, amount_sum) in totals.items()
    ]
    return sorted(breakdown, key=lambda s: s.count, reverse=True)


def mismatch_patterns(matches: Sequence[TransactionMatch]) -> List[MismatchPattern]:
    """Mismatch frequency per field, most frequent first, with a few examples."""
    counts: Dict[str, int] = {}
    examples: Dict[str, Dict[str, None]] = {}

    for match in matches:
        for mismatch in match.mismatches:
            counts[mismatch.field] = counts.get(mismatch.field, 0) + 1
            examples.setdefault(mismatch.field, {})[
                f"{mismatch.internal_value} vs {mismatch.provider_value}"
            ] = None

    total = sum(counts.values())
    patterns = [
        MismatchPattern(
            field=name,
            frequency=count,
            percentage=safe_percentage(count, total),
            examples=tuple(list(examples[name])[:MAX_PATTERN_EXAMPLES]),
        )
        for name, count in counts.items()
    ]
    return sorted(patterns, key=lambda p: p.frequency, reverse=True)
