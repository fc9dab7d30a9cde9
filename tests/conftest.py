"""
Shared fixtures for the reconciliation test suite.
"""

import os
import tempfile

# Keep logs, .env lookups and the history cache out of the user's home
os.environ.setdefault("MINIRECON_BASE_PATH", tempfile.mkdtemp(prefix="minirecon-tests-"))

from datetime import datetime, timedelta, timezone

import pytest

from minirecon.config import Settings
from minirecon.models import (
    Transaction,
    ParsedFile,
    FilePair,
    HistoricalRecord,
    RecordMetadata,
    SingleOutcome,
    ReconciliationResult,
    ReconciliationStats,
)


def make_txn(reference, amount=100.0, status="completed", date="2024-01-15", **extra):
    return Transaction(
        reference=reference,
        amount=amount,
        status=status,
        date=date,
        extra=extra,
    )


def make_file(name, transactions):
    return ParsedFile(
        name=name,
        data=list(transactions),
        headers=["transaction_reference", "amount", "status", "date"],
        size=len(transactions) * 64,
    )


def make_record(match_rate, days_ago=0, total_internal=100, processing_time_ms=10.0, now=None):
    """Historical single-pair record with the given headline match rate."""
    now = now or datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    matched = int(round(total_internal * match_rate / 100))
    stats = ReconciliationStats(
        total_internal=total_internal,
        total_provider=total_internal,
        matched=matched,
        internal_only=total_internal - matched,
        provider_only=total_internal - matched,
        match_rate=match_rate,
    )
    return HistoricalRecord(
        outcome=SingleOutcome(ReconciliationResult(stats=stats)),
        metadata=RecordMetadata(
            processing_time_ms=processing_time_ms,
            internal_file_name="internal.csv",
            provider_file_name="provider.csv",
        ),
        timestamp=now - timedelta(days=days_ago),
    )


@pytest.fixture
def settings():
    """Default settings, independent of any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def internal_transactions():
    return [
        make_txn("TXN001", 100.00),
        make_txn("TXN002", 250.00),
        make_txn("TXN003", 75.25),
        make_txn("TXN004", 100.505),
    ]


@pytest.fixture
def provider_transactions():
    return [
        make_txn("TXN001", 100.00),
        make_txn("TXN002", 255.00),
        make_txn("TXN004", 100.50),
        make_txn("TXN009", 42.00),
    ]


@pytest.fixture
def file_pair(internal_transactions, provider_transactions):
    return FilePair(
        internal_file=make_file("internal.csv", internal_transactions),
        provider_file=make_file("provider.csv", provider_transactions),
    )
