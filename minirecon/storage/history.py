"""
History store for reconciliation outcomes.

Records are kept in memory while the store is open and, for the file-backed
store, mirrored to a local JSON cache after every change. The cache is capped
at ``max_history_records``; the oldest records are evicted first.
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..config import get_settings
from ..errors import HistoryStoreError
from ..models import HistoricalRecord, RecordMetadata, Outcome, TimeRange
from ..utils.clock import utc_now

logger = structlog.get_logger()

EXPORT_FORMAT_VERSION = "1.1.0"


class HistoryStore(ABC):
    """
    Repository of historical records with an explicit lifecycle.

    open() -> append / records / query_by_time_range / clear -> close()
    """

    def __init__(self, max_records: Optional[int] = None):
        self.settings = get_settings()
        self.max_records = max_records or self.settings.max_history_records
        self._records: List[HistoricalRecord] = []
        self._is_open = False

    @abstractmethod
    def _load(self) -> List[HistoricalRecord]:
        """Read persisted records."""

    @abstractmethod
    def _save(self, records: List[HistoricalRecord]) -> None:
        """Persist the full record list."""

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> "HistoryStore":
        if not self._is_open:
            self._records = sorted(self._load(), key=lambda r: r.timestamp)
            self._is_open = True
            logger.info("History store opened", store=type(self).__name__, records=len(self._records))
        return self

    def close(self) -> None:
        self._is_open = False
        self._records = []

    def __enter__(self) -> "HistoryStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_open(self) -> None:
        if not self._is_open:
            raise HistoryStoreError(f"{type(self).__name__} is not open")

    def append(self, record: HistoricalRecord) -> HistoricalRecord:
        """Add a record, evicting the oldest ones beyond the cap."""
        self._require_open()
        self._records.append(record)
        self._records.sort(key=lambda r: r.timestamp)
        evicted = len(self._records) - self.max_records
        if evicted > 0:
            del self._records[:evicted]
        self._save(self._records)

        logger.info(
            "History record appended",
            record_id=record.id,
            kind=record.kind.value,
            evicted=max(evicted, 0),
        )
        return record

    def save_outcome(
        self,
        outcome: Outcome,
        metadata: RecordMetadata,
        timestamp: Optional[datetime] = None,
    ) -> HistoricalRecord:
        """Wrap an outcome in a new record and append it."""
        record = HistoricalRecord(
            outcome=outcome,
            metadata=metadata,
            timestamp=timestamp or utc_now(),
        )
        return self.append(record)

    def records(self) -> List[HistoricalRecord]:
        """All records, oldest first."""
        self._require_open()
        return list(self._records)

    def latest(self) -> Optional[HistoricalRecord]:
        self._require_open()
        return self._records[-1] if self._records else None

    def query_by_time_range(
        self,
        start: Optional[datetime],
        end: Optional[datetime] = None,
    ) -> List[HistoricalRecord]:
        """Records with start <= timestamp <= end; open bounds when None."""
        self._require_open()
        return [
            r for r in self._records
            if (start is None or r.timestamp >= start)
            and (end is None or r.timestamp <= end)
        ]

    def query(self, time_range: TimeRange, now: Optional[datetime] = None) -> List[HistoricalRecord]:
        """Records inside a named look-back window."""
        return self.query_by_time_range(TimeRange(time_range).cutoff(now or utc_now()))

    def clear(self) -> None:
        self._require_open()
        count = len(self._records)
        self._records = []
        self._save(self._records)
        logger.info("History cleared", removed=count)

    def stats(self) -> Dict[str, Any]:
        self._require_open()
        return {
            "record_count": len(self._records),
            "oldest_record": self._records[0].timestamp.isoformat() if self._records else None,
            "newest_record": self._records[-1].timestamp.isoformat() if self._records else None,
        }

    def export_json(self) -> str:
        """Backup document with every record."""
        self._require_open()
        return json.dumps({
            "version": EXPORT_FORMAT_VERSION,
            "exported_at": utc_now().isoformat(),
            "records": [r.to_dict() for r in self._records],
        }, indent=2, ensure_ascii=False)

    def import_json(self, text: str) -> int:
        """
        Replace the history with the records of a backup document.

        Malformed records are skipped. Returns the number of records kept.
        """
        self._require_open()
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise HistoryStoreError(f"Backup is not valid JSON: {e}") from e

        raw_records = data.get("records") if isinstance(data, dict) else None
        if not isinstance(raw_records, list):
            raise HistoryStoreError("Backup has no records list")

        imported = []
        for raw in raw_records:
            try:
                imported.append(HistoricalRecord.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping invalid history record", error=str(e))

        imported.sort(key=lambda r: r.timestamp)
        self._records = imported[-self.max_records:]
        self._save(self._records)

        logger.info("History imported", records=len(self._records), skipped=len(raw_records) - len(imported))
        return len(self._records)


class InMemoryHistoryStore(HistoryStore):
    """History that lives only as long as the process."""

    def _load(self) -> List[HistoricalRecord]:
        return []

    def _save(self, records: List[HistoricalRecord]) -> None:
        pass


class JsonFileHistoryStore(HistoryStore):
    """History mirrored to a local JSON file."""

    def __init__(self, path: Optional[Path] = None, max_records: Optional[int] = None):
        super().__init__(max_records=max_records)
        self.path = Path(path or self.settings.history_path)

    def _load(self) -> List[HistoricalRecord]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise HistoryStoreError(f"Cannot read history cache {self.path}: {e}") from e

        raw_records = data.get("records") if isinstance(data, dict) else None
        if not isinstance(raw_records, list):
            raise HistoryStoreError(f"History cache {self.path} has no records list")

        try:
            return [HistoricalRecord.from_dict(raw) for raw in raw_records]
        except (KeyError, TypeError, ValueError) as e:
            raise HistoryStoreError(f"Invalid record in history cache {self.path}: {e}") from e

    def _save(self, records: List[HistoricalRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        data = {
            "version": EXPORT_FORMAT_VERSION,
            "records": [r.to_dict() for r in records],
        }
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise HistoryStoreError(f"Cannot write history cache {self.path}: {e}") from e
