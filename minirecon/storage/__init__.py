"""Persistence of historical reconciliation outcomes."""

from .history import HistoryStore, InMemoryHistoryStore, JsonFileHistoryStore

__all__ = ["HistoryStore", "InMemoryHistoryStore", "JsonFileHistoryStore"]
