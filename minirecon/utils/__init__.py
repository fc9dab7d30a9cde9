"""Utility modules."""

from .clock import utc_now, to_iso, parse_timestamp

__all__ = ["utc_now", "to_iso", "parse_timestamp"]
