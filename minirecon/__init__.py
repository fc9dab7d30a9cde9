"""Reference-keyed transaction reconciliation with batch runs and analytics."""

__version__ = "1.0.0"
