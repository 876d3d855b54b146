"""Bonus Ledger: bookkeeping for matched-betting bonus operations."""

__version__ = "1.0.0"
