"""Storeroom ledger: inventory movements recorded into Google Sheets."""

__version__ = "1.0.0"
