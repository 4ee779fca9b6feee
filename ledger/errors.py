"""Error taxonomy shared by the ledger engine and the HTTP layer."""
from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base error for every failure the ledger reports to callers."""

    kind = "ledger_error"


class ValidationError(LedgerError):
    """Raised when client input is missing or malformed."""

    kind = "validation"


class InsufficientStockError(LedgerError):
    """Raised when an issuance asks for more than the current stock."""

    kind = "insufficient_stock"


class NotFoundError(LedgerError):
    """Raised when the inventory table or the requested row is missing."""

    kind = "not_found"


class SchemaError(LedgerError):
    """Raised when a sheet header row lacks the columns the ledger needs."""

    kind = "schema"


class ConfigurationError(LedgerError):
    """Raised when required settings or clients are unavailable."""

    kind = "configuration"


class RemoteServiceError(LedgerError):
    """Raised when a Google API call fails."""

    kind = "remote_service"


class UploadError(RemoteServiceError):
    """Raised when an image upload to Drive fails."""

    kind = "upload"


class PartialWriteError(RemoteServiceError):
    """The log row was written but the inventory quantity was not updated.

    The ledger and the running quantity now disagree.  ``outcome`` holds the
    transaction that was committed so an operator can reconcile by hand.
    """

    kind = "partial_write"

    def __init__(self, message: str, outcome: Optional[object] = None) -> None:
        super().__init__(message)
        self.outcome = outcome


__all__ = [
    "ConfigurationError",
    "InsufficientStockError",
    "LedgerError",
    "NotFoundError",
    "PartialWriteError",
    "RemoteServiceError",
    "SchemaError",
    "UploadError",
    "ValidationError",
]
