"""One-time construction of the long-lived Google API handles."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ledger.drive_api import GoogleDriveClient
from ledger.errors import ConfigurationError, LedgerError
from ledger.sheets_client import GoogleSheetsClient
from settings import LedgerSettings

logger = logging.getLogger(__name__)


@dataclass
class ClientInit:
    """Outcome of building a client at startup: the handle or the reason it failed."""

    name: str
    client: Optional[Any] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.client is not None

    def require(self) -> Any:
        if self.client is None:
            raise ConfigurationError(f"{self.name} not initialized: {self.error or 'unknown error'}")
        return self.client


@dataclass
class ServiceClients:
    sheets: ClientInit = field(default_factory=lambda: ClientInit("Google Sheets", error="not started"))
    drive: ClientInit = field(default_factory=lambda: ClientInit("Google Drive", error="not started"))

    def status(self) -> dict:
        return {
            "sheets": "connected" if self.sheets.ok else self.sheets.error,
            "drive": "connected" if self.drive.ok else self.drive.error,
        }


def _connect_sheets(settings: LedgerSettings) -> ClientInit:
    missing = settings.missing_sheet_settings()
    if missing:
        return ClientInit("Google Sheets", error="missing configuration: " + ", ".join(missing))
    try:
        client = GoogleSheetsClient.from_credentials(settings.spreadsheet_id, Path(settings.credential_path))
    except (LedgerError, OSError) as exc:
        logger.error("Failed to connect to Google Sheets: %s", exc)
        return ClientInit("Google Sheets", error=str(exc))
    logger.info("Connected to Google Sheets successfully")
    return ClientInit("Google Sheets", client=client)


def _connect_drive(settings: LedgerSettings) -> ClientInit:
    if not settings.credential_path:
        return ClientInit("Google Drive", error="missing configuration: LEDGER_CREDENTIALS_PATH")
    try:
        client = GoogleDriveClient.from_credentials(Path(settings.credential_path))
    except (LedgerError, OSError) as exc:
        logger.error("Failed to connect to Google Drive: %s", exc)
        return ClientInit("Google Drive", error=str(exc))
    logger.info("Connected to Google Drive successfully")
    return ClientInit("Google Drive", client=client)


def initialise_clients(settings: LedgerSettings) -> ServiceClients:
    """Build the Sheets and Drive handles once; failures are recorded, not raised."""

    return ServiceClients(sheets=_connect_sheets(settings), drive=_connect_drive(settings))


__all__ = ["ClientInit", "ServiceClients", "initialise_clients"]
