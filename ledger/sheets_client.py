"""Google Sheets client used as the ledger's tabular store.

All reads and writes go through three calls: ``read_range``, ``append_rows``
and ``update_range``.  Worksheet titles are always quoted according to A1
rules so names such as ``Form Responses`` never trip the range parser, and
every ``HttpError`` surfaces as :class:`SheetsApiResponseError`.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, List, Sequence

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ledger.errors import RemoteServiceError
from ledger.google_credentials import CredentialsFileInvalidError, service_account_credentials

logger = logging.getLogger(__name__)

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/spreadsheets",)
VALUE_INPUT_OPTION = "USER_ENTERED"


class SheetsClientError(RemoteServiceError):
    """Base error raised for Sheets API failures."""


class SheetsCredentialsError(SheetsClientError):
    """Raised when the provided credential file is invalid or missing."""


class SheetsApiResponseError(SheetsClientError):
    """Raised when the Google API returns an error response."""


def _normalise_title(title: str) -> str:
    """Return a worksheet title quoted according to A1 notation rules."""

    safe = (title or "").strip()
    if len(safe) >= 2 and safe[0] == safe[-1] and safe[0] in {"'", '"'}:
        safe = safe[1:-1].replace("''", "'")
    if not safe:
        raise SheetsClientError("Worksheet title must not be empty.")
    safe = safe.replace("'", "''")
    return f"'{safe}'"


def a1_range(sheet_name: str, range_spec: str) -> str:
    return f"{_normalise_title(sheet_name)}!{range_spec}"


def build_service(credential_path: Path, scopes: Sequence[str] = SCOPES):
    """Construct a Sheets v4 service from a service account file."""

    try:
        credentials = service_account_credentials(credential_path, scopes)
    except CredentialsFileInvalidError as exc:
        raise SheetsCredentialsError(str(exc)) from exc

    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


class GoogleSheetsClient:
    """Concrete helper that speaks to Google Sheets using the REST API."""

    def __init__(self, spreadsheet_id: str, *, service) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._service = service
        self._lock = threading.Lock()

    @classmethod
    def from_credentials(cls, spreadsheet_id: str, credential_path: Path) -> "GoogleSheetsClient":
        return cls(spreadsheet_id, service=build_service(credential_path))

    def _execute(self, request) -> Any:
        # one httplib2 connection per service; it must not be shared across threads
        with self._lock:
            return request.execute()

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet_id

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def read_range(self, sheet_name: str, range_spec: str) -> List[List[Any]]:
        """Return the rows of ``range_spec``; missing trailing cells are omitted."""

        target = a1_range(sheet_name, range_spec)
        try:
            response = self._execute(
                self._service.spreadsheets()
                .values()
                .get(spreadsheetId=self._spreadsheet_id, range=target, majorDimension="ROWS")
            )
        except HttpError as exc:
            raise SheetsApiResponseError(f"Failed to read {target}: {exc}") from exc
        return [list(row) for row in response.get("values", [])]

    def append_rows(self, sheet_name: str, range_spec: str, rows: Sequence[Sequence[Any]]) -> None:
        """Append ``rows`` after the last table row detected in ``range_spec``."""

        target = a1_range(sheet_name, range_spec)
        body = {"values": [list(row) for row in rows]}
        try:
            self._execute(
                self._service.spreadsheets()
                .values()
                .append(
                    spreadsheetId=self._spreadsheet_id,
                    range=target,
                    valueInputOption=VALUE_INPUT_OPTION,
                    body=body,
                )
            )
        except HttpError as exc:
            raise SheetsApiResponseError(f"Failed to append to {target}: {exc}") from exc
        logger.debug("Appended %d row(s) to %s", len(rows), target)

    def update_range(self, sheet_name: str, range_spec: str, rows: Sequence[Sequence[Any]]) -> None:
        """Overwrite the cells of ``range_spec`` with ``rows``."""

        target = a1_range(sheet_name, range_spec)
        body = {"values": [list(row) for row in rows]}
        try:
            self._execute(
                self._service.spreadsheets()
                .values()
                .update(
                    spreadsheetId=self._spreadsheet_id,
                    range=target,
                    valueInputOption=VALUE_INPUT_OPTION,
                    body=body,
                )
            )
        except HttpError as exc:
            raise SheetsApiResponseError(f"Failed to update {target}: {exc}") from exc
        logger.debug("Updated %s", target)


__all__ = [
    "GoogleSheetsClient",
    "SheetsApiResponseError",
    "SheetsClientError",
    "SheetsCredentialsError",
    "a1_range",
    "build_service",
]
