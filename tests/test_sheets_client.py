from __future__ import annotations

import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import httplib2
import pytest
from googleapiclient.errors import HttpError

from ledger.errors import RemoteServiceError
from ledger.sheets_client import (
    GoogleSheetsClient,
    SheetsApiResponseError,
    SheetsClientError,
    SheetsCredentialsError,
    a1_range,
    build_service,
)


class _FakeRequest:
    def __init__(self, callback):
        self._callback = callback

    def execute(self):
        return self._callback()


class _FakeValues:
    def __init__(self, service: "_FakeService") -> None:
        self._service = service

    def get(self, spreadsheetId: str, range: str, majorDimension: str = "ROWS"):  # noqa: N803 - API compatibility
        return _FakeRequest(lambda: self._service._record("get", spreadsheetId, range, None))

    def append(self, spreadsheetId: str, range: str, valueInputOption: str, body: Dict[str, Any]):  # noqa: N803
        return _FakeRequest(lambda: self._service._record("append", spreadsheetId, range, body, valueInputOption))

    def update(self, spreadsheetId: str, range: str, valueInputOption: str, body: Dict[str, Any]):  # noqa: N803
        return _FakeRequest(lambda: self._service._record("update", spreadsheetId, range, body, valueInputOption))


class _FakeSpreadsheets:
    def __init__(self, service: "_FakeService") -> None:
        self._service = service

    def values(self) -> _FakeValues:  # noqa: D401 - API compatibility
        return _FakeValues(self._service)


class _FakeService:
    def __init__(self, values: List[List[Any]] | None = None, error: Exception | None = None) -> None:
        self.values = values
        self.error = error
        self.requests: List[Dict[str, Any]] = []

    def spreadsheets(self) -> _FakeSpreadsheets:  # noqa: D401 - API compatibility
        return _FakeSpreadsheets(self)

    def _record(self, method, spreadsheet_id, range_spec, body, value_input_option=None):
        self.requests.append(
            {
                "method": method,
                "spreadsheetId": spreadsheet_id,
                "range": range_spec,
                "body": body,
                "valueInputOption": value_input_option,
            }
        )
        if self.error is not None:
            raise self.error
        if method == "get":
            return {} if self.values is None else {"values": self.values}
        return {}


def _http_error(status: int = 500) -> HttpError:
    response = httplib2.Response({"status": str(status)})
    return HttpError(response, b'{"error": {"message": "backend failure"}}')


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Inventory", "'Inventory'!A:J"),
        ("Form Responses", "'Form Responses'!A:J"),
        ("Bob's Stock", "'Bob''s Stock'!A:J"),
        ("'Inventory'", "'Inventory'!A:J"),
    ],
)
def test_a1_range_quotes_titles(title, expected):
    assert a1_range(title, "A:J") == expected


def test_a1_range_rejects_blank_title():
    with pytest.raises(SheetsClientError):
        a1_range("  ", "A:J")


def test_read_range_returns_rows_as_lists() -> None:
    service = _FakeService([["Location", "Qty"], ["W1", "10"]])
    client = GoogleSheetsClient("sheet-1", service=service)

    rows = client.read_range("Inventory", "A:J")

    assert rows == [["Location", "Qty"], ["W1", "10"]]
    assert service.requests[0]["range"] == "'Inventory'!A:J"
    assert service.requests[0]["spreadsheetId"] == "sheet-1"


def test_read_range_of_empty_sheet_returns_no_rows() -> None:
    client = GoogleSheetsClient("sheet-1", service=_FakeService())

    assert client.read_range("Inventory", "A:J") == []


def test_writes_use_user_entered_values() -> None:
    service = _FakeService()
    client = GoogleSheetsClient("sheet-1", service=service)

    client.append_rows("Inventory", "A:J", [("W1", "X1", 5)])
    client.update_range("Inventory", "E2", [[6]])

    append, update = service.requests
    assert append["method"] == "append"
    assert append["body"] == {"values": [["W1", "X1", 5]]}
    assert append["valueInputOption"] == "USER_ENTERED"
    assert update["range"] == "'Inventory'!E2"
    assert update["body"] == {"values": [[6]]}


def test_http_errors_become_remote_service_errors() -> None:
    client = GoogleSheetsClient("sheet-1", service=_FakeService(error=_http_error()))

    with pytest.raises(SheetsApiResponseError) as excinfo:
        client.update_range("Form Responses", "A2:J2", [["x"]])

    assert isinstance(excinfo.value, RemoteServiceError)
    assert "'Form Responses'!A2:J2" in str(excinfo.value)


def test_build_service_rejects_invalid_credentials(tmp_path: Path) -> None:
    path = tmp_path / "cred.json"
    path.write_text("{}", encoding="utf-8")

    with pytest.raises(SheetsCredentialsError):
        build_service(path)


class _OverlapTrackingService(_FakeService):
    """Counts how many requests are executing at the same moment."""

    def __init__(self) -> None:
        super().__init__(values=[["Location"]])
        self.active = 0
        self.peak = 0
        self._guard = threading.Lock()

    def _record(self, *args, **kwargs):
        with self._guard:
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(0.02)
        with self._guard:
            self.active -= 1
        return super()._record(*args, **kwargs)


def test_requests_from_worker_threads_never_overlap() -> None:
    service = _OverlapTrackingService()
    client = GoogleSheetsClient("sheet-1", service=service)

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: client.read_range("Inventory", "A:J"), range(4)))

    assert results == [[["Location"]]] * 4
    assert len(service.requests) == 4
    assert service.peak == 1
