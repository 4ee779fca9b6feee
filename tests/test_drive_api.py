from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import httplib2
import pytest
from googleapiclient.errors import HttpError

from ledger.drive_api import DriveClientError, GoogleDriveClient, init_client
from ledger.errors import UploadError


class _FakeRequest:
    def __init__(self, callback):
        self._callback = callback

    def execute(self):
        return self._callback()


class _FakeFiles:
    def __init__(self, service: "_FakeDriveService") -> None:
        self._service = service

    def create(self, body: Dict[str, Any], media_body, fields: str):
        return _FakeRequest(lambda: self._service._create(body, media_body, fields))


class _FakeDriveService:
    def __init__(self, response: Dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.response = response if response is not None else {
            "id": "file-1",
            "name": "vest.jpg",
            "webViewLink": "https://drive.google.com/file/d/file-1/view",
        }
        self.error = error
        self.created: List[Dict[str, Any]] = []

    def files(self) -> _FakeFiles:
        return _FakeFiles(self)

    def _create(self, body, media_body, fields):
        self.created.append({"body": body, "media": media_body, "fields": fields})
        if self.error is not None:
            raise self.error
        return self.response


def test_upload_places_file_in_folder_and_returns_view_link() -> None:
    service = _FakeDriveService()
    client = GoogleDriveClient(service)

    link = client.upload("vest.jpg", "image/jpeg", b"\xff\xd8", "folder-9")

    assert link == "https://drive.google.com/file/d/file-1/view"
    created = service.created[0]
    assert created["body"] == {"name": "vest.jpg", "parents": ["folder-9"]}
    assert "webViewLink" in created["fields"]
    assert created["media"].mimetype() == "image/jpeg"


def test_upload_without_link_is_an_upload_error() -> None:
    client = GoogleDriveClient(_FakeDriveService(response={"id": "file-1"}))

    with pytest.raises(DriveClientError):
        client.upload("vest.jpg", "image/jpeg", b"data", "folder-9")


def test_http_error_is_wrapped() -> None:
    error = HttpError(httplib2.Response({"status": "403"}), b'{"error": {"message": "denied"}}')
    client = GoogleDriveClient(_FakeDriveService(error=error))

    with pytest.raises(UploadError):
        client.upload("vest.jpg", "image/jpeg", b"data", "folder-9")


def test_init_client_rejects_invalid_credentials(tmp_path: Path) -> None:
    path = tmp_path / "cred.json"
    path.write_text('{"type": "service_account"}', encoding="utf-8")

    with pytest.raises(DriveClientError):
        init_client(path)


def test_upload_executes_while_holding_client_lock() -> None:
    service = _FakeDriveService()
    client = GoogleDriveClient(service)
    held = []
    create = service._create

    def _create(body, media_body, fields):
        held.append(client._lock.locked())
        return create(body, media_body, fields)

    service._create = _create

    client.upload("vest.jpg", "image/jpeg", b"data", "folder-9")

    assert held == [True]
    assert not client._lock.locked()
