"""Google Drive helpers for storing inventory images."""
from __future__ import annotations

import io
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from ledger.errors import UploadError
from ledger.google_credentials import CredentialsFileInvalidError, service_account_credentials

logger = logging.getLogger(__name__)

DEFAULT_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
UPLOAD_FIELDS = "id, name, webViewLink, webContentLink"


class DriveClientError(UploadError):
    """Raised when Drive rejects an upload or cannot be reached."""


def init_client(credential_path: Path, scopes: Optional[List[str]] = None):
    """Initialise a Drive v3 service from a service account file."""

    scopes = scopes or DEFAULT_SCOPES
    try:
        credentials = service_account_credentials(credential_path, scopes)
    except CredentialsFileInvalidError as exc:
        raise DriveClientError(str(exc)) from exc
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


class GoogleDriveClient:
    """Uploads binary blobs into a Drive folder and returns share links."""

    def __init__(self, service) -> None:
        self._service = service
        self._lock = threading.Lock()

    @classmethod
    def from_credentials(cls, credential_path: Path) -> "GoogleDriveClient":
        return cls(init_client(credential_path))

    def upload_file(self, filename: str, mime_type: str, content: bytes, folder_id: str) -> Dict:
        """Upload ``content`` into ``folder_id`` and return the created file resource."""

        media = MediaIoBaseUpload(
            io.BytesIO(content),
            mimetype=mime_type or "application/octet-stream",
            resumable=False,
        )
        metadata = {"name": filename, "parents": [folder_id]}
        request = self._service.files().create(body=metadata, media_body=media, fields=UPLOAD_FIELDS)
        try:
            with self._lock:
                return request.execute()
        except HttpError as exc:
            raise DriveClientError(f"Failed to upload {filename}: {exc}") from exc

    def upload(self, filename: str, mime_type: str, content: bytes, folder_id: str) -> str:
        """Upload ``content`` and return its ``webViewLink``."""

        created = self.upload_file(filename, mime_type, content, folder_id)
        link = created.get("webViewLink")
        if not link:
            raise DriveClientError(f"Drive did not return a link for {filename}")
        logger.info("Uploaded %s to Drive as %s", filename, created.get("id"))
        return link


__all__ = ["DriveClientError", "GoogleDriveClient", "init_client"]
