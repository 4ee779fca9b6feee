"""Service account credentials shared by the Sheets and Drive clients.

The key file is only ever read.  Keys pasted through environment tooling often
arrive with literal ``\\n`` sequences or CRLF line endings; those are turned
back into real newlines before the key reaches ``google.oauth2``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Sequence

from google.oauth2 import service_account

from ledger.errors import ConfigurationError

__all__ = [
    "CredentialsFileInvalidError",
    "REQUIRED_FIELDS",
    "load_service_account_data",
    "service_account_credentials",
]

REQUIRED_FIELDS: Sequence[str] = (
    "type",
    "project_id",
    "private_key_id",
    "private_key",
    "client_email",
    "client_id",
    "token_uri",
)


class CredentialsFileInvalidError(ConfigurationError):
    """The credential file is unreadable or is not a service account key."""


def _read_object(path: Path) -> Dict[str, object]:
    try:
        text = Path(path).read_text(encoding="utf-8-sig").strip()
    except OSError as exc:
        raise CredentialsFileInvalidError(f"Credentials file could not be read: {exc}") from exc
    if not text:
        raise CredentialsFileInvalidError("Service account JSON is empty.")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CredentialsFileInvalidError(f"JSON parse error: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise CredentialsFileInvalidError("Service account JSON must be an object.")
    return payload


def load_service_account_data(path: Path) -> Dict[str, object]:
    """Return the validated key file contents with a normalised ``private_key``."""

    data = _read_object(path)
    missing = {
        name for name in REQUIRED_FIELDS
        if not isinstance(data.get(name), str) or not str(data[name]).strip()
    }
    if data.get("type") != "service_account":
        missing.add("type")
    if missing:
        raise CredentialsFileInvalidError(f"JSON missing fields: {', '.join(sorted(missing))}")

    key = str(data["private_key"]).replace("\r\n", "\n").replace("\r", "\n").replace("\\n", "\n")
    data["private_key"] = key if key.endswith("\n") else key + "\n"
    return data


def service_account_credentials(path: Path, scopes: Sequence[str]) -> service_account.Credentials:
    """Build scoped credentials from the key file at ``path``."""

    info = load_service_account_data(path)
    try:
        return service_account.Credentials.from_service_account_info(info, scopes=list(scopes))
    except ValueError as exc:
        raise CredentialsFileInvalidError(f"Service account key rejected: {exc}") from exc
