"""Application configuration helpers for the storeroom ledger."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from ledger.columns import column_index
from ledger.errors import ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_INVENTORY_TAB = "Inventory"
DEFAULT_INVENTORY_RANGE = "A:J"
DEFAULT_LOG_TAB = "Form Responses"
DEFAULT_CORS_ORIGINS = "http://localhost:3000"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 4000

DEFAULT_BANDS: Dict[str, Dict[str, object]] = {
    "issuance": {"first_column": "A", "last_column": "J", "header_row": 1},
    "receipt": {"first_column": "K", "last_column": "S", "header_row": 2},
    "no_code": {"first_column": "T", "last_column": "AA", "header_row": 1},
}


@dataclass
class BandSettings:
    """Column band of the log sheet holding one sub-ledger."""

    first_column: str
    last_column: str
    header_row: int = 1

    @property
    def width(self) -> int:
        return column_index(self.last_column) - column_index(self.first_column) + 1

    def fetch_range(self) -> str:
        """Range covering the band from its header row to the end of the sheet."""

        return f"{self.first_column}{self.header_row}:{self.last_column}"

    def row_range(self, row: int) -> str:
        return f"{self.first_column}{row}:{self.last_column}{row}"


@dataclass
class LedgerSettings:
    credential_path: str = ""
    spreadsheet_id: str = ""
    drive_folder_id: str = ""
    inventory_tab: str = DEFAULT_INVENTORY_TAB
    inventory_range: str = DEFAULT_INVENTORY_RANGE
    log_tab: str = DEFAULT_LOG_TAB
    issuance_band: BandSettings = field(
        default_factory=lambda: BandSettings(**DEFAULT_BANDS["issuance"])  # type: ignore[arg-type]
    )
    receipt_band: BandSettings = field(
        default_factory=lambda: BandSettings(**DEFAULT_BANDS["receipt"])  # type: ignore[arg-type]
    )
    no_code_band: BandSettings = field(
        default_factory=lambda: BandSettings(**DEFAULT_BANDS["no_code"])  # type: ignore[arg-type]
    )
    cors_origins: List[str] = field(default_factory=lambda: [DEFAULT_CORS_ORIGINS])
    log_level: str = "INFO"
    log_file: str = ""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def missing_sheet_settings(self) -> List[str]:
        """Names of the settings required to reach the spreadsheet that are unset."""

        missing = []
        if not self.credential_path:
            missing.append("LEDGER_CREDENTIALS_PATH")
        if not self.spreadsheet_id:
            missing.append("LEDGER_SPREADSHEET_ID")
        return missing


def _env(environ: Mapping[str, str], *names: str, default: str = "") -> str:
    for name in names:
        value = environ.get(name)
        if value is not None and value.strip():
            return value.strip()
    return default


def _load_settings_file(path: str) -> Dict[str, object]:
    if not path:
        return {}
    if not os.path.exists(path):
        raise ConfigurationError(f"Settings file not found: {path}")
    with open(path, "r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Settings file is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("Settings file must contain a JSON object")
    return data


def _parse_band(name: str, data: object) -> BandSettings:
    defaults = dict(DEFAULT_BANDS[name])
    if isinstance(data, Mapping):
        defaults.update({key: value for key, value in data.items() if key in defaults})
    try:
        band = BandSettings(
            first_column=str(defaults["first_column"]).strip().upper(),
            last_column=str(defaults["last_column"]).strip().upper(),
            header_row=int(defaults["header_row"]),  # type: ignore[arg-type]
        )
        width = band.width
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid band configuration for {name}: {exc}") from exc
    if band.header_row < 1 or width < 1:
        raise ConfigurationError(f"Invalid band configuration for {name}")
    return band


def _parse_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _parse_port(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid port %r", raw)
        return DEFAULT_PORT


def load_settings(environ: Optional[Mapping[str, str]] = None) -> LedgerSettings:
    """Build :class:`LedgerSettings` from the environment and optional JSON file.

    Environment variables win for identifiers and credentials; the JSON file
    referenced by ``LEDGER_SETTINGS_PATH`` describes the sheet layout.
    """

    env = os.environ if environ is None else environ
    data = _load_settings_file(_env(env, "LEDGER_SETTINGS_PATH"))
    bands = data.get("bands", {})
    if not isinstance(bands, Mapping):
        bands = {}

    return LedgerSettings(
        credential_path=_env(env, "LEDGER_CREDENTIALS_PATH", "GS_CRED"),
        spreadsheet_id=_env(env, "LEDGER_SPREADSHEET_ID", "SH_ID"),
        drive_folder_id=_env(env, "LEDGER_DRIVE_FOLDER_ID", "DRIVE_FOLDER_ID"),
        inventory_tab=str(data.get("inventory_tab") or DEFAULT_INVENTORY_TAB),
        inventory_range=str(data.get("inventory_range") or DEFAULT_INVENTORY_RANGE),
        log_tab=str(data.get("log_tab") or DEFAULT_LOG_TAB),
        issuance_band=_parse_band("issuance", bands.get("issuance")),
        receipt_band=_parse_band("receipt", bands.get("receipt")),
        no_code_band=_parse_band("no_code", bands.get("no_code")),
        cors_origins=_parse_origins(_env(env, "LEDGER_CORS_ORIGINS", default=DEFAULT_CORS_ORIGINS)),
        log_level=_env(env, "LEDGER_LOG_LEVEL", "LOG_LEVEL", default="INFO").upper(),
        log_file=_env(env, "LEDGER_LOG_FILE"),
        host=_env(env, "LEDGER_HOST", default=DEFAULT_HOST),
        port=_parse_port(_env(env, "LEDGER_PORT", "PORT", default=str(DEFAULT_PORT))),
    )


__all__ = [
    "BandSettings",
    "DEFAULT_BANDS",
    "DEFAULT_INVENTORY_RANGE",
    "DEFAULT_INVENTORY_TAB",
    "DEFAULT_LOG_TAB",
    "LedgerSettings",
    "load_settings",
]
