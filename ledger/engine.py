"""Inventory ledger reconciliation.

Every movement follows the same sequence of awaited remote calls::

    Validating -> Locating -> ComputingDelta -> WritingLog -> WritingQuantity -> Done

Client mistakes stop the sequence with a 4xx-class :class:`LedgerError`
before anything is written.  Once the log row is committed the only possible
failure is the quantity update, which is reported as
:class:`PartialWriteError` because the two writes are not atomic.

The engine holds no state between requests beyond the injected clients: the
inventory headers and rows are read again for every operation.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from ledger.blank_rows import find_insertion_row
from ledger.columns import ColumnIndexMap, column_letter, range_origin, resolve_columns
from ledger.errors import (
    ConfigurationError,
    InsufficientStockError,
    LedgerError,
    NotFoundError,
    PartialWriteError,
    RemoteServiceError,
    UploadError,
    ValidationError,
)
from ledger.formatting import (
    format_date,
    format_timestamp,
    local_now,
    parse_requested_quantity,
    parse_stock_quantity,
    sheet_number,
)
from ledger.records import (
    DATE_COUNTED_HEADER,
    DESCRIPTION,
    IMAGE_LINK_HEADER,
    INVENTORY_ENTRY_FIELDS,
    ISSUANCE_LAYOUT,
    ITEM_CODE,
    LOCATION,
    MOVEMENT_OPTIONAL_HEADERS,
    MOVEMENT_REQUIRED_HEADERS,
    NO_CODE_LAYOUT,
    QTY,
    RECEIPT_LAYOUT,
    RETURNABLE_ITEM,
    BandLayout,
    ImageUpload,
    InventoryRow,
    LedgerOutcome,
    TransactionRecord,
)
from settings import BandSettings, LedgerSettings

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Missing required fields"
NO_INVENTORY_MESSAGE = "No inventory data found"


class TabularStore(Protocol):
    def read_range(self, sheet_name: str, range_spec: str) -> List[List[Any]]: ...

    def append_rows(self, sheet_name: str, range_spec: str, rows: Sequence[Sequence[Any]]) -> None: ...

    def update_range(self, sheet_name: str, range_spec: str, rows: Sequence[Sequence[Any]]) -> None: ...


class FileStore(Protocol):
    def upload(self, filename: str, mime_type: str, content: bytes, folder_id: str) -> str: ...


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _require_fields(**values: Any) -> None:
    missing = [name for name, value in values.items() if _is_missing(value)]
    if missing:
        raise ValidationError(f"{MISSING_FIELDS_MESSAGE}: {', '.join(missing)}")


def _parse_entry(entry: Any) -> Dict[str, Any]:
    if isinstance(entry, (str, bytes)):
        try:
            entry = json.loads(entry)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Inventory entry is not valid JSON: {exc.msg}") from exc
    if not isinstance(entry, Mapping):
        raise ValidationError("Inventory entry must be a JSON object")
    missing = [name for name in INVENTORY_ENTRY_FIELDS if entry.get(name) is None]
    if missing:
        raise ValidationError(f"Inventory entry missing fields: {', '.join(missing)}")
    return dict(entry)


@dataclass
class _RowLock:
    """Lock for one (item code, location) pair and the number of tasks using it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class LedgerEngine:
    """Records inventory movements against a spreadsheet-backed store."""

    def __init__(
        self,
        store: TabularStore,
        settings: LedgerSettings,
        *,
        files: Optional[FileStore] = None,
        clock: Callable[[], datetime] = local_now,
        serialize_rows: bool = True,
    ) -> None:
        self._store = store
        self._files = files
        self._settings = settings
        self._clock = clock
        self._serialize_rows = serialize_rows
        self._row_locks: Dict[Tuple[str, str], _RowLock] = {}
        for layout, band in self._bands():
            if layout.width > band.width:
                logger.warning(
                    "Band %s%s:%s is narrower than the %s record (%d columns); trailing fields will be dropped",
                    band.first_column,
                    band.header_row,
                    band.last_column,
                    layout.name,
                    layout.width,
                )

    def _bands(self) -> List[Tuple[BandLayout, BandSettings]]:
        return [
            (ISSUANCE_LAYOUT, self._settings.issuance_band),
            (RECEIPT_LAYOUT, self._settings.receipt_band),
            (NO_CODE_LAYOUT, self._settings.no_code_band),
        ]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    async def add_with_image(self, entry: Any, image: Optional[ImageUpload] = None) -> Dict[str, Any]:
        """Append a new inventory row, uploading ``image`` first when given.

        A successful upload is not undone if the append fails afterwards; the
        orphaned link is logged.
        """

        fields = _parse_entry(entry)
        image_link = await self._upload(image) if image is not None else ""
        date_counted = format_date(self._clock())
        row = InventoryRow.from_entry(fields, date_counted, image_link)

        try:
            await self._call(
                self._store.append_rows,
                self._settings.inventory_tab,
                self._settings.inventory_range,
                [row.as_sheet_row()],
            )
        except LedgerError:
            if image_link:
                logger.warning("Inventory append failed; uploaded image %s is orphaned", image_link)
            raise

        logger.info("Added inventory row for %s at %s", row.item_code, row.location)
        data = dict(fields)
        data[DATE_COUNTED_HEADER] = date_counted
        data["Image"] = image_link
        return data

    async def search(self, keyword: Optional[str]) -> List[Dict[str, Any]]:
        """Return every inventory row with a cell containing ``keyword``."""

        if not keyword:
            raise ValidationError("Please provide a keyword to search")

        rows = await self._read_inventory()
        if not rows:
            raise NotFoundError(NO_INVENTORY_MESSAGE)

        headers, data_rows = rows[0], rows[1:]
        needle = keyword.lower()
        results = []
        for row in data_rows:
            if not any(cell not in (None, "") and needle in str(cell).lower() for cell in row):
                continue
            results.append(
                {
                    header: row[index] if index < len(row) and row[index] is not None else ""
                    for index, header in enumerate(headers)
                }
            )
        return results

    async def issue(
        self,
        item_code: Any,
        quantity: Any,
        actor: Any,
        activity: Any,
        location: Any,
        notes: Optional[str] = None,
    ) -> LedgerOutcome:
        _require_fields(itemCode=item_code, issuanceQty=quantity, issuedBy=actor, activity=activity, location=location)
        return await self._apply_movement(
            ISSUANCE_LAYOUT,
            self._settings.issuance_band,
            item_code=str(item_code),
            location=str(location),
            quantity=quantity,
            actor=str(actor),
            activity=str(activity),
            notes=notes,
            issuing=True,
        )

    async def receive(
        self,
        item_code: Any,
        quantity: Any,
        actor: Any,
        location: Any,
        notes: Optional[str] = None,
    ) -> LedgerOutcome:
        _require_fields(itemCode=item_code, receiptQty=quantity, receivedBy=actor, location=location)
        return await self._apply_movement(
            RECEIPT_LAYOUT,
            self._settings.receipt_band,
            item_code=str(item_code),
            location=str(location),
            quantity=quantity,
            actor=str(actor),
            activity="",
            notes=notes,
            issuing=False,
        )

    async def add_new_item_without_code(
        self,
        quantity: Any,
        location: Any,
        description: Any,
        returnable_item: Any,
        actor: Any,
        notes: Optional[str] = None,
        image: Optional[ImageUpload] = None,
    ) -> LedgerOutcome:
        """Log a receipt for an item that has no code yet.

        Only the no-code band is written; the inventory table is untouched.
        """

        _require_fields(
            receiptQty=quantity,
            location=location,
            description=description,
            returnableItem=returnable_item,
            receivedBy=actor,
        )
        requested = parse_requested_quantity(quantity, label="receipt quantity")
        image_link = await self._upload(image) if image is not None else ""

        record = TransactionRecord(
            timestamp=format_timestamp(self._clock()),
            quantity_delta=requested,
            location=str(location),
            description=str(description),
            returnable_item=str(returnable_item),
            actor=str(actor),
            notes=notes or "",
            image_link=image_link,
        )
        try:
            log_row = await self._write_log(NO_CODE_LAYOUT, self._settings.no_code_band, record)
        except LedgerError:
            if image_link:
                logger.warning("Log write failed; uploaded image %s is orphaned", image_link)
            raise
        return LedgerOutcome(record=record, layout=NO_CODE_LAYOUT, log_row=log_row)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(func, *args)

    @contextlib.asynccontextmanager
    async def _row_lock(self, item_code: str, location: str) -> AsyncIterator[None]:
        if not self._serialize_rows:
            yield
            return
        key = (item_code, location)
        entry = self._row_locks.get(key)
        if entry is None:
            entry = self._row_locks[key] = _RowLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if not entry.users:
                del self._row_locks[key]

    async def _read_inventory(self) -> List[List[Any]]:
        rows = await self._call(
            self._store.read_range, self._settings.inventory_tab, self._settings.inventory_range
        )
        return list(rows or [])

    async def _upload(self, image: ImageUpload) -> str:
        folder_id = self._settings.drive_folder_id
        if not folder_id:
            raise ConfigurationError("Drive folder ID is not configured")
        if self._files is None:
            raise ConfigurationError("Google Drive not initialized")
        try:
            return await self._call(self._files.upload, image.filename, image.mime_type, image.content, folder_id)
        except UploadError:
            raise
        except RemoteServiceError as exc:
            raise UploadError(str(exc)) from exc

    @staticmethod
    def _locate(
        data_rows: Sequence[Sequence[Any]],
        columns: ColumnIndexMap,
        item_code: str,
        location: str,
    ) -> Optional[Tuple[int, Sequence[Any]]]:
        match: Optional[Tuple[int, Sequence[Any]]] = None
        for index, row in enumerate(data_rows):
            if str(columns.cell(row, ITEM_CODE)) != item_code or str(columns.cell(row, LOCATION)) != location:
                continue
            if match is None:
                match = (index, row)
            else:
                logger.warning(
                    "Duplicate inventory rows for item %s at %s; using the first match",
                    item_code,
                    location,
                )
                break
        return match

    async def _write_log(self, layout: BandLayout, band: BandSettings, record: TransactionRecord) -> int:
        log_tab = self._settings.log_tab
        band_rows = await self._call(self._store.read_range, log_tab, band.fetch_range())
        row_number = find_insertion_row(band_rows or [], band.header_row, band.width)

        values = layout.row_for(record)
        values = (values + [""] * band.width)[: band.width]
        await self._call(self._store.update_range, log_tab, band.row_range(row_number), [values])
        logger.info("Logged %s movement in %s row %d", layout.name, log_tab, row_number)
        return row_number

    async def _apply_movement(
        self,
        layout: BandLayout,
        band: BandSettings,
        *,
        item_code: str,
        location: str,
        quantity: Any,
        actor: str,
        activity: str,
        notes: Optional[str],
        issuing: bool,
    ) -> LedgerOutcome:
        inventory_tab = self._settings.inventory_tab

        async with self._row_lock(item_code, location):
            rows = await self._read_inventory()
            if len(rows) < 2:
                raise NotFoundError(NO_INVENTORY_MESSAGE)

            columns = resolve_columns(rows[0], MOVEMENT_REQUIRED_HEADERS, MOVEMENT_OPTIONAL_HEADERS)
            match = self._locate(rows[1:], columns, item_code, location)
            if match is None:
                raise NotFoundError("Item not found in inventory for the specified location")
            data_index, row = match

            requested = parse_requested_quantity(
                quantity, label="issuance quantity" if issuing else "receipt quantity"
            )
            current = parse_stock_quantity(columns.cell(row, QTY))
            if issuing and current < requested:
                raise InsufficientStockError("Not enough quantity in inventory to fulfill issuance")
            new_quantity = current - requested if issuing else current + requested

            record = TransactionRecord(
                timestamp=format_timestamp(self._clock()),
                item_code=item_code,
                quantity_delta=requested,
                location=location,
                description=str(columns.cell(row, DESCRIPTION)),
                returnable_item=str(columns.cell(row, RETURNABLE_ITEM)),
                actor=actor,
                activity=activity,
                notes=notes or "",
                image_link=str(columns.cell(row, IMAGE_LINK_HEADER)),
            )
            log_row = await self._write_log(layout, band, record)

            origin_column, origin_row = range_origin(self._settings.inventory_range)
            inventory_row = origin_row + 1 + data_index
            quantity_cell = f"{column_letter(origin_column + columns[QTY])}{inventory_row}"
            outcome = LedgerOutcome(
                record=record,
                layout=layout,
                log_row=log_row,
                new_quantity=new_quantity,
                inventory_row=inventory_row,
            )
            try:
                await self._call(self._store.update_range, inventory_tab, quantity_cell, [[sheet_number(new_quantity)]])
            except RemoteServiceError as exc:
                logger.warning(
                    "%s of %s at %s logged in row %d but quantity cell %s was not updated: %s",
                    layout.name,
                    item_code,
                    location,
                    log_row,
                    quantity_cell,
                    exc,
                )
                raise PartialWriteError(
                    f"Transaction logged but inventory quantity update failed: {exc}", outcome
                ) from exc

        outcome.quantity_written = True
        logger.info(
            "%s of %s %s at %s: %s -> %s",
            layout.name,
            sheet_number(requested),
            item_code,
            location,
            sheet_number(current),
            sheet_number(new_quantity),
        )
        return outcome


__all__ = ["FileStore", "LedgerEngine", "TabularStore"]
