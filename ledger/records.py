"""Row shapes written to the inventory and log sheets."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ledger.formatting import sheet_number

# Order of the inventory sheet columns written by ``add_with_image``.
INVENTORY_ENTRY_FIELDS: Tuple[str, ...] = (
    "Location",
    "Item Code",
    "Description",
    "UOM",
    "Qty",
    "Condition",
    "Returnable Item",
    "Category",
)
DATE_COUNTED_HEADER = "Date Counted"
IMAGE_LINK_HEADER = "Image Link"

LOCATION = "Location"
ITEM_CODE = "Item Code"
DESCRIPTION = "Description"
QTY = "Qty"
RETURNABLE_ITEM = "Returnable Item"

MOVEMENT_REQUIRED_HEADERS: Tuple[str, ...] = (LOCATION, ITEM_CODE, DESCRIPTION, QTY, RETURNABLE_ITEM)
MOVEMENT_OPTIONAL_HEADERS: Tuple[str, ...] = (IMAGE_LINK_HEADER,)


@dataclass
class InventoryRow:
    location: str
    item_code: str
    description: str
    uom: str
    qty: Any
    condition: str
    returnable_item: str
    category: str
    date_counted: str
    image_link: str = ""

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any], date_counted: str, image_link: str = "") -> "InventoryRow":
        return cls(
            location=entry["Location"],
            item_code=entry["Item Code"],
            description=entry["Description"],
            uom=entry["UOM"],
            qty=entry["Qty"],
            condition=entry["Condition"],
            returnable_item=entry["Returnable Item"],
            category=entry["Category"],
            date_counted=date_counted,
            image_link=image_link,
        )

    def as_sheet_row(self) -> List[Any]:
        return [
            self.location,
            self.item_code,
            self.description,
            self.uom,
            self.qty,
            self.condition,
            self.returnable_item,
            self.category,
            self.date_counted,
            self.image_link,
        ]


@dataclass
class TransactionRecord:
    """One immutable movement written to a band of the log sheet."""

    timestamp: str
    quantity_delta: float
    location: str
    description: str
    returnable_item: str
    actor: str
    item_code: str = ""
    activity: str = ""
    notes: str = ""
    image_link: str = ""

    def value_for(self, attribute: str) -> Any:
        value = getattr(self, attribute)
        if attribute == "quantity_delta":
            return sheet_number(value)
        return "" if value is None else value


@dataclass(frozen=True)
class BandLayout:
    """Cell order of a :class:`TransactionRecord` inside one log band."""

    name: str
    columns: Tuple[Tuple[str, str], ...]

    @property
    def width(self) -> int:
        return len(self.columns)

    @property
    def headers(self) -> List[str]:
        return [header for header, _attribute in self.columns]

    def row_for(self, record: TransactionRecord) -> List[Any]:
        return [record.value_for(attribute) for _header, attribute in self.columns]

    def as_dict(self, record: TransactionRecord) -> Dict[str, Any]:
        return {header: record.value_for(attribute) for header, attribute in self.columns}


ISSUANCE_LAYOUT = BandLayout(
    name="issuance",
    columns=(
        ("Timestamp", "timestamp"),
        ("Item Code", "item_code"),
        ("Issuance Qty", "quantity_delta"),
        ("Location", "location"),
        ("Description", "description"),
        ("Returnable Item", "returnable_item"),
        ("Issued by", "actor"),
        ("Activity", "activity"),
        ("Notes/Comments", "notes"),
        ("Image Link", "image_link"),
    ),
)

RECEIPT_LAYOUT = BandLayout(
    name="receipt",
    columns=(
        ("Timestamp", "timestamp"),
        ("Item Code", "item_code"),
        ("Receipt Qty", "quantity_delta"),
        ("Location", "location"),
        ("Description", "description"),
        ("Returnable Item", "returnable_item"),
        ("Received by", "actor"),
        ("Notes/Comments", "notes"),
        ("Image Link", "image_link"),
    ),
)

NO_CODE_LAYOUT = BandLayout(
    name="no_code",
    columns=(
        ("Timestamp", "timestamp"),
        ("Receipt Qty", "quantity_delta"),
        ("Location", "location"),
        ("Description", "description"),
        ("Returnable Item", "returnable_item"),
        ("Received by", "actor"),
        ("Notes/Comments", "notes"),
        ("Image Link", "image_link"),
    ),
)


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    mime_type: str
    content: bytes


@dataclass
class LedgerOutcome:
    """Result of a movement whose log row (and quantity cell) were written."""

    record: TransactionRecord
    layout: BandLayout
    log_row: int
    new_quantity: Optional[float] = None
    inventory_row: Optional[int] = None
    quantity_written: bool = False

    def record_dict(self) -> Dict[str, Any]:
        return self.layout.as_dict(self.record)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"data": self.record_dict(), "logRow": self.log_row}
        if self.new_quantity is not None:
            payload["newQty"] = sheet_number(self.new_quantity)
        return payload


__all__ = [
    "BandLayout",
    "DATE_COUNTED_HEADER",
    "IMAGE_LINK_HEADER",
    "INVENTORY_ENTRY_FIELDS",
    "ISSUANCE_LAYOUT",
    "ImageUpload",
    "InventoryRow",
    "LedgerOutcome",
    "MOVEMENT_OPTIONAL_HEADERS",
    "MOVEMENT_REQUIRED_HEADERS",
    "NO_CODE_LAYOUT",
    "RECEIPT_LAYOUT",
    "TransactionRecord",
]
