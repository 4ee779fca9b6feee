"""Timestamp and quantity formatting for ledger rows."""
from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Optional, Union

from ledger.errors import ValidationError

Number = Union[int, float]


def local_now() -> datetime:
    """Return the current server-local wall-clock time."""

    return datetime.now().astimezone()


def format_timestamp(moment: datetime) -> str:
    """Format ``moment`` as ``YYYY-MM-DD, h:mm:ss AM/PM``.

    The hour uses a 12-hour clock without padding, so midnight reads ``12``.
    """

    hour = moment.hour % 12 or 12
    meridiem = "PM" if moment.hour >= 12 else "AM"
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}, "
        f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"
    )


def format_date(moment: Union[date, datetime]) -> str:
    if isinstance(moment, datetime):
        moment = moment.date()
    return moment.isoformat()


def sheet_number(value: float) -> Number:
    """Return ``value`` as an ``int`` when it is whole so cells read ``6``."""

    if float(value).is_integer():
        return int(value)
    return value


def parse_stock_quantity(value: Any) -> float:
    """Read a quantity cell from the inventory sheet; unreadable cells count as 0."""

    if value in (None, ""):
        return 0.0
    try:
        number = float(str(value).replace(",", "").strip())
    except ValueError:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def parse_requested_quantity(value: Any, *, label: str = "quantity") -> float:
    """Validate a client-supplied quantity: a positive, finite number."""

    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label}")
    number: Optional[float]
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        number = None
    if number is None or not math.isfinite(number) or number <= 0:
        raise ValidationError(f"Invalid {label}")
    return number


__all__ = [
    "format_date",
    "format_timestamp",
    "local_now",
    "parse_requested_quantity",
    "parse_stock_quantity",
    "sheet_number",
]
