"""Header resolution and A1 column-letter helpers."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Mapping, MutableSequence, Sequence, Tuple

from ledger.errors import SchemaError

_CELL_PATTERN = re.compile(r"^([A-Za-z]*)(\d*)$")


def column_letter(index: int) -> str:
    """Return the spreadsheet label for a zero-based column ``index``.

    >>> column_letter(0), column_letter(25), column_letter(26)
    ('A', 'Z', 'AA')
    """

    if index < 0:
        raise ValueError("Column index must be >= 0")
    letters: MutableSequence[str] = []
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


def column_index(letter: str) -> int:
    """Return the zero-based index for a column label such as ``"AA"``."""

    label = (letter or "").strip().upper()
    if not label or not label.isalpha() or not label.isascii():
        raise ValueError(f"Invalid column label: {letter!r}")
    value = 0
    for char in label:
        value = value * 26 + (ord(char) - 64)
    return value - 1


def range_origin(range_spec: str) -> Tuple[int, int]:
    """Return ``(column index, row number)`` of the top-left cell of ``range_spec``.

    Open-ended ranges such as ``"A:J"`` start at row 1.
    """

    start = range_spec.split("!", 1)[-1].split(":", 1)[0].strip()
    match = _CELL_PATTERN.match(start)
    if not start or not match:
        raise ValueError(f"Invalid range: {range_spec!r}")
    letters, digits = match.groups()
    column = column_index(letters) if letters else 0
    row = int(digits) if digits else 1
    return column, row


@dataclass(frozen=True)
class ColumnIndexMap:
    """Logical header name → zero-based column index for one operation."""

    positions: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "positions", MappingProxyType(dict(self.positions)))

    def __getitem__(self, name: str) -> int:
        return self.positions[name]

    def __contains__(self, name: object) -> bool:
        return name in self.positions

    def get(self, name: str) -> int | None:
        return self.positions.get(name)

    def cell(self, row: Sequence[object], name: str, default: object = "") -> object:
        """Return the value of ``name`` in ``row``, or ``default`` if absent."""

        index = self.positions.get(name)
        if index is None or index >= len(row):
            return default
        value = row[index]
        return default if value is None else value


def resolve_columns(
    header_row: Sequence[str],
    required: Iterable[str],
    optional: Iterable[str] = (),
) -> ColumnIndexMap:
    """Map header names to their positions in ``header_row``.

    Matching is exact and case-sensitive.  Every name in ``required`` must be
    present, otherwise :class:`SchemaError` is raised; names in ``optional``
    are included only when found.
    """

    headers = list(header_row)
    positions = {}
    missing: List[str] = []
    for name in required:
        if name in headers:
            positions[name] = headers.index(name)
        else:
            missing.append(name)
    if missing:
        raise SchemaError(
            "Sheet headers missing required columns: " + ", ".join(sorted(missing))
        )
    for name in optional:
        if name in headers and name not in positions:
            positions[name] = headers.index(name)
    return ColumnIndexMap(positions)


__all__ = ["ColumnIndexMap", "column_index", "column_letter", "range_origin", "resolve_columns"]
