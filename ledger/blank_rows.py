"""Locate the next writable row inside one band of the log sheet."""
from __future__ import annotations

from typing import Sequence


def is_blank_row(row: Sequence[object], band_width: int) -> bool:
    """Return ``True`` when the first ``band_width`` cells of ``row`` are empty."""

    for cell in list(row)[:band_width]:
        if cell is None:
            continue
        if str(cell).strip():
            return False
    return True


def find_insertion_row(
    band_rows: Sequence[Sequence[object]],
    header_row_offset: int,
    band_width: int,
) -> int:
    """Return the 1-based sheet row where the next record of a band belongs.

    ``band_rows`` must be fetched starting at the band's header row, which is
    ``header_row_offset``.  The first blank row wins so that pre-formatted rows
    below the last record get reused; with no blank row the record goes right
    after the last fetched row.
    """

    for index, row in enumerate(band_rows):
        if is_blank_row(row, band_width):
            return index + header_row_offset
    return len(band_rows) + header_row_offset


__all__ = ["find_insertion_row", "is_blank_row"]
