from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from ledger.blank_rows import find_insertion_row, is_blank_row


def test_first_blank_row_wins_over_later_blanks() -> None:
    rows = [["Timestamp", "Item Code"], ["t1", "X1"], [], ["t2", "X2"], [], []]

    assert find_insertion_row(rows, 1, 10) == 3


def test_no_blank_rows_appends_after_last_fetched_row() -> None:
    rows = [["Timestamp"], ["t1"], ["t2"]]

    assert find_insertion_row(rows, 1, 10) == 4


def test_header_offset_shifts_result() -> None:
    rows = [["Timestamp"], ["t1"], ["  ", None, ""]]

    assert find_insertion_row(rows, 2, 9) == 4


def test_empty_band_starts_at_header_offset() -> None:
    assert find_insertion_row([], 1, 8) == 1


def test_cells_beyond_band_width_are_ignored() -> None:
    assert is_blank_row(["", " ", "spill"], 2) is True
    assert is_blank_row(["", "x"], 2) is False


def test_numeric_zero_is_not_blank() -> None:
    assert is_blank_row([0], 1) is False
