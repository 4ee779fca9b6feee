from __future__ import annotations

import itertools
import string
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from ledger.columns import column_index, column_letter, range_origin, resolve_columns
from ledger.errors import SchemaError


@pytest.mark.parametrize(
    "index, expected",
    [(0, "A"), (4, "E"), (25, "Z"), (26, "AA"), (27, "AB"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA")],
)
def test_column_letter_uses_bijective_base_26(index, expected):
    assert column_letter(index) == expected


def test_column_letter_covers_a_to_zz_in_order():
    singles = list(string.ascii_uppercase)
    doubles = ["".join(pair) for pair in itertools.product(string.ascii_uppercase, repeat=2)]
    expected = singles + doubles

    labels = [column_letter(index) for index in range(702)]

    assert labels == expected
    assert [column_index(label) for label in labels] == list(range(702))


def test_column_letter_rejects_negative_index():
    with pytest.raises(ValueError):
        column_letter(-1)


@pytest.mark.parametrize("label", ["", "A1", "Ä", "1"])
def test_column_index_rejects_invalid_labels(label):
    with pytest.raises(ValueError):
        column_index(label)


def test_resolve_columns_maps_required_and_optional_headers():
    headers = ["Location", "Item Code", "Description", "Qty", "Image Link"]

    columns = resolve_columns(headers, ["Qty", "Location"], optional=["Image Link", "Notes"])

    assert columns["Qty"] == 3
    assert columns["Location"] == 0
    assert columns["Image Link"] == 4
    assert "Notes" not in columns


def test_resolve_columns_is_case_sensitive_and_reports_missing():
    with pytest.raises(SchemaError) as excinfo:
        resolve_columns(["location", "Item Code"], ["Location", "Item Code", "Qty"])

    assert "Location" in str(excinfo.value)
    assert "Qty" in str(excinfo.value)


def test_column_index_map_cell_handles_short_rows():
    columns = resolve_columns(["Location", "Item Code", "Qty"], ["Location", "Qty"])

    assert columns.cell(["W1"], "Location") == "W1"
    assert columns.cell(["W1"], "Qty") == ""
    assert columns.cell(["W1", None, None], "Qty", default="0") == "0"


@pytest.mark.parametrize(
    "range_spec, expected",
    [("A:J", (0, 1)), ("A2:J", (0, 2)), ("K2:S", (10, 2)), ("T1:AA", (19, 1)), ("'Inventory'!C5:D9", (2, 5))],
)
def test_range_origin(range_spec, expected):
    assert range_origin(range_spec) == expected
