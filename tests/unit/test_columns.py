from __future__ import annotations

import itertools
import string

import pytest

from countsheet.excel.columns import (
    ColumnAddress,
    MissingColumnsError,
    cell_reference,
    index_to_letter,
    letter_to_index,
    parse_cell_reference,
    resolve_columns,
)

HEADER = ["Item Description", "Dist #", "Quantity", "UOM", "Location", "Area", "Place"]


def _header_cells(labels: list[str]) -> list[tuple[ColumnAddress, str]]:
    return [(ColumnAddress.from_index(i), label) for i, label in enumerate(labels)]


@pytest.mark.parametrize(
    "index,letter",
    [(0, "A"), (1, "B"), (25, "Z"), (26, "AA"), (27, "AB"), (51, "AZ"), (52, "BA"),
     (701, "ZZ"), (702, "AAA"), (16383, "XFD")],
)
def test_index_letter_known_values(index: int, letter: str):
    assert index_to_letter(index) == letter
    assert letter_to_index(letter) == index


def test_index_to_letter_round_trip():
    for n in range(0, 20000):
        assert letter_to_index(index_to_letter(n)) == n


def test_letter_to_index_round_trip_up_to_three_letters():
    for width in (1, 2, 3):
        for chars in itertools.product(string.ascii_uppercase, repeat=width):
            s = "".join(chars)
            assert index_to_letter(letter_to_index(s)) == s


@pytest.mark.parametrize("bad", ["", "a", "A1", "Ä", " A"])
def test_letter_to_index_rejects_invalid(bad: str):
    with pytest.raises(ValueError):
        letter_to_index(bad)


def test_index_to_letter_rejects_negative():
    with pytest.raises(ValueError):
        index_to_letter(-1)


def test_cell_reference_grammar():
    assert parse_cell_reference("E12") == ("E", 12)
    assert parse_cell_reference("AA1") == ("AA", 1)
    assert cell_reference("E", 12) == "E12"
    for bad in ("E0", "12", "e12", "E", "E12 "):
        with pytest.raises(ValueError):
            parse_cell_reference(bad)
    with pytest.raises(ValueError):
        cell_reference("E", 0)


def test_resolve_columns_maps_labels_to_physical_columns():
    labels = ["Notes", *HEADER]  # 先頭に未知列 → 全列が 1 つ右にずれる
    field_map = resolve_columns(_header_cells(labels))
    assert field_map["description"] == ColumnAddress(1, "B")
    assert field_map["quantity"] == ColumnAddress(3, "D")
    assert field_map["place"].letter == "H"
    assert "notes" not in field_map
    assert list(field_map) == ["description", "dist_number", "quantity", "uom", "location", "area", "place"]


def test_resolve_columns_required_marker_variants():
    labels = ["Item Description", "Dist # *", "Cust # *", "Quantity"]
    field_map = resolve_columns(_header_cells(labels))
    assert field_map["dist_number"].letter == "B"
    assert field_map["cust_number"].letter == "C"

    plain = resolve_columns(_header_cells(["Item Description", "Dist #", "Cust #", "Quantity"]))
    assert plain == field_map


def test_resolve_columns_is_case_and_decoration_sensitive():
    with pytest.raises(MissingColumnsError) as e:
        resolve_columns(_header_cells(["item description", "Dist#", "Quantity"]))
    assert e.value.missing == ["description", "dist_number"]


def test_resolve_columns_missing_quantity_names_exactly_quantity():
    labels = [h for h in HEADER if h != "Quantity"]
    with pytest.raises(MissingColumnsError) as e:
        resolve_columns(_header_cells(labels))
    assert e.value.missing == ["quantity"]
    assert "quantity" in str(e.value)


def test_resolve_columns_idempotent():
    cells = _header_cells(HEADER)
    assert resolve_columns(cells) == resolve_columns(cells)


def test_field_map_is_read_only():
    field_map = resolve_columns(_header_cells(HEADER))
    with pytest.raises(TypeError):
        field_map["quantity"] = ColumnAddress.from_index(0)  # type: ignore[index]
