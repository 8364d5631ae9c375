from __future__ import annotations

from datetime import datetime
from pathlib import Path

from countsheet.models.record import Record
from countsheet.services.csv_export import export_csv, export_csv_text

HEADER_LINE = "Item Description,Dist #,Quantity,UOM,Location,Area,Place"


def test_header_and_simple_row():
    text = export_csv_text([Record(row_position=2, description="Tomatoes", dist_number="D100", quantity=12, uom="CASE")])
    assert text == f"{HEADER_LINE}\nTomatoes,D100,12,CASE,,,\n"


def test_quoting_of_delimiter_and_quotes():
    record = Record(row_position=2, description='Cheese, Swiss "Aged"', dist_number="D9", quantity=1)
    line = export_csv_text([record]).splitlines()[1]
    assert line == '"Cheese, Swiss ""Aged""",D9,1,,,,'


def test_embedded_newline_is_quoted():
    record = Record(row_position=2, description="two\nlines", dist_number="D1", quantity=0)
    assert export_csv_text([record]) == f'{HEADER_LINE}\n"two\nlines",D1,0,,,,\n'


def test_rows_sorted_by_position():
    records = [
        Record(row_position=9, description="Late", dist_number="D9"),
        Record(row_position=3, description="Early", dist_number="D3"),
    ]
    lines = export_csv_text(records).splitlines()
    assert [line.split(",")[0] for line in lines[1:]] == ["Early", "Late"]


def test_cust_number_not_exported():
    text = export_csv_text([Record(row_position=2, description="A", dist_number="D", cust_number="C77")])
    assert "C77" not in text


def test_empty_export_has_header_only():
    assert export_csv_text([]) == f"{HEADER_LINE}\n"


def test_export_csv_writes_timestamped_file(tmp_path: Path):
    records = [Record(row_position=2, description="Tomatoes", dist_number="D100", quantity=12)]
    path = export_csv(records, tmp_path / "out", prefix="Inventory", now=datetime(2024, 12, 31, 23, 59))
    assert path == tmp_path / "out" / "Inventory_2024-12-31_2359.csv"
    data = path.read_bytes()
    assert b"\r\n" not in data
    assert data.decode("utf-8") == export_csv_text(records)


def test_bare_carriage_return_is_quoted():
    record = Record(row_position=2, description="a\rb", dist_number="D1", quantity=0)
    assert export_csv_text([record]) == f'{HEADER_LINE}\n"a\rb",D1,0,,,,\n'


def test_crlf_inside_value_is_kept_and_row_ends_are_lf():
    records = [
        Record(row_position=2, description="line1\r\nline2", dist_number="D1", quantity=1),
        Record(row_position=3, description="plain", dist_number="D2", quantity=2),
    ]
    assert export_csv_text(records) == f'{HEADER_LINE}\n"line1\r\nline2",D1,1,,,,\nplain,D2,2,,,,\n'
