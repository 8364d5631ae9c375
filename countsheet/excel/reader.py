from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
import zipfile
from collections.abc import Iterable
from pathlib import Path

from ..models.record import ParseResult, Record
from .columns import FieldMap, MissingColumnsError, resolve_columns
from .workbook import (
    SHARED_STRINGS_PATH,
    RawRow,
    first_worksheet_path,
    iter_rows,
    parse_shared_strings,
    resolve_cell_text,
)

"""Count template reader.

1行目をヘッダ行として扱い、2行目以降をデータ行とする。
- ヘッダで必須列 (description / dist_number / quantity) が欠落 → MissingColumnsError
  (データ行は一切読まない)
- description と dist_number が両方空の行はスキップ (空行・区切り行)
- quantity は整数として解釈、空/非数値は 0
- 有効なデータ行が 0 件 → NoDataRowsError
"""

__all__ = [
    "SourceNotFoundError",
    "InvalidFormatError",
    "MissingColumnsError",
    "NoDataRowsError",
    "parse_count_sheet",
    "extract_records",
    "parse_quantity",
]

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("description", "dist_number", "cust_number", "uom", "location", "area", "place")


class SourceNotFoundError(Exception):
    """Raised when the source container does not exist."""


class InvalidFormatError(Exception):
    """Raised when the source is not a readable xlsx container or has no worksheet."""


class NoDataRowsError(Exception):
    """Raised when the worksheet yields no usable data rows."""


def parse_quantity(text: str | None) -> int:
    """Lenient integer parse: blank or non-numeric quantity means 0."""
    if text is None:
        return 0
    try:
        return int(text.strip())
    except ValueError:
        return 0


def extract_records(
    rows: Iterable[RawRow],
    field_map: FieldMap,
    shared_strings: list[str] | None,
    first_position: int = 2,
) -> list[Record]:
    """Turn data rows (everything after the header) into Records.

    row_position は行要素の r 属性 (物理行番号) を使う。r が省略された行は
    直前の行番号 + 1 とする (先頭データ行は first_position)。

    Raises:
        NoDataRowsError: no row produced a Record
    """
    records: list[Record] = []
    position = first_position - 1
    for row in rows:
        position = row.row_number if row.row_number is not None else position + 1
        values: dict[int, str] = {}
        for cell in row.cells:
            text = resolve_cell_text(cell, shared_strings)
            if text is not None:
                values[cell.column.index] = text

        def get(name: str) -> str | None:
            address = field_map.get(name)
            if address is None:
                return None
            return values.get(address.index)

        description = get("description") or ""
        dist_number = get("dist_number") or ""
        if not description and not dist_number:
            continue

        text_values = {name: get(name) or "" for name in _TEXT_FIELDS}
        records.append(
            Record(
                row_position=position,
                quantity=parse_quantity(get("quantity")),
                **text_values,
            )
        )

    if not records:
        raise NoDataRowsError("no data rows found in worksheet")
    return records


def parse_count_sheet(path: Path) -> ParseResult:
    """Parse the first worksheet of a count template.

    Args:
        path: xlsx ファイルパス

    Returns:
        ParseResult with records in document order and the quantity column address

    Raises:
        SourceNotFoundError: path does not exist
        InvalidFormatError: not a zip container / no worksheet / malformed markup
        MissingColumnsError: required header labels absent
        NoDataRowsError: header present but no usable data rows
    """
    if not path.exists():
        raise SourceNotFoundError(f"source file not found: {path}")
    try:
        with zipfile.ZipFile(path, "r") as archive:
            names = set(archive.namelist())

            def read_part(name: str) -> bytes | None:
                return archive.read(name) if name in names else None

            sheet_path = first_worksheet_path(read_part)
            if sheet_path is None:
                raise InvalidFormatError(f"no worksheet found in {path.name}")
            worksheet = archive.read(sheet_path)
            shared_raw = read_part(SHARED_STRINGS_PATH)
    except zipfile.BadZipFile as e:
        raise InvalidFormatError(f"not an xlsx container: {path.name}: {e}") from e

    try:
        shared_strings = parse_shared_strings(shared_raw) if shared_raw is not None else None
        rows = list(iter_rows(worksheet))
    except ET.ParseError as e:
        raise InvalidFormatError(f"malformed worksheet markup in {path.name}: {e}") from e

    if not rows:
        raise NoDataRowsError("no data rows found in worksheet")

    header = rows[0]
    header_cells = []
    for cell in header.cells:
        text = resolve_cell_text(cell, shared_strings)
        if text is not None:
            header_cells.append((cell.column, text))
    field_map = resolve_columns(header_cells)
    logger.debug(f"header resolved: {dict((k, v.letter) for k, v in field_map.items())}")

    records = extract_records(
        rows[1:], field_map, shared_strings, first_position=(header.row_number or 1) + 1
    )
    logger.info(f"parsed {len(records)} records from {path.name} ({sheet_path})")
    return ParseResult(records=records, quantity_column=field_map["quantity"])
