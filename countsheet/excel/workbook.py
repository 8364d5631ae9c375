from __future__ import annotations

import posixpath
import re
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from .columns import ColumnAddress, letter_to_index

"""Low level access to the parts of an xlsx container.

Workbook の最初のシートを workbook.xml + workbook.xml.rels から解決し、
見つからない場合は慣例パス xl/worksheets/sheet1.xml を使う。

セル値の解決順序 (resolve_cell_text):
1. inline string があればそのまま
2. 共有文字列型 (t="s") かつ値が有効な index なら sharedStrings の該当要素
3. それ以外は生の値 (数値セル等)
"""

__all__ = [
    "NS_MAIN",
    "DEFAULT_WORKSHEET_PATH",
    "SHARED_STRINGS_PATH",
    "RawCell",
    "RawRow",
    "first_worksheet_path",
    "parse_shared_strings",
    "iter_rows",
    "resolve_cell_text",
]

NS_MAIN = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
NS_REL_DOC = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
NS_REL_PKG = "http://schemas.openxmlformats.org/package/2006/relationships"

DEFAULT_WORKSHEET_PATH = "xl/worksheets/sheet1.xml"
SHARED_STRINGS_PATH = "xl/sharedStrings.xml"
WORKBOOK_PATH = "xl/workbook.xml"
WORKBOOK_RELS_PATH = "xl/_rels/workbook.xml.rels"

_REF_COLUMN_RE = re.compile(r"^([A-Z]+)[0-9]+$")


@dataclass(frozen=True)
class RawCell:
    """A cell as it appears in the worksheet markup, before value resolution."""
    column: ColumnAddress
    cell_type: str | None  # t 属性 (s / inlineStr / n / str / b ...)
    value: str | None  # <v> の中身
    inline_text: str | None = None  # <is> の連結テキスト


@dataclass(frozen=True)
class RawRow:
    row_number: int | None  # r 属性 (省略時 None)
    cells: list[RawCell]


def _q(tag: str) -> str:
    return f"{{{NS_MAIN}}}{tag}"


def first_worksheet_path(read_part: Callable[[str], bytes | None]) -> str | None:
    """Resolve the internal path of the first worksheet.

    Args:
        read_part: callable returning a part's bytes, or None when absent

    Returns:
        Internal path of the first worksheet, or None if the container has none
    """
    workbook = read_part(WORKBOOK_PATH)
    rels = read_part(WORKBOOK_RELS_PATH)
    if workbook is not None and rels is not None:
        try:
            wb_root = ET.fromstring(workbook)
            rels_root = ET.fromstring(rels)
        except ET.ParseError:
            wb_root = rels_root = None
        if wb_root is not None and rels_root is not None:
            targets = {
                rel.attrib.get("Id"): rel.attrib.get("Target")
                for rel in rels_root.iter(f"{{{NS_REL_PKG}}}Relationship")
            }
            sheet = wb_root.find(f"{_q('sheets')}/{_q('sheet')}")
            if sheet is not None:
                target = targets.get(sheet.attrib.get(f"{{{NS_REL_DOC}}}id"))
                if target:
                    if target.startswith("/"):
                        path = target.lstrip("/")
                    else:
                        path = posixpath.normpath(posixpath.join("xl", target))
                    if read_part(path) is not None:
                        return path
    if read_part(DEFAULT_WORKSHEET_PATH) is not None:
        return DEFAULT_WORKSHEET_PATH
    return None


def _text_of(element: ET.Element) -> str:
    # <t> 直下、もしくはリッチテキスト <r><t> を連結 (ふりがな rPh は除外)
    parts: list[str] = []
    for child in element:
        if child.tag == _q("t"):
            parts.append(child.text or "")
        elif child.tag == _q("r"):
            for t in child.iter(_q("t")):
                parts.append(t.text or "")
    return "".join(parts)


def parse_shared_strings(data: bytes) -> list[str]:
    root = ET.fromstring(data)
    return [_text_of(si) for si in root.iter(_q("si"))]


def iter_rows(worksheet: bytes) -> Iterator[RawRow]:
    """Yield the rows of a worksheet document in document order."""
    root = ET.fromstring(worksheet)
    sheet_data = root.find(_q("sheetData"))
    if sheet_data is None:
        return
    for row in sheet_data.iter(_q("row")):
        r = row.attrib.get("r")
        row_number = int(r) if r and r.isdigit() else None
        cells: list[RawCell] = []
        next_index = 0
        for c in row.iter(_q("c")):
            ref = c.attrib.get("r")
            match = _REF_COLUMN_RE.match(ref) if ref else None
            # r 省略時は直前セルの次の列とみなす
            index = letter_to_index(match.group(1)) if match else next_index
            next_index = index + 1
            v = c.find(_q("v"))
            inline = c.find(_q("is"))
            cells.append(
                RawCell(
                    column=ColumnAddress.from_index(index),
                    cell_type=c.attrib.get("t"),
                    value=v.text if v is not None else None,
                    inline_text=_text_of(inline) if inline is not None else None,
                )
            )
        yield RawRow(row_number=row_number, cells=cells)


def resolve_cell_text(cell: RawCell, shared_strings: list[str] | None) -> str | None:
    """Resolve a raw cell to its literal text (inline -> shared -> raw)."""
    if cell.inline_text is not None:
        return cell.inline_text
    if shared_strings is not None and cell.cell_type == "s" and cell.value is not None:
        try:
            index = int(cell.value)
        except ValueError:
            index = -1
        if 0 <= index < len(shared_strings):
            return shared_strings[index]
    return cell.value
