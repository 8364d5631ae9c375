from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from .columns import letter_to_index

"""Byte-level cell replacement / insertion in worksheet markup.

シート XML 全体をパースし直さず、正規表現で対象の <row> / <c> だけを書き換える。
マッチした範囲の外側のバイト列は一切変更しない (属性順・空白・名前空間接頭辞を保持)。

- 既存セル <c r="E12" ...>...</c> / <c r="E12" .../> → <c r="E12"><v>18</v></c>
  (t 属性は捨てる。s 属性 (スタイル) のみ引き継ぐ)
- セルが無い場合は同じ行の中で列順の位置に新しいセルを挿入
  (より右の列のセルが無ければ </row> の直前)
- 行要素そのものが無い場合は dropped として返す
- r 属性の無い行・セルは読み取り側と同じく直前 + 1 として番号付けする
"""

__all__ = [
    "WorksheetPatch",
    "patch_worksheet",
]

# 名前空間接頭辞付き (<x:row>) にも対応
_PREFIX = rb"(?:[A-Za-z_][\w.-]*:)?"
_ROW_RE = re.compile(
    rb"<(?P<tag>" + _PREFIX + rb"row)\b(?P<attrs>[^>]*?)(?:/>|>(?P<body>.*?)</(?P=tag)>)",
    re.DOTALL,
)
_CELL_RE = re.compile(
    rb"<(?P<tag>" + _PREFIX + rb"c)\b(?P<attrs>[^>]*?)(?:/>|>(?P<body>.*?)</(?P=tag)>)",
    re.DOTALL,
)
_R_ATTR_RE = re.compile(rb'(?:^|\s)r="([^"]*)"')
_S_ATTR_RE = re.compile(rb'(?:^|\s)s="([^"]*)"')
_REF_COLUMN_RE = re.compile(rb"^([A-Z]+)[0-9]+$")


@dataclass
class WorksheetPatch:
    """Patched markup plus which rows were replaced / inserted / dropped."""
    xml: bytes
    replaced_rows: list[int] = field(default_factory=list)
    inserted_rows: list[int] = field(default_factory=list)
    dropped_rows: list[int] = field(default_factory=list)


def _numeric_cell(tag: bytes, reference: bytes, value: int, style: bytes | None) -> bytes:
    prefix = tag[:-1]  # "x:c" -> "x:"
    style_attr = b' s="' + style + b'"' if style is not None else b""
    return (
        b"<" + tag + b' r="' + reference + b'"' + style_attr + b">"
        + b"<" + prefix + b"v>" + str(int(value)).encode("ascii") + b"</" + prefix + b"v>"
        + b"</" + tag + b">"
    )


def _patch_row(
    row: re.Match[bytes], column: str, row_number: int, value: int
) -> tuple[bytes, bool]:
    """Return (new row markup, replaced?) for one targeted row."""
    reference = f"{column}{row_number}".encode("ascii")
    target_index = letter_to_index(column)
    row_tag = row.group("tag")
    cell_tag = row_tag[:-3] + b"c"
    body = row.group("body")

    if body is None:
        # <row r="12" .../> は開いてセルを入れる
        open_tag = row.group(0)[:-2].rstrip() + b">"
        return (
            open_tag + _numeric_cell(cell_tag, reference, value, None) + b"</" + row_tag + b">",
            False,
        )

    body_start = row.start("body") - row.start()
    head = row.group(0)[:body_start]
    tail = row.group(0)[row.end("body") - row.start():]

    insert_at: int | None = None
    next_index = 0
    for cell in _CELL_RE.finditer(body):
        # r 省略セルは直前セルの次の列 (読み取り側と同じ規則)
        ref_match = _R_ATTR_RE.search(cell.group("attrs"))
        col_match = _REF_COLUMN_RE.match(ref_match.group(1)) if ref_match else None
        index = letter_to_index(col_match.group(1).decode("ascii")) if col_match else next_index
        next_index = index + 1
        if index == target_index:
            style_match = _S_ATTR_RE.search(cell.group("attrs"))
            new_cell = _numeric_cell(
                cell.group("tag"), reference, value, style_match.group(1) if style_match else None
            )
            new_body = body[:cell.start()] + new_cell + body[cell.end():]
            return head + new_body + tail, True
        if insert_at is None and index > target_index:
            insert_at = cell.start()

    if insert_at is None:
        insert_at = len(body)
    new_cell = _numeric_cell(cell_tag, reference, value, None)
    return head + body[:insert_at] + new_cell + body[insert_at:] + tail, False


def patch_worksheet(
    xml: bytes,
    column: str,
    updates: Mapping[int, int],
    on_update: Callable[[int], None] | None = None,
) -> WorksheetPatch:
    """Apply ``row -> quantity`` updates to one column of a worksheet document.

    Args:
        xml: worksheet markup bytes
        column: column letters of the quantity column (e.g. "E")
        updates: physical row number -> new integer value
        on_update: optional callback invoked with each row number once handled

    Returns:
        WorksheetPatch; rows whose <row> element is missing end up in dropped_rows
    """
    result = WorksheetPatch(xml=xml)
    if not updates:
        return result

    remaining = dict(updates)
    parts: list[bytes] = []
    last = 0
    row_number = 0
    for row in _ROW_RE.finditer(xml):
        if not remaining:
            break
        # r 省略 (または数値でない) 行は直前の行番号 + 1
        r_match = _R_ATTR_RE.search(row.group("attrs"))
        if r_match is not None and r_match.group(1).isdigit():
            row_number = int(r_match.group(1))
        else:
            row_number += 1
        if row_number not in remaining:
            continue
        value = remaining.pop(row_number)
        new_row, replaced = _patch_row(row, column, row_number, value)
        parts.append(xml[last:row.start()])
        parts.append(new_row)
        last = row.end()
        (result.replaced_rows if replaced else result.inserted_rows).append(row_number)
        if on_update is not None:
            on_update(row_number)
    parts.append(xml[last:])

    for row_number in sorted(remaining):
        result.dropped_rows.append(row_number)
        if on_update is not None:
            on_update(row_number)

    result.xml = b"".join(parts)
    return result
