from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

"""Column addressing and header resolution for count templates.

Header row (1行目) のラベルを正規フィールド名に対応付け、物理列アドレス
(0始まりの index と A, B, ..., AA 形式の letter) を返す。

- ラベル一致は完全一致 (大文字小文字・装飾 " *" を区別)
- 未知の列は無視 (列追加に対して前方互換)
- 必須フィールド欠落時は欠落した正規名を列挙した MissingColumnsError
"""

__all__ = [
    "ColumnAddress",
    "FieldMap",
    "MissingColumnsError",
    "HEADER_LABELS",
    "REQUIRED_FIELDS",
    "index_to_letter",
    "letter_to_index",
    "parse_cell_reference",
    "cell_reference",
    "resolve_columns",
]

# label -> canonical field name
HEADER_LABELS: Mapping[str, str] = MappingProxyType({
    "Item Description": "description",
    "Dist #": "dist_number",
    "Dist # *": "dist_number",
    "Cust #": "cust_number",
    "Cust # *": "cust_number",
    "Quantity": "quantity",
    "UOM": "uom",
    "Location": "location",
    "Area": "area",
    "Place": "place",
})

REQUIRED_FIELDS: tuple[str, ...] = ("description", "dist_number", "quantity")

_CELL_REF_RE = re.compile(r"^([A-Z]+)([1-9][0-9]*)$")
_LETTERS_RE = re.compile(r"^[A-Z]+$")


class MissingColumnsError(Exception):
    """Raised when required canonical fields are absent from the header row."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"missing required columns: {', '.join(self.missing)}")


def index_to_letter(index: int) -> str:
    """Convert a zero-based column index to its letter form (0 -> A, 26 -> AA)."""
    if index < 0:
        raise ValueError(f"column index must be non-negative: {index}")
    letters = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def letter_to_index(letters: str) -> int:
    """Convert column letters to a zero-based index (A -> 0, AA -> 26)."""
    if not _LETTERS_RE.match(letters):
        raise ValueError(f"invalid column letters: {letters!r}")
    value = 0
    for ch in letters:
        value = value * 26 + (ord(ch) - ord("A") + 1)
    return value - 1


def parse_cell_reference(reference: str) -> tuple[str, int]:
    """Split an ``E12`` style reference into (column letters, row number)."""
    match = _CELL_REF_RE.match(reference)
    if not match:
        raise ValueError(f"invalid cell reference: {reference!r}")
    return match.group(1), int(match.group(2))


def cell_reference(column: str, row: int) -> str:
    if row < 1:
        raise ValueError(f"row number must be positive: {row}")
    return f"{column}{row}"


@dataclass(frozen=True)
class ColumnAddress:
    """Physical spreadsheet column: zero-based index and its letter form."""
    index: int
    letter: str

    @classmethod
    def from_index(cls, index: int) -> ColumnAddress:
        return cls(index=index, letter=index_to_letter(index))

    @classmethod
    def from_letter(cls, letter: str) -> ColumnAddress:
        return cls(index=letter_to_index(letter), letter=letter)


FieldMap = Mapping[str, ColumnAddress]


def resolve_columns(
    header_cells: Iterable[tuple[ColumnAddress, str]],
    required: Iterable[str] = REQUIRED_FIELDS,
) -> FieldMap:
    """Build a read-only FieldMap from the header row.

    Args:
        header_cells: (address, literal text) pairs in document order
        required: canonical names that must be present

    Returns:
        Immutable mapping canonical field name -> ColumnAddress, in the order
        the fields were found in the header row

    Raises:
        MissingColumnsError: if any required canonical name is not found
    """
    found: dict[str, ColumnAddress] = {}
    for address, text in header_cells:
        canonical = HEADER_LABELS.get(text)
        if canonical is None:
            continue
        # 同じ正規名が複数列に現れた場合は後勝ち
        found[canonical] = address

    missing = [name for name in required if name not in found]
    if missing:
        raise MissingColumnsError(missing)
    return MappingProxyType(found)
