from __future__ import annotations

from dataclasses import dataclass, replace

from ..excel.columns import ColumnAddress

"""Record / ParseResult models for count templates.

Record は 1 データ行を表す。row_position は元ドキュメント上の物理行番号
(1始まり、ヘッダが 1 行目なのでデータは 2 行目から) で、書き戻し時に
対象セルを特定する唯一の結合キー。
"""

__all__ = [
    "Record",
    "ParseResult",
]


@dataclass(frozen=True)
class Record:
    """One parsed data row of a count template.

    Free-text fields default to an empty string; quantity defaults to 0 when
    the cell is blank or not an integer.
    """
    row_position: int  # 物理行番号 (書き戻しの結合キー)
    description: str = ""
    dist_number: str = ""
    cust_number: str = ""
    quantity: int = 0
    uom: str = ""
    location: str = ""
    area: str = ""
    place: str = ""

    def with_quantity(self, quantity: int) -> Record:
        """Return a copy carrying a new quantity; row_position is kept."""
        return replace(self, quantity=quantity)


@dataclass(frozen=True)
class ParseResult:
    """Extraction output: records in document order plus the quantity column."""
    records: list[Record]
    quantity_column: ColumnAddress
