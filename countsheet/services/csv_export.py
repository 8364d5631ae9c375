from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import pandas as pd

from ..models.record import Record
from .output_paths import output_path

"""Delimited (CSV) export of counted records.

テンプレートを一切使わない簡易出力経路。
- ヘッダ固定: Item Description,Dist #,Quantity,UOM,Location,Area,Place
- row_position 昇順
- 区切り文字・ダブルクォート・改行 (\n, \r) を含む値はクォートし、内部の " は "" にする
- 改行コードは LF
"""

__all__ = [
    "CSV_COLUMNS",
    "records_frame",
    "export_csv_text",
    "export_csv",
]

logger = logging.getLogger(__name__)

# (header label, Record attribute)
CSV_COLUMNS: tuple[tuple[str, str], ...] = (
    ("Item Description", "description"),
    ("Dist #", "dist_number"),
    ("Quantity", "quantity"),
    ("UOM", "uom"),
    ("Location", "location"),
    ("Area", "area"),
    ("Place", "place"),
)


def records_frame(records: Iterable[Record]) -> pd.DataFrame:
    """Records ordered by row position as a DataFrame with the export headers."""
    ordered = sorted(records, key=lambda r: r.row_position)
    data = [[getattr(r, attr) for _, attr in CSV_COLUMNS] for r in ordered]
    return pd.DataFrame(data, columns=[label for label, _ in CSV_COLUMNS])


_ROW_END = "\r\n"


def _frame_to_csv(frame: pd.DataFrame) -> str:
    # 行末を CRLF にして書くと \r を含む値もクォート対象になる。
    # 1 行ずつ書き、行末の CRLF だけを LF に置き換える
    line = io.StringIO()
    writer = csv.writer(
        line,
        delimiter=",",
        quotechar='"',
        quoting=csv.QUOTE_MINIMAL,
        doublequote=True,
        lineterminator=_ROW_END,
    )
    out: list[str] = []
    for row in [list(frame.columns), *frame.itertuples(index=False, name=None)]:
        line.seek(0)
        line.truncate()
        writer.writerow(row)
        out.append(line.getvalue()[: -len(_ROW_END)] + "\n")
    return "".join(out)


def export_csv_text(records: Iterable[Record]) -> str:
    return _frame_to_csv(records_frame(records))


def export_csv(
    records: Iterable[Record],
    output_directory: Path,
    *,
    prefix: str = "Inventory",
    now: datetime | None = None,
) -> Path:
    """Write ``<prefix>_<yyyy-MM-dd_HHmm>.csv`` and return its path."""
    frame = records_frame(records)
    text = _frame_to_csv(frame)
    path = output_path(output_directory, prefix, "csv", now)
    path.write_text(text, encoding="utf-8", newline="")
    logger.info(f"exported {len(frame)} records to {path.name}")
    return path
