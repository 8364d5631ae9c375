from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

"""Configuration dataclass for the count-sheet engine.

Loader (countsheet.config.loader) が YAML を検証した後にこの型へ詰め替える。
"""

__all__ = [
    "CountSheetConfig",
]


@dataclass(frozen=True)
class CountSheetConfig:
    """Root configuration object.

    Environment variable COUNTSHEET_OUTPUT_DIR takes precedence over
    output_directory.
    """
    output_directory: Path  # 書き戻し xlsx / CSV の出力先
    xlsx_prefix: str = "Inventory"
    csv_prefix: str = "Inventory"
    scratch_directory: Path | None = None  # None ならシステムの一時ディレクトリ
    stale_scratch_minutes: int = 60  # これより古い作業ディレクトリは掃除対象
    strict_rows: bool = False  # True: 行が見つからない更新を失敗扱い
    session_ttl_minutes: int = 720
