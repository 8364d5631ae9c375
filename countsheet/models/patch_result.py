from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

"""Patch lifecycle state and result models for the template writer.

State transitions: unopened → extracted → patched → repacked → done
(failed is reachable from every step).
"""

__all__ = [
    "PatchState",
    "PatchResult",
]


class PatchState(Enum):
    """Lifecycle of one template write-back.

    - UNOPENED: nothing touched yet
    - EXTRACTED: output copy created and unpacked into the scratch directory
    - PATCHED: worksheet markup updated in the scratch directory
    - REPACKED: output container rebuilt from the scratch directory
    - DONE: scratch directory released
    - FAILED: any step raised
    """
    UNOPENED = "unopened"
    EXTRACTED = "extracted"
    PATCHED = "patched"
    REPACKED = "repacked"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PatchResult:
    """Outcome of a completed write-back."""
    template_path: Path
    output_path: Path
    worksheet_path: str  # コンテナ内のシートパス
    replaced_rows: list[int] = field(default_factory=list)  # 既存セルを置換した行
    inserted_rows: list[int] = field(default_factory=list)  # セルを新規挿入した行
    dropped_rows: list[int] = field(default_factory=list)  # 行要素が見つからず未反映
    start_time: datetime | None = None
    end_time: datetime | None = None
    state: PatchState = PatchState.DONE

    @property
    def applied(self) -> int:
        return len(self.replaced_rows) + len(self.inserted_rows)

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()
