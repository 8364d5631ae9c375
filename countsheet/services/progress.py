from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

書き戻し時の更新件数の進捗表示。
- TTY でない (CI / パイプ) 場合は tqdm を生成しない (ANSI 制御文字の混入防止)
- 単一インスタンス、with で確実に close
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Return True when stdout is a TTY and a progress bar should be shown."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress tracker over the pending updates of one write-back."""

    def __init__(self, total: int, *, description: str = "Writing counts") -> None:
        """Initialize progress tracker.

        Args:
            total: number of updates to apply
            description: progress bar label
        """
        self.total = total
        self.description = description
        self.done = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, row: int | None = None) -> None:
        """Count one handled update (row number is only shown as postfix)."""
        self.done += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            if row is not None:
                self.pbar.set_postfix(row=row)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
