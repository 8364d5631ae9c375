from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..excel.columns import ColumnAddress
from .record import ParseResult, Record

"""Counting session model.

取り込んだ Record 群を保持し、オペレータが入力した数量を記録する。
書き戻し用の PendingUpdate (row_position -> 数量) はここから作る。
同一行への複数回の入力は後勝ち (累積しない)。
"""

__all__ = [
    "CountItem",
    "CountSession",
]


@dataclass
class CountItem:
    """A record plus its counting state."""
    record: Record
    count: int = 0
    is_counted: bool = False
    counted_at: datetime | None = None

    @property
    def row_position(self) -> int:
        return self.record.row_position

    @property
    def location_key(self) -> str:
        parts = [self.record.location, self.record.area, self.record.place]
        return " > ".join(p for p in parts if p)


@dataclass
class CountSession:
    """In-memory counting session over one imported template."""
    source_path: Path
    quantity_column: ColumnAddress
    items: list[CountItem] = field(default_factory=list)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    imported_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_parse_result(cls, source_path: Path, result: ParseResult) -> CountSession:
        items = [CountItem(record=r, count=r.quantity) for r in result.records]
        return cls(source_path=source_path, quantity_column=result.quantity_column, items=items)

    @property
    def source_filename(self) -> str:
        return self.source_path.name

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def counted_count(self) -> int:
        return sum(1 for item in self.items if item.is_counted)

    @property
    def uncounted_count(self) -> int:
        return self.total_count - self.counted_count

    def item_at(self, row_position: int) -> CountItem:
        for item in self.items:
            if item.row_position == row_position:
                return item
        raise KeyError(row_position)

    def record_count(self, row_position: int, quantity: int, *, at: datetime | None = None) -> CountItem:
        """Record a counted quantity for the item at ``row_position``.

        Raises:
            KeyError: no item with that row position
            ValueError: negative quantity
        """
        if quantity < 0:
            raise ValueError(f"quantity must not be negative: {quantity}")
        item = self.item_at(row_position)
        item.count = quantity
        item.is_counted = True
        item.counted_at = at or datetime.now(UTC)
        return item

    def pending_updates(self) -> dict[int, int]:
        """row_position -> quantity for every counted item."""
        updates: dict[int, int] = {}
        for item in self.items:
            if item.is_counted:
                updates[item.row_position] = item.count
        return updates

    def records(self) -> list[Record]:
        """Records carrying the current counts, ordered by row position."""
        return sorted(
            (item.record.with_quantity(item.count) for item in self.items),
            key=lambda r: r.row_position,
        )
