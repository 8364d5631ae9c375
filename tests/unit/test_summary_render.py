from __future__ import annotations

import doctest
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from countsheet.models.patch_result import PatchResult
from countsheet.services import summary
from countsheet.services.summary import format_seconds, render_export_summary, render_patch_summary


@pytest.mark.parametrize("value,expected", [(0, "0"), (2.0, "2"), (1.23456, "1.235"), (0.0012, "0.0012")])
def test_format_seconds(value, expected):
    assert format_seconds(value) == expected


def test_render_patch_summary():
    start = datetime(2025, 1, 1, tzinfo=UTC)
    result = PatchResult(
        template_path=Path("data/count.xlsx"),
        output_path=Path("output/Inventory_2025-01-01_0000.xlsx"),
        worksheet_path="xl/worksheets/sheet1.xml",
        replaced_rows=[2],
        inserted_rows=[3, 4],
        dropped_rows=[9],
        start_time=start,
        end_time=start + timedelta(seconds=1.5),
    )
    assert render_patch_summary(result) == (
        "SUMMARY file=count.xlsx output=Inventory_2025-01-01_0000.xlsx "
        "updates=4 replaced=1 inserted=2 dropped=1 elapsed_sec=1.5"
    )


def test_render_export_summary():
    assert render_export_summary("count.xlsx", "Inventory_2025-01-01_0000.csv", 3) == (
        "SUMMARY file=count.xlsx output=Inventory_2025-01-01_0000.csv records=3"
    )


def test_docstring_examples():
    assert doctest.testmod(summary).failed == 0
