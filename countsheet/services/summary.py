from __future__ import annotations

from ..models.patch_result import PatchResult

"""SUMMARY line rendering for CLI output.

Format:
    SUMMARY file=<template> output=<name> updates=<n> replaced=<n> inserted=<n> dropped=<n> elapsed_sec=<x>
    SUMMARY file=<source> output=<name> records=<n>
"""

__all__ = [
    "format_seconds",
    "render_patch_summary",
    "render_export_summary",
]


def format_seconds(value: float) -> str:
    """Integers without a decimal point, tiny values without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_patch_summary(result: PatchResult) -> str:
    """Render the SUMMARY line for one template write-back.

    Examples:
        >>> from pathlib import Path
        >>> r = PatchResult(
        ...     template_path=Path("count.xlsx"), output_path=Path("Inventory_2025-01-01_1000.xlsx"),
        ...     worksheet_path="xl/worksheets/sheet1.xml", replaced_rows=[2, 3], inserted_rows=[4],
        ...     dropped_rows=[],
        ... )
        >>> render_patch_summary(r)
        'SUMMARY file=count.xlsx output=Inventory_2025-01-01_1000.xlsx updates=3 replaced=2 inserted=1 dropped=0 elapsed_sec=0'
    """
    total = result.applied + len(result.dropped_rows)
    return (
        f"SUMMARY file={result.template_path.name} "
        f"output={result.output_path.name} "
        f"updates={total} "
        f"replaced={len(result.replaced_rows)} "
        f"inserted={len(result.inserted_rows)} "
        f"dropped={len(result.dropped_rows)} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )


def render_export_summary(source: str, output: str, records: int) -> str:
    return f"SUMMARY file={source} output={output} records={records}"
