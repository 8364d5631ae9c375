from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from countsheet.services.output_paths import output_path, timestamped_filename


def test_timestamped_filename_format():
    assert timestamped_filename("Inventory", "xlsx", datetime(2025, 3, 4, 7, 8, 59)) == "Inventory_2025-03-04_0708.xlsx"
    assert timestamped_filename("Count", ".csv", datetime(2025, 3, 4, 17, 0)) == "Count_2025-03-04_1700.csv"


def test_timestamped_filename_defaults_to_now():
    assert re.fullmatch(r"Inventory_\d{4}-\d{2}-\d{2}_\d{4}\.xlsx", timestamped_filename("Inventory", "xlsx"))


def test_output_path_creates_directory(tmp_path: Path):
    p = output_path(tmp_path / "a" / "b", "Inventory", "csv", datetime(2025, 1, 1, 0, 0))
    assert p.parent.is_dir()
    assert p.name == "Inventory_2025-01-01_0000.csv"
