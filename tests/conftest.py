# Shared pytest fixtures
from __future__ import annotations
import tempfile
import zipfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from countsheet.logging.init import reset_logging

HEADER = ["Item Description", "Dist #", "Quantity", "UOM", "Location", "Area", "Place"]
TOMATOES = ["Tomatoes", "D100", 12, "CASE", "Walk-in", "Kitchen", "Shelf-2"]

NS_MAIN = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"

_CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types"><Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/><Default Extension="xml" ContentType="application/xml"/><Override PartName="/xl/workbook.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"/><Override PartName="/xl/worksheets/sheet1.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/></Types>"""

_ROOT_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"><Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="xl/workbook.xml"/></Relationships>"""

_WORKBOOK = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<workbook xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main" xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships"><sheets><sheet name="Count" sheetId="1" r:id="rId1"/></sheets></workbook>"""

_WORKBOOK_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"><Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet" Target="{target}"/></Relationships>"""

_STYLES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<styleSheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main"><numFmts count="1"><numFmt numFmtId="164" formatCode="0.00"/></numFmts></styleSheet>"""


def sheet_xml(rows: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<worksheet xmlns="{NS_MAIN}"><dimension ref="A1:G9"/><sheetData>{rows}</sheetData>'
        '<pageMargins left="0.7" right="0.7" top="0.75" bottom="0.75" header="0.3" footer="0.3"/></worksheet>'
    )


def shared_strings_xml(strings: list[str]) -> str:
    items = "".join(f"<si><t>{s}</t></si>" for s in strings)
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<sst xmlns="{NS_MAIN}" count="{len(strings)}" uniqueCount="{len(strings)}">{items}</sst>'
    )


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "output").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("COUNTSHEET_OUTPUT_DIR", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """output_directory: ./output
xlsx_prefix: Inventory
csv_prefix: Inventory
scratch_directory: ./scratch
stale_scratch_minutes: 60
strict_rows: false
session_ttl_minutes: 30
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "countsheet.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_count_sheet(temp_workdir: Path) -> Callable[..., Path]:
    """Build an xlsx with pandas (openpyxl engine): rows[0] is the header row."""
    def _make(rows: list[list[object]], name: str = "count.xlsx") -> Path:
        p = temp_workdir / "data" / name
        with pd.ExcelWriter(p) as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name="Count", header=False, index=False)
        return p
    return _make


@pytest.fixture()
def make_raw_xlsx(temp_workdir: Path) -> Callable[..., Path]:
    """Build an xlsx from literal worksheet markup (full control over cell encoding)."""
    def _make(
        rows: str,
        shared: list[str] | None = None,
        name: str = "raw.xlsx",
        *,
        with_workbook: bool = True,
        sheet_path: str = "xl/worksheets/sheet1.xml",
    ) -> Path:
        p = temp_workdir / "data" / name
        with zipfile.ZipFile(p, "w", zipfile.ZIP_DEFLATED) as z:
            z.writestr("[Content_Types].xml", _CONTENT_TYPES)
            z.writestr("_rels/.rels", _ROOT_RELS)
            if with_workbook:
                z.writestr("xl/workbook.xml", _WORKBOOK)
                target = sheet_path[len("xl/"):] if sheet_path.startswith("xl/") else "/" + sheet_path
                z.writestr("xl/_rels/workbook.xml.rels", _WORKBOOK_RELS.format(target=target))
            z.writestr("xl/styles.xml", _STYLES)
            if shared is not None:
                z.writestr("xl/sharedStrings.xml", shared_strings_xml(shared))
            if sheet_path:
                z.writestr(sheet_path, sheet_xml(rows))
        return p
    return _make


@pytest.fixture()
def tomatoes_sheet(make_count_sheet) -> Path:
    return make_count_sheet([HEADER, TOMATOES])
