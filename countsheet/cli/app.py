from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..excel.reader import (
    InvalidFormatError,
    MissingColumnsError,
    NoDataRowsError,
    SourceNotFoundError,
    parse_count_sheet,
)
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import enable_debug, log_summary, setup_logging
from ..models.record import ParseResult
from ..services.csv_export import export_csv, records_frame
from ..services.progress import ProgressTracker
from ..services.scratch import sweep_stale_scratch
from ..services.summary import render_export_summary, render_patch_summary
from ..services.template_patcher import TemplateNotFoundError, WriteFailedError, patch_template

"""CLI entrypoint.

Commands:
- inspect <xlsx>                 数量列と先頭レコードを表示
- export-csv <xlsx>              CSV を出力
- patch <xlsx> --counts <file>   row: quantity のマッピングを元テンプレートのコピーへ書き戻し

Exit codes: 0 成功 / 1 致命的 (設定・解析・書き込み失敗) / 2 一部の更新が反映されず
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

_PARSE_ERRORS = (SourceNotFoundError, InvalidFormatError, MissingColumnsError, NoDataRowsError)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so COUNTSHEET_OUTPUT_DIR can override the configured output directory."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="countsheet", description="Inventory count template round-trip")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Path to the YAML config")
    sub = p.add_subparsers(dest="command", required=True)

    inspect = sub.add_parser("inspect", help="Print the quantity column and the first records")
    inspect.add_argument("source", help="Count template (.xlsx)")
    inspect.add_argument("--rows", type=int, default=5, help="Number of records to show")

    export = sub.add_parser("export-csv", help="Export parsed records as CSV")
    export.add_argument("source", help="Count template (.xlsx)")

    patch = sub.add_parser("patch", help="Write counted quantities into a copy of the template")
    patch.add_argument("source", help="Original count template (.xlsx)")
    patch.add_argument("--counts", required=True, help="YAML/JSON mapping of row number -> quantity")
    return p.parse_args(argv)


def _load_counts(path: Path) -> dict[int, int]:
    """Read ``row: quantity`` pairs. Later duplicates of the same row win."""
    if not path.exists():
        raise ValueError(f"counts file not found: {path}")
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"invalid counts file: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("counts file must be a mapping of row number to quantity")
    updates: dict[int, int] = {}
    for key, value in data.items():
        try:
            row = int(key)
            quantity = int(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid count entry {key!r}: {value!r}") from e
        if row < 2 or quantity < 0:
            raise ValueError(f"invalid count entry {key!r}: {value!r}")
        updates[row] = quantity
    return updates


def _parse(source: Path, logger) -> ParseResult | None:
    try:
        return parse_count_sheet(source)
    except _PARSE_ERRORS as e:
        logger.error(f"parse: {e}")
        return None


def _inspect(source: Path, rows: int, logger) -> int:
    result = _parse(source, logger)
    if result is None:
        return EXIT_FATAL
    print(f"FILE: {source.name}")
    print(f"  quantity_column={result.quantity_column.letter} records={len(result.records)}")
    ordered = sorted(result.records, key=lambda r: r.row_position)
    frame = records_frame(ordered).head(rows)
    frame.insert(0, "Row", [r.row_position for r in ordered[:len(frame)]])
    print(frame.to_string(index=False))
    return EXIT_SUCCESS


def _export(source: Path, cfg, logger) -> int:
    result = _parse(source, logger)
    if result is None:
        return EXIT_FATAL
    try:
        path = export_csv(result.records, cfg.output_directory, prefix=cfg.csv_prefix)
    except OSError as e:
        logger.error(f"export: {e}")
        return EXIT_FATAL
    summary = render_export_summary(source.name, path.name, len(result.records))
    log_summary(summary[len("SUMMARY "):])
    return EXIT_SUCCESS


def _patch(source: Path, counts: Path, cfg, logger) -> int:
    try:
        updates = _load_counts(counts)
    except ValueError as e:
        logger.error(f"counts: {e}")
        return EXIT_FATAL
    if not source.is_file():
        logger.error(f"template: original template not found: {source}")
        return EXIT_FATAL
    result = _parse(source, logger)
    if result is None:
        return EXIT_FATAL

    sweep_stale_scratch(cfg.scratch_directory, cfg.stale_scratch_minutes * 60)
    error_log = ErrorLogBuffer()
    try:
        with ProgressTracker(len(updates)) as progress:
            patched = patch_template(
                source,
                result.quantity_column,
                updates,
                cfg,
                error_log=error_log,
                progress=progress,
            )
    except TemplateNotFoundError as e:
        logger.error(f"template: {e}")
        return EXIT_FATAL
    except WriteFailedError as e:
        logger.error(f"write: {e.reason}")
        return EXIT_FATAL
    finally:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info(f"error log: {log_path}")

    summary = render_patch_summary(patched)
    log_summary(summary[len("SUMMARY "):])
    return EXIT_PARTIAL_FAILURE if patched.dropped_rows else EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 空リスト [] を渡された場合に sys.argv が混入しないよう None のときのみ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        enable_debug()

    source = Path(args.source)
    if args.command == "inspect":
        return _inspect(source, args.rows, logger)

    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "export-csv":
        return _export(source, cfg, logger)
    return _patch(source, Path(args.counts), cfg, logger)
