from __future__ import annotations

from datetime import datetime
from pathlib import Path

"""Timestamped output filenames: ``<Prefix>_<yyyy-MM-dd_HHmm>.<ext>`` (分単位)."""

__all__ = [
    "TIMESTAMP_FMT",
    "timestamped_filename",
    "output_path",
]

TIMESTAMP_FMT = "%Y-%m-%d_%H%M"


def timestamped_filename(prefix: str, ext: str, now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime(TIMESTAMP_FMT)
    return f"{prefix}_{stamp}.{ext.lstrip('.')}"


def output_path(directory: Path, prefix: str, ext: str, now: datetime | None = None) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    return directory / timestamped_filename(prefix, ext, now)
