from __future__ import annotations

import logging
import shutil
import tempfile
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

"""Scratch directory handling for template write-back.

- 1 回の書き戻しにつき 1 つの一意な作業ディレクトリ (uuid 付き prefix)
- 成功/失敗に関わらず with ブロックを抜けると必ず削除
- 中断されたプロセスが残した古いディレクトリは sweep_stale_scratch で時間ベースに掃除
"""

__all__ = [
    "SCRATCH_PREFIX",
    "scratch_directory",
    "sweep_stale_scratch",
]

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "countsheet-"


@contextmanager
def scratch_directory(root: Path | None = None) -> Iterator[Path]:
    """Create a collision-free scratch directory and always remove it on exit."""
    if root is not None:
        root.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=f"{SCRATCH_PREFIX}{uuid.uuid4().hex}-", dir=root))
    logger.debug(f"scratch created: {path}")
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug(f"scratch released: {path}")


def sweep_stale_scratch(root: Path | None, max_age_seconds: float, *, now: float | None = None) -> list[Path]:
    """Remove scratch directories older than ``max_age_seconds``.

    Args:
        root: directory holding scratch directories (None = system temp dir)
        max_age_seconds: minimum age (by mtime) for removal
        now: reference epoch seconds (tests)

    Returns:
        Paths that were removed
    """
    base = root if root is not None else Path(tempfile.gettempdir())
    if not base.is_dir():
        return []
    cutoff = (now if now is not None else time.time()) - max_age_seconds
    removed: list[Path] = []
    for entry in base.iterdir():
        if not entry.name.startswith(SCRATCH_PREFIX) or not entry.is_dir():
            continue
        try:
            if entry.stat().st_mtime >= cutoff:
                continue
            shutil.rmtree(entry)
        except OSError as e:
            logger.warning(f"stale scratch not removed: {entry}: {e}")
            continue
        removed.append(entry)
    if removed:
        logger.info(f"removed {len(removed)} stale scratch director{'y' if len(removed) == 1 else 'ies'}")
    return removed
