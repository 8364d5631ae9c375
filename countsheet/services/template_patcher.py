from __future__ import annotations

import logging
import shutil
import zipfile
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath

from ..excel.columns import ColumnAddress
from ..excel.markup import WorksheetPatch, patch_worksheet
from ..excel.workbook import first_worksheet_path
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import CountSheetConfig
from ..models.error_record import ErrorRecord
from ..models.patch_result import PatchResult, PatchState
from .output_paths import output_path
from .progress import ProgressTracker
from .scratch import scratch_directory

"""Template-preserving write-back of counted quantities.

元のテンプレートは参照のみで変更しない。書き込みは常に新しいコピーに対して行う。

State transitions (PatchState):
    unopened → extracted : テンプレート存在確認、タイムスタンプ付き出力パスへバイト単位コピー、
                           コピーを一意な作業ディレクトリへ展開
    extracted → patched  : 最初のシートの XML を探し、更新ごとにセルを置換/挿入
    patched → repacked   : 作業ディレクトリの全ファイルを元のエントリ順・圧縮方式で再アーカイブ
                           (シートに変更が無ければコピーをそのまま残す → 元ファイルとバイト一致)
    repacked → done      : 作業ディレクトリ解放 (失敗時も必ず解放)

Step 1 以降の失敗は WriteFailedError。構造的な不正は InvalidTemplateError (サブクラス)。
"""

__all__ = [
    "TemplateNotFoundError",
    "WriteFailedError",
    "InvalidTemplateError",
    "TemplatePatcher",
    "patch_template",
]

logger = logging.getLogger(__name__)


class TemplateNotFoundError(Exception):
    """Raised when the original template is missing at the given path."""


class WriteFailedError(Exception):
    """Raised when any step of copy / extract / patch / repack fails."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InvalidTemplateError(WriteFailedError):
    """Write failure caused by a structurally invalid template."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"invalid template: {reason}")


def _clone_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    new_info = zipfile.ZipInfo(info.filename, info.date_time)
    new_info.compress_type = info.compress_type
    new_info.comment = info.comment
    new_info.create_system = info.create_system
    new_info.external_attr = info.external_attr
    new_info.internal_attr = info.internal_attr
    return new_info


class TemplatePatcher:
    """Writes a set of ``row -> quantity`` updates into a copy of a template.

    One instance handles one write-back; ``state`` follows PatchState.
    """

    def __init__(
        self,
        template_path: Path,
        quantity_column: ColumnAddress,
        *,
        output_directory: Path,
        prefix: str = "Inventory",
        scratch_root: Path | None = None,
        strict_rows: bool = False,
        error_log: ErrorLogBuffer | None = None,
        progress: ProgressTracker | None = None,
        now: datetime | None = None,
    ) -> None:
        self.template_path = template_path
        self.quantity_column = quantity_column
        self.output_directory = output_directory
        self.prefix = prefix
        self.scratch_root = scratch_root
        self.strict_rows = strict_rows
        self.error_log = error_log
        self.progress = progress
        self.now = now
        self.state = PatchState.UNOPENED
        self._created = False

    def run(self, updates: Mapping[int, int]) -> PatchResult:
        """Execute the full write-back.

        Args:
            updates: physical row number -> new quantity (last write per row already applied)

        Returns:
            PatchResult describing the new container

        Raises:
            TemplateNotFoundError: template path does not exist
            WriteFailedError: copy / extract / patch / repack failed
                (InvalidTemplateError when the template itself is malformed)
        """
        start_time = datetime.now(UTC)
        if not self.template_path.is_file():
            self.state = PatchState.FAILED
            raise TemplateNotFoundError(f"original template not found: {self.template_path}")

        output: Path | None = None
        self._created = False
        try:
            output = output_path(self.output_directory, self.prefix, "xlsx", self.now)
            if output.exists() and output.samefile(self.template_path):
                raise WriteFailedError(f"output path is the template itself: {output}")
            with scratch_directory(self.scratch_root) as scratch:
                infos = self._extract(output, scratch)
                sheet_path, original, patch = self._patch(scratch, updates)
                self._repack(output, scratch, infos, changed=patch.xml != original)
            self.state = PatchState.DONE
        except WriteFailedError as e:
            self._fail(output, e)
            raise
        except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            failure = WriteFailedError(f"archive I/O: {e}")
            self._fail(output, failure)
            raise failure from e

        result = PatchResult(
            template_path=self.template_path,
            output_path=output,
            worksheet_path=sheet_path,
            replaced_rows=patch.replaced_rows,
            inserted_rows=patch.inserted_rows,
            dropped_rows=patch.dropped_rows,
            start_time=start_time,
            end_time=datetime.now(UTC),
            state=self.state,
        )
        logger.info(
            f"wrote {output.name}: replaced={len(result.replaced_rows)} "
            f"inserted={len(result.inserted_rows)} dropped={len(result.dropped_rows)}"
        )
        return result

    # unopened -> extracted
    def _extract(self, output: Path, scratch: Path) -> list[zipfile.ZipInfo]:
        shutil.copyfile(self.template_path, output)
        self._created = True
        try:
            with zipfile.ZipFile(output, "r") as archive:
                infos = archive.infolist()
                for info in infos:
                    parts = PurePosixPath(info.filename).parts
                    if info.filename.startswith("/") or ".." in parts:
                        raise InvalidTemplateError(f"unsafe member name {info.filename!r}")
                archive.extractall(scratch)
        except zipfile.BadZipFile as e:
            raise InvalidTemplateError(f"not a zip container: {e}") from e
        self.state = PatchState.EXTRACTED
        logger.debug(f"extracted {len(infos)} parts of {output.name}")
        return infos

    # extracted -> patched
    def _patch(self, scratch: Path, updates: Mapping[int, int]) -> tuple[str, bytes, WorksheetPatch]:
        def read_part(name: str) -> bytes | None:
            part = scratch / name
            return part.read_bytes() if part.is_file() else None

        sheet_path = first_worksheet_path(read_part)
        if sheet_path is None:
            raise InvalidTemplateError("worksheet document not found")
        original = (scratch / sheet_path).read_bytes()

        on_update = self.progress.advance if self.progress is not None else None
        patch = patch_worksheet(original, self.quantity_column.letter, updates, on_update=on_update)

        if patch.dropped_rows:
            if self.strict_rows:
                raise WriteFailedError(f"rows not found in worksheet: {patch.dropped_rows}")
            # 行要素が無い更新は反映せずに記録のみ (strict_rows で失敗扱いに切替可能)
            logger.warning(f"rows not found, updates dropped: {patch.dropped_rows}")
            if self.error_log is not None:
                for row in patch.dropped_rows:
                    self.error_log.append(
                        ErrorRecord.create(
                            file=self.template_path.name,
                            sheet=sheet_path,
                            row=row,
                            error_type="ROW_NOT_FOUND",
                            message=f"row {row} not present; {self.quantity_column.letter}{row} not written",
                        )
                    )

        if patch.xml != original:
            (scratch / sheet_path).write_bytes(patch.xml)
        self.state = PatchState.PATCHED
        return sheet_path, original, patch

    # patched -> repacked
    def _repack(self, output: Path, scratch: Path, infos: list[zipfile.ZipInfo], *, changed: bool) -> None:
        if not changed:
            # シート無変更: コピー済みコンテナをそのまま使う
            self.state = PatchState.REPACKED
            return
        output.unlink()
        written: set[str] = set()
        with zipfile.ZipFile(output, "w") as archive:
            for info in infos:
                data = b"" if info.is_dir() else (scratch / info.filename).read_bytes()
                archive.writestr(_clone_info(info), data)
                written.add(info.filename)
            for path in sorted(scratch.rglob("*")):
                name = path.relative_to(scratch).as_posix()
                if path.is_file() and name not in written:
                    archive.write(path, name, compress_type=zipfile.ZIP_DEFLATED)
        self.state = PatchState.REPACKED

    def _fail(self, output: Path | None, error: WriteFailedError) -> None:
        self.state = PatchState.FAILED
        # この実行で作成した出力のみ削除 (既存ファイル・テンプレートは残す)
        if self._created and output is not None and output.exists():
            output.unlink()
        logger.error(f"write failed for {self.template_path.name}: {error.reason}")
        if self.error_log is not None:
            self.error_log.append(
                ErrorRecord.create(
                    file=self.template_path.name,
                    sheet="<FILE_LEVEL>",
                    row=-1,
                    error_type="WRITE_FAILED",
                    message=error.reason,
                )
            )


def patch_template(
    template_path: Path,
    quantity_column: ColumnAddress,
    updates: Mapping[int, int],
    config: CountSheetConfig,
    *,
    error_log: ErrorLogBuffer | None = None,
    progress: ProgressTracker | None = None,
    now: datetime | None = None,
) -> PatchResult:
    """Convenience wrapper: build a TemplatePatcher from configuration and run it."""
    patcher = TemplatePatcher(
        template_path,
        quantity_column,
        output_directory=config.output_directory,
        prefix=config.xlsx_prefix,
        scratch_root=config.scratch_directory,
        strict_rows=config.strict_rows,
        error_log=error_log,
        progress=progress,
        now=now,
    )
    return patcher.run(updates)
