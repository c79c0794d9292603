from __future__ import annotations

import datetime as _dt
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from srt_chs_eng.errors import (
    EnvironmentSetupError,
    SourceFileNotFoundError,
    SourceTreeNotFoundError,
    ToolsNotFoundError,
    UsageError,
)


ENG_CHS_SUFFIX = ".Eng&Chs.srt"
CHS_SUFFIX = ".Chs.srt"


@dataclass
class RunContext:
    source_root: Path
    source_file_rel: str
    target_dir_rel: str
    tools_path: Path
    source_ref: str
    work_dir: Path
    run_log_path: Path

    @property
    def source_path(self) -> Path:
        return self.source_root / self.source_file_rel

    @property
    def base_name(self) -> str:
        return PurePosixPath(self.source_file_rel).stem

    @property
    def eng_chs_rel(self) -> str:
        return str(PurePosixPath(self.target_dir_rel) / f"{self.base_name}{ENG_CHS_SUFFIX}")

    @property
    def chs_rel(self) -> str:
        return str(PurePosixPath(self.target_dir_rel) / f"{self.base_name}{CHS_SUFFIX}")

    def destination(self, relative_path: str) -> Path:
        return self.source_root / relative_path


def _timestamp() -> str:
    return _dt.datetime.now(_dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def log_event(ctx: RunContext, message: str) -> None:
    with ctx.run_log_path.open("a", encoding="utf-8") as log_file:
        log_file.write(f"[{_timestamp()}] {message}\n")


def _require_inside(root: Path, relative: str, label: str) -> Path:
    candidate = Path(relative)
    resolved = (root / candidate).resolve()
    if candidate.is_absolute() or not resolved.is_relative_to(root):
        raise UsageError(f"{label} must stay inside the source checkout: {relative}")
    return resolved


def init_run(
    source_root: str | Path,
    source_file: str,
    target_dir: str,
    tools_path: str | Path,
    source_ref: str,
    *,
    work_root: str | Path | None = None,
) -> RunContext:
    """Check the run inputs and create a fresh temporary workspace.

    Checks happen in a fixed order (source tree, source file, tools checkout)
    so the first missing piece decides the error. ``source_file`` and
    ``target_dir`` must resolve inside the source tree. The workspace holds
    the run log and is owned by the caller; see ``cleanup_run``.
    """

    root = Path(source_root).expanduser().resolve()
    if not root.is_dir():
        raise SourceTreeNotFoundError(f"Source checkout path does not exist: {root}")

    source_path = _require_inside(root, source_file, "source_file")
    _require_inside(root, target_dir, "target_dir")
    if not source_path.is_file():
        raise SourceFileNotFoundError(f"Source srt file not found: {source_path}")

    tools = Path(tools_path).expanduser().resolve()
    if not tools.is_dir():
        raise ToolsNotFoundError(f"srt-tools checkout not found: {tools}")

    try:
        if work_root is not None:
            Path(work_root).mkdir(parents=True, exist_ok=True)
        work_dir = Path(
            tempfile.mkdtemp(prefix="srt_chs_eng.", dir=str(work_root) if work_root else None)
        )
    except OSError as exc:
        raise EnvironmentSetupError(f"Cannot create run workspace: {exc}") from exc

    ctx = RunContext(
        source_root=root,
        source_file_rel=source_file,
        target_dir_rel=target_dir,
        tools_path=tools,
        source_ref=source_ref,
        work_dir=work_dir,
        run_log_path=work_dir / "run.log",
    )
    log_event(ctx, f"init_run({source_file} -> {target_dir or '.'}, ref={source_ref})")
    return ctx


def cleanup_run(ctx: RunContext) -> None:
    shutil.rmtree(ctx.work_dir, ignore_errors=True)
