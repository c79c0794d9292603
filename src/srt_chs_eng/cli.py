from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from srt_chs_eng.errors import EnvironmentSetupError, SubtitlePublishError, UsageError
from srt_chs_eng.io.file_io import (
    default_output_descriptor,
    reset_output_descriptor,
    write_output_descriptor,
)
from srt_chs_eng.pipeline.derive import WrapConfig
from srt_chs_eng.pipeline.publish import GitRepository, PublishConfig
from srt_chs_eng.pipeline.runner import convert_and_publish
from srt_chs_eng.pipeline.transforms import AwkTransformStages
from srt_chs_eng.pipeline.workspace import RunContext, cleanup_run, init_run
from srt_chs_eng.utils.prereqs import require_awk


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="srt-chs-eng",
        description=(
            "Generate <basename>.Eng&Chs.srt and <basename>.Chs.srt from a bilingual "
            "subtitle and force-push them back when they changed."
        ),
    )
    p.add_argument("source_checkout", help="Checkout directory of the source repository")
    p.add_argument("source_file", help="Source subtitle path, relative to the checkout (e.g. web/web.srt)")
    p.add_argument("target_dir", help="Output directory, relative to the checkout (e.g. web)")
    p.add_argument("tools_checkout", help="srt-tools checkout holding scripts/awk/*.awk")
    p.add_argument("source_ref", help="Full git ref of the source branch (e.g. refs/heads/main)")
    p.add_argument(
        "split_threshold",
        nargs="?",
        type=int,
        default=20,
        help="Wrap threshold for Chinese lines (default: 20)",
    )
    p.add_argument(
        "bracket_factor",
        nargs="?",
        type=float,
        default=2,
        help="Weight of bracketed text when wrapping (default: 2)",
    )
    return p


def _wrap_config(args: argparse.Namespace) -> WrapConfig:
    if args.split_threshold <= 0:
        raise UsageError(f"split_threshold must be positive, got {args.split_threshold}")
    if args.bracket_factor <= 0:
        raise UsageError(f"bracket_factor must be positive, got {args.bracket_factor}")
    return WrapConfig(split_threshold=args.split_threshold, bracket_factor=args.bracket_factor)


def _echo_run_log(ctx: RunContext) -> None:
    if ctx.run_log_path.exists():
        print(ctx.run_log_path.read_text(encoding="utf-8"), end="")


def _write_descriptor(descriptor: Path, eng_path: str | None = None, chs_path: str | None = None) -> None:
    try:
        if eng_path is None or chs_path is None:
            reset_output_descriptor(descriptor)
        else:
            write_output_descriptor(descriptor, eng_path, chs_path)
    except OSError as exc:
        raise EnvironmentSetupError(f"Cannot write output descriptor {descriptor}: {exc}") from exc


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    descriptor = default_output_descriptor()
    ctx: RunContext | None = None
    try:
        _write_descriptor(descriptor)
        wrap_config = _wrap_config(args)
        ctx = init_run(
            args.source_checkout,
            args.source_file,
            args.target_dir,
            args.tools_checkout,
            args.source_ref,
            work_root=os.environ.get("RUNNER_TEMP") or None,
        )
        stages = AwkTransformStages.from_tools(ctx.tools_path)
        require_awk()
        result = convert_and_publish(
            ctx,
            stages,
            GitRepository(ctx.source_root),
            wrap_config,
            PublishConfig(),
        )
        if result.published:
            _write_descriptor(descriptor, ctx.eng_chs_rel, ctx.chs_rel)
        else:
            _write_descriptor(descriptor, "", "")
    except SubtitlePublishError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return exc.exit_code
    finally:
        if ctx is not None:
            _echo_run_log(ctx)
            cleanup_run(ctx)

    if not result.published:
        print("Nothing to commit.")
        return 0

    print(f"Published to {result.branch}:")
    for path in result.paths:
        print(f"  - {path}")
    print("Outputs:")
    print(f"  - {ctx.eng_chs_rel}")
    print(f"  - {ctx.chs_rel}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
