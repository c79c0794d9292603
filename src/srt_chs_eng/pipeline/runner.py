from __future__ import annotations

from srt_chs_eng.errors import SourceFileNotFoundError
from srt_chs_eng.io.file_io import read_text_exact
from srt_chs_eng.pipeline.changes import CandidateArtifact, build_change_set
from srt_chs_eng.pipeline.derive import (
    CHS_ARTIFACT,
    ENG_CHS_ARTIFACT,
    WrapConfig,
    derive_artifacts,
    validate_artifacts,
)
from srt_chs_eng.pipeline.publish import (
    PublishConfig,
    PublishResult,
    VersionControl,
    publish_changes,
)
from srt_chs_eng.pipeline.transforms import TransformStages
from srt_chs_eng.pipeline.workspace import RunContext, log_event


def read_source(ctx: RunContext) -> str:
    log_event(ctx, f"read_source: {ctx.source_file_rel}")
    try:
        return read_text_exact(ctx.source_path)
    except OSError as exc:
        raise SourceFileNotFoundError(f"Cannot read source srt file: {exc}") from exc


def convert_and_publish(
    ctx: RunContext,
    stages: TransformStages,
    repo: VersionControl,
    wrap_config: WrapConfig | None = None,
    publish_config: PublishConfig | None = None,
) -> PublishResult:
    source_text = read_source(ctx)
    artifacts = derive_artifacts(ctx, stages, source_text, wrap_config)
    validate_artifacts(artifacts)

    candidates = [
        CandidateArtifact(
            name=ENG_CHS_ARTIFACT,
            relative_path=ctx.eng_chs_rel,
            destination=ctx.destination(ctx.eng_chs_rel),
            content=artifacts.eng_chs,
        ),
        CandidateArtifact(
            name=CHS_ARTIFACT,
            relative_path=ctx.chs_rel,
            destination=ctx.destination(ctx.chs_rel),
            content=artifacts.chs,
        ),
    ]
    change_set = build_change_set(candidates)
    for candidate in change_set.unchanged:
        log_event(ctx, f"diff: No change {candidate.relative_path}")
    for candidate, status in change_set.changed:
        log_event(ctx, f"diff: {status.value} {candidate.relative_path}")

    return publish_changes(ctx, repo, change_set, publish_config)
