from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, TypeVar

from srt_chs_eng.errors import EmptyArtifactError, TransformFailure
from srt_chs_eng.pipeline.transforms import (
    STAGE_EXTRACT,
    STAGE_MERGE,
    STAGE_WRAP,
    TransformStages,
)
from srt_chs_eng.pipeline.workspace import RunContext, log_event


ENG_CHS_ARTIFACT = "Eng&Chs"
CHS_ARTIFACT = "Chs"

T = TypeVar("T")


@dataclass
class WrapConfig:
    split_threshold: int = 20
    bracket_factor: float = 2


@dataclass
class DerivedArtifacts:
    eng_chs: bytes
    chs: bytes


def _invoke(ctx: RunContext, stage: str, fn: Callable[..., T], *args: object) -> T:
    log_event(ctx, f"{stage}: start")
    try:
        result = fn(*args)
    except Exception as exc:
        log_event(ctx, f"{stage}: failed ({exc})")
        raise TransformFailure(stage, str(exc)) from exc
    log_event(ctx, f"{stage}: ok")
    return result


def _chinese_chain(
    ctx: RunContext, stages: TransformStages, source_text: str, config: WrapConfig
) -> str:
    intermediate = _invoke(ctx, STAGE_EXTRACT, stages.extract_primary_language, source_text)
    return _invoke(
        ctx,
        STAGE_WRAP,
        stages.wrap_lines,
        intermediate,
        config.split_threshold,
        config.bracket_factor,
    )


def derive_artifacts(
    ctx: RunContext,
    stages: TransformStages,
    source_text: str,
    config: WrapConfig | None = None,
) -> DerivedArtifacts:
    """Produce the Eng&Chs and Chs artifacts from one bilingual source.

    The merge stage and the extract -> wrap chain share nothing but the source,
    so they run on two worker threads. Wrap only ever sees extract's output.
    """

    if config is None:
        config = WrapConfig()

    with ThreadPoolExecutor(max_workers=2) as executor:
        merged_future = executor.submit(
            _invoke, ctx, STAGE_MERGE, stages.merge_bilingual, source_text
        )
        chinese_future = executor.submit(_chinese_chain, ctx, stages, source_text, config)
        merged = merged_future.result()
        chinese = chinese_future.result()

    return DerivedArtifacts(
        eng_chs=merged.encode("utf-8", errors="surrogateescape"),
        chs=chinese.encode("utf-8", errors="surrogateescape"),
    )


def validate_artifacts(artifacts: DerivedArtifacts) -> None:
    if not artifacts.eng_chs:
        raise EmptyArtifactError(ENG_CHS_ARTIFACT)
    if not artifacts.chs:
        raise EmptyArtifactError(CHS_ARTIFACT)
