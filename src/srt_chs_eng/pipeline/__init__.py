from srt_chs_eng.pipeline.changes import (
    ArtifactStatus,
    CandidateArtifact,
    ChangeSet,
    build_change_set,
    detect_change,
)
from srt_chs_eng.pipeline.derive import (
    DerivedArtifacts,
    WrapConfig,
    derive_artifacts,
    validate_artifacts,
)
from srt_chs_eng.pipeline.publish import (
    GitRepository,
    PublishConfig,
    PublishIdentity,
    PublishResult,
    publish_changes,
    resolve_branch,
)
from srt_chs_eng.pipeline.runner import convert_and_publish
from srt_chs_eng.pipeline.transforms import (
    AwkTransformStages,
    NativeTransformStages,
    TransformStages,
)
from srt_chs_eng.pipeline.workspace import RunContext, cleanup_run, init_run

__all__ = [
    "RunContext",
    "init_run",
    "cleanup_run",
    "TransformStages",
    "AwkTransformStages",
    "NativeTransformStages",
    "WrapConfig",
    "DerivedArtifacts",
    "derive_artifacts",
    "validate_artifacts",
    "ArtifactStatus",
    "CandidateArtifact",
    "ChangeSet",
    "detect_change",
    "build_change_set",
    "GitRepository",
    "PublishIdentity",
    "PublishConfig",
    "PublishResult",
    "resolve_branch",
    "publish_changes",
    "convert_and_publish",
]
