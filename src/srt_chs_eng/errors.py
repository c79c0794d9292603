from __future__ import annotations


class SubtitlePublishError(Exception):
    """Base error for a convert-and-publish run.

    Every subclass maps to one process exit code.
    """

    exit_code = 1


class UsageError(SubtitlePublishError):
    exit_code = 2


class EnvironmentSetupError(SubtitlePublishError):
    """Raised before any work starts when the run environment is incomplete."""


class SourceTreeNotFoundError(EnvironmentSetupError, FileNotFoundError):
    exit_code = 3


class SourceFileNotFoundError(EnvironmentSetupError, FileNotFoundError):
    exit_code = 4


class ToolsNotFoundError(EnvironmentSetupError, FileNotFoundError):
    exit_code = 5


class MissingTransformError(EnvironmentSetupError, FileNotFoundError):
    exit_code = 6


class ExecutorUnavailableError(EnvironmentSetupError):
    exit_code = 7


class EmptyArtifactError(SubtitlePublishError):
    """Raised when a derived artifact has zero bytes."""

    _EXIT_CODES = {"Eng&Chs": 8, "Chs": 9}

    def __init__(self, artifact: str) -> None:
        super().__init__(f"{artifact} artifact is empty")
        self.artifact = artifact
        self.exit_code = self._EXIT_CODES.get(artifact, 8)


class BranchResolutionError(SubtitlePublishError):
    exit_code = 10


class TransformFailure(SubtitlePublishError):
    """Raised when a transform stage fails; names the stage."""

    exit_code = 11

    def __init__(self, stage: str, detail: str) -> None:
        super().__init__(f"Transform stage {stage} failed: {detail}")
        self.stage = stage


class PublishError(SubtitlePublishError):
    exit_code = 12
