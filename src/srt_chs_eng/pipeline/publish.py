from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Protocol, Sequence

from srt_chs_eng.errors import BranchResolutionError, PublishError
from srt_chs_eng.io.file_io import atomic_write_bytes
from srt_chs_eng.io.subprocess_run import CommandError, run_command
from srt_chs_eng.pipeline.changes import ArtifactStatus, ChangeSet
from srt_chs_eng.pipeline.workspace import RunContext, log_event


BRANCH_REF_PREFIX = "refs/heads/"
DEFAULT_COMMIT_MESSAGE = "update: ci: regenerate Eng&Chs.srt and Chs.srt from {source_file}"


@dataclass
class PublishIdentity:
    name: str = "MontageSubsBot"
    email: str = "41898282+github-actions[bot]@users.noreply.github.com"

    def as_env(self) -> dict[str, str]:
        # git env vars win over any user.name/user.email config
        return {
            "GIT_AUTHOR_NAME": self.name,
            "GIT_AUTHOR_EMAIL": self.email,
            "GIT_COMMITTER_NAME": self.name,
            "GIT_COMMITTER_EMAIL": self.email,
        }


@dataclass
class PublishConfig:
    identity: PublishIdentity = field(default_factory=PublishIdentity)
    remote: str = "origin"
    commit_message_template: str = DEFAULT_COMMIT_MESSAGE
    push_timeout_sec: float | None = 120.0
    # Off by default: commit first, then resolve. A failed resolution leaves
    # the local branch ahead of the remote.
    resolve_branch_first: bool = False


@dataclass
class PublishResult:
    published: bool
    branch: str | None = None
    paths: List[str] = field(default_factory=list)


class VersionControl(Protocol):
    def commit_paths(self, paths: Sequence[str], message: str, identity: PublishIdentity) -> bool:
        """Stage and commit ``paths``; False when there was nothing to commit."""
        ...

    def current_branch(self) -> str | None: ...

    def force_publish(self, branch: str, remote: str, timeout: float | None) -> None:
        """Overwrite ``remote``'s ``branch`` with local HEAD."""
        ...


class GitRepository:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _git(self, *args: str, **kwargs: Any) -> subprocess.CompletedProcess[str]:
        return run_command(["git", *args], cwd=self.root, **kwargs)

    def commit_paths(self, paths: Sequence[str], message: str, identity: PublishIdentity) -> bool:
        try:
            self._git("add", "--", *paths)
            staged = self._git("diff", "--cached", "--name-only", "--", *paths).stdout.strip()
            if not staged:
                return False
            self._git("commit", "-m", message, "--", *paths, env=identity.as_env())
        except CommandError as exc:
            raise PublishError(f"git commit failed: {exc}") from exc
        return True

    def current_branch(self) -> str | None:
        try:
            branch = self._git("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()
        except CommandError:
            return None
        return branch or None

    def force_publish(self, branch: str, remote: str, timeout: float | None) -> None:
        try:
            self._git(
                "push",
                "-f",
                remote,
                f"HEAD:{branch}",
                env={"GIT_TERMINAL_PROMPT": "0"},
                timeout=timeout,
            )
        except CommandError as exc:
            raise PublishError(f"Force push to {remote}/{branch} failed: {exc}") from exc


def resolve_branch(source_ref: str, repo: VersionControl) -> str:
    if source_ref.startswith(BRANCH_REF_PREFIX):
        branch = source_ref[len(BRANCH_REF_PREFIX):]
    else:
        branch = repo.current_branch() or ""
    if not branch or branch == "HEAD":
        raise BranchResolutionError(f"Cannot determine branch for ref: {source_ref}")
    return branch


def publish_changes(
    ctx: RunContext,
    repo: VersionControl,
    change_set: ChangeSet,
    config: PublishConfig | None = None,
) -> PublishResult:
    """Write, commit and force-push exactly the artifacts in ``change_set``.

    An empty change set returns immediately without touching the tree or the
    remote.
    """

    if config is None:
        config = PublishConfig()

    if not change_set:
        log_event(ctx, "publish: nothing to commit")
        return PublishResult(published=False)

    branch: str | None = None
    if config.resolve_branch_first:
        branch = resolve_branch(ctx.source_ref, repo)

    for candidate, status in change_set.changed:
        try:
            atomic_write_bytes(candidate.destination, candidate.content)
        except OSError as exc:
            raise PublishError(f"Failed to write {candidate.relative_path}: {exc}") from exc
        label = "Created" if status is ArtifactStatus.CREATED else "Updated"
        log_event(ctx, f"publish: {label} {candidate.relative_path}")

    paths = change_set.relative_paths
    message = config.commit_message_template.format(source_file=ctx.source_file_rel)
    if not repo.commit_paths(paths, message, config.identity):
        log_event(ctx, "publish: no commit made (tree already matches)")
        return PublishResult(published=False)
    log_event(ctx, f"publish: committed {len(paths)} file(s)")

    if branch is None:
        branch = resolve_branch(ctx.source_ref, repo)

    log_event(ctx, f"publish: force pushing {config.remote} HEAD:{branch}")
    repo.force_publish(branch, config.remote, config.push_timeout_sec)
    log_event(ctx, f"publish: ok -> {branch}")
    return PublishResult(published=True, branch=branch, paths=paths)
