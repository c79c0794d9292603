from __future__ import annotations

import shutil
from pathlib import Path
from typing import Sequence

import pytest

from srt_chs_eng.errors import BranchResolutionError, PublishError
from srt_chs_eng.io.subprocess_run import run_command
from srt_chs_eng.pipeline.changes import ArtifactStatus, CandidateArtifact, ChangeSet
from srt_chs_eng.pipeline.publish import (
    GitRepository,
    PublishConfig,
    PublishIdentity,
    publish_changes,
    resolve_branch,
)
from srt_chs_eng.pipeline.workspace import RunContext, init_run


git_missing = shutil.which("git") is None


class FakeRepo:
    def __init__(self, branch: str | None = "main", commits: bool = True) -> None:
        self.branch = branch
        self.commits = commits
        self.committed: list[tuple[list[str], str, PublishIdentity]] = []
        self.pushed: list[tuple[str, str]] = []
        self.branch_queries = 0

    def commit_paths(self, paths: Sequence[str], message: str, identity: PublishIdentity) -> bool:
        self.committed.append((list(paths), message, identity))
        return self.commits

    def current_branch(self) -> str | None:
        self.branch_queries += 1
        return self.branch

    def force_publish(self, branch: str, remote: str, timeout: float | None) -> None:
        self.pushed.append((remote, branch))


def _ctx(tmp_path: Path, source_ref: str = "refs/heads/main") -> RunContext:
    source = tmp_path / "source"
    (source / "web").mkdir(parents=True, exist_ok=True)
    (source / "web" / "web.srt").write_text("1\n00:00:00,000 --> 00:00:01,000\n你好\n", encoding="utf-8")
    tools = tmp_path / "tools"
    tools.mkdir(exist_ok=True)
    return init_run(source, "web/web.srt", "web", tools, source_ref, work_root=tmp_path / "work")


def _change_set(ctx: RunContext, *names: str) -> ChangeSet:
    change_set = ChangeSet()
    for name in names:
        rel = f"web/web.{name}.srt"
        candidate = CandidateArtifact(name, rel, ctx.destination(rel), f"{name} body\n".encode())
        change_set.changed.append((candidate, ArtifactStatus.CREATED))
    return change_set


def test_resolve_branch_from_branch_ref() -> None:
    repo = FakeRepo(branch="other")

    assert resolve_branch("refs/heads/feature/subs", repo) == "feature/subs"
    assert repo.branch_queries == 0


def test_resolve_branch_falls_back_to_current_branch() -> None:
    repo = FakeRepo(branch="develop")

    assert resolve_branch("refs/tags/v1.0", repo) == "develop"
    assert repo.branch_queries == 1


@pytest.mark.parametrize("branch", [None, "", "HEAD"])
def test_resolve_branch_detached_fails(branch: str | None) -> None:
    with pytest.raises(BranchResolutionError) as excinfo:
        resolve_branch("refs/pull/7/merge", FakeRepo(branch=branch))

    assert excinfo.value.exit_code == 10


def test_publish_empty_change_set_is_noop(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    repo = FakeRepo()

    result = publish_changes(ctx, repo, ChangeSet())

    assert not result.published
    assert result.branch is None
    assert result.paths == []
    assert repo.committed == []
    assert repo.pushed == []
    assert repo.branch_queries == 0


def test_publish_writes_commits_and_pushes(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    repo = FakeRepo()
    identity = PublishIdentity(name="TestBot", email="testbot@example.invalid")

    result = publish_changes(
        ctx, repo, _change_set(ctx, "Chs"), PublishConfig(identity=identity, remote="upstream")
    )

    assert result.published
    assert result.branch == "main"
    assert result.paths == ["web/web.Chs.srt"]
    assert (ctx.source_root / "web" / "web.Chs.srt").read_bytes() == b"Chs body\n"
    assert not (ctx.source_root / "web" / "web.Eng&Chs.srt").exists()
    assert repo.committed == [
        (
            ["web/web.Chs.srt"],
            "update: ci: regenerate Eng&Chs.srt and Chs.srt from web/web.srt",
            identity,
        )
    ]
    assert repo.pushed == [("upstream", "main")]
    assert "publish: Created web/web.Chs.srt" in ctx.run_log_path.read_text(encoding="utf-8")


def test_publish_nothing_committed_is_success(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    repo = FakeRepo(commits=False)

    result = publish_changes(ctx, repo, _change_set(ctx, "Chs", "Eng&Chs"))

    assert not result.published
    assert result.paths == []
    assert repo.pushed == []


def test_publish_unresolvable_branch_after_commit(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path, source_ref="refs/pull/1/merge")
    repo = FakeRepo(branch="HEAD")

    with pytest.raises(BranchResolutionError):
        publish_changes(ctx, repo, _change_set(ctx, "Chs"))

    assert len(repo.committed) == 1
    assert repo.pushed == []


def test_publish_resolve_branch_first_leaves_tree_untouched(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path, source_ref="refs/pull/1/merge")
    repo = FakeRepo(branch=None)

    with pytest.raises(BranchResolutionError):
        publish_changes(ctx, repo, _change_set(ctx, "Chs"), PublishConfig(resolve_branch_first=True))

    assert not (ctx.source_root / "web" / "web.Chs.srt").exists()
    assert repo.committed == []
    assert repo.pushed == []


def test_publish_write_failure_raises_publish_error(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    repo = FakeRepo()
    (ctx.source_root / "web" / "web.Chs.srt").mkdir()

    with pytest.raises(PublishError, match="Failed to write web/web.Chs.srt") as excinfo:
        publish_changes(ctx, repo, _change_set(ctx, "Chs"))

    assert excinfo.value.exit_code == 12
    assert repo.committed == []
    assert repo.pushed == []
    assert sorted(p.name for p in (ctx.source_root / "web").iterdir()) == ["web.Chs.srt", "web.srt"]


def _git(cwd: Path, *args: str) -> str:
    return run_command(["git", *args], cwd=cwd).stdout.strip()


@pytest.fixture
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for key in ("GIT_AUTHOR_NAME", "GIT_AUTHOR_EMAIL", "GIT_COMMITTER_NAME", "GIT_COMMITTER_EMAIL"):
        monkeypatch.delenv(key, raising=False)


def _init_remote_and_clone(tmp_path: Path) -> tuple[Path, Path]:
    remote = tmp_path / "remote.git"
    run_command(["git", "init", "-q", "--bare", str(remote)])
    source = tmp_path / "source"
    (source / "web").mkdir(parents=True)
    (source / "web" / "web.srt").write_text("1\n00:00:00,000 --> 00:00:01,000\n你好\n", encoding="utf-8")
    _git(source, "init", "-q")
    _git(source, "checkout", "-q", "-b", "main")
    _git(source, "add", ".")
    _git(source, "-c", "user.name=Human", "-c", "user.email=human@example.com", "commit", "-qm", "init")
    _git(source, "remote", "add", "origin", str(remote))
    _git(source, "push", "-q", "origin", "HEAD:main")
    return source, remote


@pytest.mark.skipif(git_missing, reason="git is required for repository tests")
def test_git_repository_commits_with_bot_identity_and_force_pushes(
    tmp_path: Path, git_env: None
) -> None:
    source, remote = _init_remote_and_clone(tmp_path)
    ctx = init_run(source, "web/web.srt", "web", tmp_path, "refs/heads/main", work_root=tmp_path / "work")
    repo = GitRepository(source)

    result = publish_changes(ctx, repo, _change_set(ctx, "Eng&Chs", "Chs"))

    assert result.published
    assert result.paths == ["web/web.Eng&Chs.srt", "web/web.Chs.srt"]
    author = _git(remote, "log", "-1", "--format=%an|%ae|%cn", "main")
    assert author == "MontageSubsBot|41898282+github-actions[bot]@users.noreply.github.com|MontageSubsBot"
    assert _git(remote, "log", "-1", "--format=%s", "main") == (
        "update: ci: regenerate Eng&Chs.srt and Chs.srt from web/web.srt"
    )
    files = _git(remote, "show", "--pretty=format:", "--name-only", "main").splitlines()
    assert sorted(files) == ["web/web.Chs.srt", "web/web.Eng&Chs.srt"]
    with pytest.raises(RuntimeError):
        _git(source, "config", "--local", "--get", "user.name")


@pytest.mark.skipif(git_missing, reason="git is required for repository tests")
def test_git_repository_overwrites_diverged_remote(tmp_path: Path, git_env: None) -> None:
    source, remote = _init_remote_and_clone(tmp_path)
    other = tmp_path / "other"
    run_command(["git", "clone", "-q", "-b", "main", str(remote), str(other)])
    (other / "README").write_text("remote change\n", encoding="utf-8")
    _git(other, "add", "README")
    _git(other, "-c", "user.name=Other", "-c", "user.email=o@example.com", "commit", "-qm", "diverge")
    _git(other, "push", "-q", "origin", "HEAD:main")

    ctx = init_run(source, "web/web.srt", "web", tmp_path, "refs/heads/main", work_root=tmp_path / "work")
    publish_changes(ctx, GitRepository(source), _change_set(ctx, "Chs"))

    assert _git(remote, "rev-parse", "main") == _git(source, "rev-parse", "HEAD")


@pytest.mark.skipif(git_missing, reason="git is required for repository tests")
def test_git_repository_current_branch(tmp_path: Path, git_env: None) -> None:
    source, _ = _init_remote_and_clone(tmp_path)
    repo = GitRepository(source)

    assert repo.current_branch() == "main"

    _git(source, "checkout", "-q", "--detach")
    assert repo.current_branch() == "HEAD"
    with pytest.raises(BranchResolutionError):
        resolve_branch("refs/tags/v1", repo)


@pytest.mark.skipif(git_missing, reason="git is required for repository tests")
def test_git_repository_push_failure_raises(tmp_path: Path, git_env: None) -> None:
    source, remote = _init_remote_and_clone(tmp_path)
    shutil.rmtree(remote)
    ctx = init_run(source, "web/web.srt", "web", tmp_path, "refs/heads/main", work_root=tmp_path / "work")

    with pytest.raises(PublishError) as excinfo:
        publish_changes(ctx, GitRepository(source), _change_set(ctx, "Chs"))

    assert excinfo.value.exit_code == 12
