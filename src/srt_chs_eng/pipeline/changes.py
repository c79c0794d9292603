from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Tuple


class ArtifactStatus(enum.Enum):
    UNCHANGED = "unchanged"
    CREATED = "created"
    UPDATED = "updated"

    @property
    def changed(self) -> bool:
        return self is not ArtifactStatus.UNCHANGED


@dataclass
class CandidateArtifact:
    name: str
    relative_path: str
    destination: Path
    content: bytes


@dataclass
class ChangeSet:
    changed: List[Tuple[CandidateArtifact, ArtifactStatus]] = field(default_factory=list)
    unchanged: List[CandidateArtifact] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.changed)

    @property
    def relative_paths(self) -> List[str]:
        return [candidate.relative_path for candidate, _ in self.changed]


def detect_change(content: bytes, destination: Path) -> ArtifactStatus:
    """Compare candidate bytes with the file at ``destination``. Read-only."""
    if not destination.is_file():
        return ArtifactStatus.CREATED
    if destination.read_bytes() == content:
        return ArtifactStatus.UNCHANGED
    return ArtifactStatus.UPDATED


def build_change_set(candidates: Iterable[CandidateArtifact]) -> ChangeSet:
    change_set = ChangeSet()
    for candidate in candidates:
        status = detect_change(candidate.content, candidate.destination)
        if status.changed:
            change_set.changed.append((candidate, status))
        else:
            change_set.unchanged.append(candidate)
    return change_set
