"""Core data models for simple-vc.

Snapshot Lifecycle:
-------------------
A snapshot moves through exactly one path:

    nonexistent -> created -> (optionally) deleted

There is no edit-in-place. A snapshot row and its complete set of
snapshot-file rows are written in one transaction, and removed in one
transaction (files first, then the snapshot row).
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ============= Persisted Records =============

class Project(BaseModel):
    """A versioned unit bound to one working directory."""

    id: int
    name: str
    created_at: str
    secret_key: Optional[str] = None


class TrackedFile(BaseModel):
    """Latest known state of one tracked path.

    Paths are project-relative POSIX strings (forward slashes).
    """

    id: int
    project_id: int
    path: str
    hash: str  # sha256:...
    modified_at: str


class Snapshot(BaseModel):
    """Named, timestamped, immutable capture point."""

    id: int
    project_id: int
    description: str
    created_at: str
    file_count: int = 0


class SnapshotFile(BaseModel):
    """Content of one file as captured by a snapshot."""

    id: int
    snapshot_id: int
    file_id: int
    path: str
    content: str


# ============= Operation Results =============

class FileFailure(BaseModel):
    """A per-file failure collected during a batch operation."""

    path: str
    error: str


class TrackResult(BaseModel):
    """Result of a tracking pass."""

    tracked: List[str] = Field(default_factory=list)
    ignored: List[str] = Field(default_factory=list)
    failures: List[FileFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class RestoreResult(BaseModel):
    """Result of a revert or selective restore."""

    snapshot_id: int
    restored: List[str] = Field(default_factory=list)
    failures: List[FileFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


# ============= Diffing =============

class DiffFilter(BaseModel):
    """Narrows the paths compared by a snapshot diff.

    Both criteria are optional; when both are given a path must satisfy both.
    """

    extension: Optional[str] = None  # e.g. ".py"
    directory: Optional[str] = None  # e.g. "src/"

    def accepts(self, path: str) -> bool:
        if self.extension and not path.endswith(self.extension):
            return False
        if self.directory and not path.startswith(self.directory):
            return False
        return True


class LineChange(str, Enum):
    """Kind of a run of lines in a file diff."""

    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"


class FileStatus(str, Enum):
    """Overall change of one path between two snapshots."""

    UNCHANGED = "unchanged"
    ADDED = "added"        # only in the newer side
    REMOVED = "removed"    # only in the older side
    MODIFIED = "modified"


class DiffRun(BaseModel):
    """A contiguous run of lines sharing one change kind."""

    kind: LineChange
    lines: List[str] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.lines)


class FileDiff(BaseModel):
    """Line-level comparison of one path."""

    path: str
    status: FileStatus
    runs: List[DiffRun] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.status != FileStatus.UNCHANGED


class SnapshotDiff(BaseModel):
    """Comparison between two snapshots of the same project."""

    base_id: int
    target_id: int
    files: List[FileDiff] = Field(default_factory=list)

    @property
    def changed_files(self) -> List[FileDiff]:
        return [f for f in self.files if f.changed]

    def by_path(self) -> Dict[str, FileDiff]:
        return {f.path: f for f in self.files}
