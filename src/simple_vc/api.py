"""Stable API for simple-vc operations.

Each function is a single capability that takes an optional project
directory (default: current directory), does no console output, and raises
typed ``SvcError`` subclasses on failure. The CLI is a thin layer over this
module, and other tools can drive a project the same way.

Example:
    >>> from simple_vc import api
    >>> api.init_project(".")
    >>> first = api.create_snapshot("before refactor")
    >>> second = api.create_snapshot("after refactor")
    >>> changed = api.diff_snapshots(first, second).changed_files
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from . import collaboration, ops
from .core import DiffFilter, Project, RestoreResult, Snapshot, SnapshotDiff, TrackResult
from .ignore import IgnoreRules
from .tracker import track, track_paths


PathLike = Union[str, Path]


def init_project(path: PathLike = ".") -> Project:
    """Initialize (or re-open) a project in the given directory."""
    _, _, project = ops.init_project(Path(path))
    return project


def track_files(paths: Optional[Iterable[str]] = None, path: PathLike = ".") -> TrackResult:
    """Refresh tracked files.

    With no paths the whole project is walked; otherwise only the given
    paths (absolute, or relative to the project root) are tracked.
    """
    ctx, store, project = ops.open_project(Path(path))
    if paths is None:
        return track(ctx, store, project.id)
    return track_paths(ctx, store, project.id, [ctx.to_project_relative(p) for p in paths])


def create_snapshot(description: str, path: PathLike = ".") -> int:
    """Capture every tracked file; returns the new snapshot id."""
    ctx, store, project = ops.open_project(Path(path))
    return ops.create_snapshot(ctx, store, project, description)


def delete_snapshot(snapshot_id: int, path: PathLike = ".") -> int:
    """Delete a snapshot; returns the number of captured files removed."""
    _, store, project = ops.open_project(Path(path))
    return ops.delete_snapshot(store, project, snapshot_id)


def list_snapshots(path: PathLike = ".") -> List[Snapshot]:
    _, store, project = ops.open_project(Path(path))
    return ops.list_snapshots(store, project)


def get_snapshot(snapshot_id: int, path: PathLike = ".") -> Snapshot:
    _, store, project = ops.open_project(Path(path))
    return ops.get_snapshot(store, project, snapshot_id)


def snapshot_paths(snapshot_id: int, path: PathLike = ".") -> List[str]:
    _, store, project = ops.open_project(Path(path))
    return ops.snapshot_paths(store, project, snapshot_id)


def diff_snapshots(
    base_id: int,
    target_id: int,
    extension: Optional[str] = None,
    directory: Optional[str] = None,
    path: PathLike = ".",
) -> SnapshotDiff:
    """Compare two snapshots, optionally narrowed by extension and/or directory."""
    _, store, project = ops.open_project(Path(path))
    diff_filter = None
    if extension or directory:
        diff_filter = DiffFilter(extension=extension, directory=directory)
    return ops.diff_snapshots(store, project, base_id, target_id, diff_filter)


def revert_snapshot(snapshot_id: int, path: PathLike = ".") -> RestoreResult:
    ctx, store, project = ops.open_project(Path(path))
    return ops.revert_to_snapshot(ctx, store, project, snapshot_id)


def selective_restore(
    snapshot_id: int, paths: Iterable[str], path: PathLike = "."
) -> RestoreResult:
    ctx, store, project = ops.open_project(Path(path))
    return ops.selective_restore(ctx, store, project, snapshot_id, paths)


# ============= Ignore Rules =============

def _load_rules(path: PathLike) -> IgnoreRules:
    ctx, _, _ = ops.open_project(Path(path))
    return IgnoreRules.load(ctx.ignore_path)


def list_ignore_rules(path: PathLike = ".") -> List[str]:
    return _load_rules(path).patterns


def add_ignore_rule(pattern: str, path: PathLike = ".") -> bool:
    """Append a rule and save. Returns False if it was already present."""
    rules = _load_rules(path)
    added = rules.add(pattern)
    if added:
        rules.save()
    return added


def remove_ignore_rule(pattern: str, path: PathLike = ".") -> bool:
    """Remove a rule and save. Returns False if it was not present."""
    rules = _load_rules(path)
    removed = rules.remove(pattern)
    if removed:
        rules.save()
    return removed


def preview_ignore_rules(path: PathLike = ".") -> Dict[str, List[str]]:
    """Map each rule to the paths it currently matches on disk."""
    ctx, _, _ = ops.open_project(Path(path))
    return IgnoreRules.load(ctx.ignore_path).preview(ctx.root)


# ============= Collaboration =============

def get_secret(path: PathLike = ".") -> str:
    _, store, project = ops.open_project(Path(path))
    return collaboration.get_secret_key(store, project.id)


def regenerate_secret(path: PathLike = ".") -> str:
    _, store, project = ops.open_project(Path(path))
    return collaboration.regenerate_secret_key(store, project.id)
