"""Core operations for simple-vc."""

import logging
import sqlite3
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .config import save_config
from .context import ProjectContext
from .core import (
    DiffFilter,
    FileFailure,
    Project,
    RestoreResult,
    Snapshot,
    SnapshotDiff,
    SnapshotFile,
)
from .diffing import compute_diff
from .errors import (
    NotInitializedError,
    SnapshotIntegrityError,
    SnapshotNotFoundError,
    ValidationFailedError,
)
from .snapshot import SnapshotContents, content_reader
from .store import Store
from .templates import create_svcignore
from .tracker import track
from .utils import atomic_write_text


logger = logging.getLogger(__name__)


# ============= Project Lifecycle =============

def init_project(path: Optional[Path] = None) -> Tuple[ProjectContext, Store, Project]:
    """Initialize a project in the given directory (idempotent).

    Creates the .svc directory, the configuration file, a default ignore
    file (if none exists) and the project row.
    """
    ctx = ProjectContext.init(path)

    if not ctx.config_path.exists():
        save_config(ctx.config, ctx.config_path)

    if not ctx.ignore_path.exists():
        atomic_write_text(ctx.ignore_path, create_svcignore())
        logger.info("Created %s with default rules", ctx.ignore_path.name)

    store = Store(ctx.db_path)
    project = store.create_project(ctx.project_name)
    logger.info("Project '%s' initialized at %s", project.name, ctx.root)
    return ctx, store, project


def open_project(path: Optional[Path] = None) -> Tuple[ProjectContext, Store, Project]:
    """Open an existing project.

    Raises:
        NotInitializedError: If no .svc directory or project record exists
    """
    ctx = ProjectContext(path)
    if not ctx.db_path.exists():
        raise NotInitializedError(ctx.root)
    store = Store(ctx.db_path)
    project = store.get_project(ctx.project_name)
    if project is None:
        raise NotInitializedError(ctx.root)
    return ctx, store, project


def _require_snapshot(store: Store, project: Project, snapshot_id: int) -> Snapshot:
    """Look up a snapshot owned by this project."""
    snapshot = store.get_snapshot(snapshot_id)
    if snapshot.project_id != project.id:
        raise SnapshotNotFoundError(snapshot_id)
    return snapshot


# ============= Snapshots =============

def create_snapshot(
    ctx: ProjectContext,
    store: Store,
    project: Project,
    description: str,
) -> int:
    """Refresh tracked files, then capture all of them as a new snapshot.

    The snapshot row and its file contents are written in one transaction.

    Returns:
        The new snapshot id

    Raises:
        SnapshotIntegrityError: If the capture could not be stored; nothing
            was written
    """
    track(ctx, store, project.id)

    try:
        snapshot_id = store.create_snapshot(project.id, description, content_reader(ctx))
    except (OSError, sqlite3.Error) as e:
        raise SnapshotIntegrityError("create", str(e)) from e

    logger.info("Created snapshot %d: %s", snapshot_id, description)
    return snapshot_id


def list_snapshots(store: Store, project: Project) -> List[Snapshot]:
    """Snapshots of the project in creation order."""
    return store.list_snapshots(project.id)


def get_snapshot(store: Store, project: Project, snapshot_id: int) -> Snapshot:
    return _require_snapshot(store, project, snapshot_id)


def snapshot_paths(store: Store, project: Project, snapshot_id: int) -> List[str]:
    """Paths captured by a snapshot, sorted."""
    _require_snapshot(store, project, snapshot_id)
    return [sf.path for sf in store.get_snapshot_files(snapshot_id)]


def delete_snapshot(store: Store, project: Project, snapshot_id: int) -> int:
    """Delete a snapshot and all of its captured content as one unit.

    Returns:
        Number of captured files removed
    """
    _require_snapshot(store, project, snapshot_id)
    try:
        removed = store.delete_snapshot(snapshot_id)
    except sqlite3.Error as e:
        raise SnapshotIntegrityError("delete", str(e)) from e
    logger.info("Deleted snapshot %d (%d files)", snapshot_id, removed)
    return removed


# ============= Diff =============

def diff_snapshots(
    store: Store,
    project: Project,
    base_id: int,
    target_id: int,
    diff_filter: Optional[DiffFilter] = None,
) -> SnapshotDiff:
    """Compare two distinct snapshots of the same project.

    Raises:
        ValidationFailedError: If both ids are the same or they belong to
            different projects
        SnapshotNotFoundError: If either snapshot does not exist
    """
    if base_id == target_id:
        raise ValidationFailedError(
            f"Select two different snapshots to compare (got {base_id} twice)"
        )

    base = SnapshotContents.load(store, base_id)
    target = SnapshotContents.load(store, target_id)
    for loaded in (base, target):
        if loaded.snapshot.project_id != project.id:
            raise ValidationFailedError(
                f"Snapshot {loaded.snapshot.id} belongs to another project"
            )
    return compute_diff(base, target, diff_filter)


# ============= Restore =============

def _restore_files(
    ctx: ProjectContext, snapshot_id: int, files: Iterable[SnapshotFile]
) -> RestoreResult:
    """Write captured content back to disk, collecting per-file failures."""
    encoding = ctx.config.encoding
    result = RestoreResult(snapshot_id=snapshot_id)
    for sf in files:
        try:
            atomic_write_text(ctx.absolute(sf.path), sf.content, encoding=encoding)
        except (OSError, UnicodeEncodeError) as e:
            error = getattr(e, "strerror", None) or str(e)
            logger.warning("Failed to restore %s: %s", sf.path, error)
            result.failures.append(FileFailure(path=sf.path, error=error))
            continue
        logger.debug("Restored %s", sf.path)
        result.restored.append(sf.path)
    return result


def revert_to_snapshot(
    ctx: ProjectContext, store: Store, project: Project, snapshot_id: int
) -> RestoreResult:
    """Overwrite every file captured by the snapshot with its stored content.

    Files on disk that the snapshot does not contain are left untouched.
    """
    _require_snapshot(store, project, snapshot_id)
    result = _restore_files(ctx, snapshot_id, store.get_snapshot_files(snapshot_id))
    logger.info(
        "Reverted to snapshot %d: %d restored, %d failed",
        snapshot_id, len(result.restored), len(result.failures),
    )
    return result


def selective_restore(
    ctx: ProjectContext,
    store: Store,
    project: Project,
    snapshot_id: int,
    paths: Iterable[str],
) -> RestoreResult:
    """Restore only the selected paths from a snapshot.

    Raises:
        ValidationFailedError: If no paths were selected (nothing is written)
    """
    selected = list(dict.fromkeys(paths))
    if not selected:
        raise ValidationFailedError("No files selected for restoration")

    _require_snapshot(store, project, snapshot_id)
    captured = {sf.path: sf for sf in store.get_snapshot_files(snapshot_id)}

    result = _restore_files(
        ctx, snapshot_id, [captured[p] for p in selected if p in captured]
    )
    for path in selected:
        if path not in captured:
            result.failures.append(
                FileFailure(path=path, error=f"not in snapshot {snapshot_id}")
            )
    return result
