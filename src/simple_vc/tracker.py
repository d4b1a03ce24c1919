"""File tracking: walk the project, hash files, upsert File rows."""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .context import ProjectContext
from .core import FileFailure, TrackResult
from .hashing import compute_file_digest
from .ignore import IgnoreRules, is_storage_path
from .store import Store


logger = logging.getLogger(__name__)


def walk_project(
    root: Path,
    rules: IgnoreRules,
    result: TrackResult,
) -> List[str]:
    """Enumerate non-ignored files under root as project-relative POSIX paths.

    The storage directory is skipped silently. Ignored directories are pruned
    without being descended into; ignored files are recorded in
    ``result.ignored``. Directories that cannot be listed are recorded as
    failures and skipped.
    """
    found: List[str] = []

    def _on_error(err: OSError) -> None:
        rel = Path(err.filename).relative_to(root).as_posix() if err.filename else "."
        logger.warning("Cannot list %s: %s", rel, err.strerror or err)
        result.failures.append(FileFailure(path=rel, error=err.strerror or str(err)))

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        prefix = "" if rel_dir == "." else f"{rel_dir}/"

        kept = []
        for name in dirnames:
            rel = prefix + name
            if is_storage_path(rel):
                continue
            if rules.matches(rel, is_dir=True):
                logger.debug("Ignored directory: %s", rel)
                result.ignored.append(rel + "/")
            else:
                kept.append(name)
        dirnames[:] = kept

        for name in filenames:
            rel = prefix + name
            if rules.matches(rel):
                logger.debug("Ignored: %s", rel)
                result.ignored.append(rel)
            else:
                found.append(rel)
    return found


def _hash_files(
    ctx: ProjectContext, paths: Iterable[str], result: TrackResult
) -> List[Tuple[str, str]]:
    """Hash each path, collecting per-file failures instead of raising."""
    entries = []
    for rel in paths:
        try:
            digest = compute_file_digest(ctx.absolute(rel))
        except OSError as e:
            logger.warning("Cannot read %s: %s", rel, e.strerror or e)
            result.failures.append(FileFailure(path=rel, error=e.strerror or str(e)))
            continue
        entries.append((rel, digest))
    return entries


def track(
    ctx: ProjectContext,
    store: Store,
    project_id: int,
    rules: Optional[IgnoreRules] = None,
) -> TrackResult:
    """Refresh File rows for every non-ignored file under the project root.

    Partial failure does not abort the pass: unreadable files are reported
    in the result and the remaining files are still recorded.
    """
    if rules is None:
        rules = IgnoreRules.load(ctx.ignore_path)

    result = TrackResult()
    paths = walk_project(ctx.root, rules, result)
    entries = _hash_files(ctx, paths, result)
    store.upsert_files(project_id, entries)
    result.tracked = [path for path, _ in entries]

    logger.info(
        "Tracked %d files (%d ignored, %d failed)",
        len(result.tracked), len(result.ignored), len(result.failures),
    )
    return result


def track_paths(
    ctx: ProjectContext,
    store: Store,
    project_id: int,
    paths: Iterable[str],
    rules: Optional[IgnoreRules] = None,
) -> TrackResult:
    """Refresh File rows for an explicit list of project-relative paths.

    Ignored paths are skipped; paths that are missing or not regular files
    are reported as failures.
    """
    if rules is None:
        rules = IgnoreRules.load(ctx.ignore_path)

    result = TrackResult()
    candidates = []
    for rel in paths:
        if rules.is_ignored(rel):
            result.ignored.append(rel)
        elif not ctx.absolute(rel).is_file():
            result.failures.append(FileFailure(path=rel, error="not a file on disk"))
        else:
            candidates.append(rel)

    entries = _hash_files(ctx, candidates, result)
    store.upsert_files(project_id, entries)
    result.tracked = [path for path, _ in entries]
    return result
