"""Diff computation between two snapshots."""

import difflib
from typing import List, Optional

from .core import (
    DiffFilter,
    DiffRun,
    FileDiff,
    FileStatus,
    LineChange,
    SnapshotDiff,
)
from .snapshot import SnapshotContents


def diff_lines(old: str, new: str) -> List[DiffRun]:
    """Compare two texts line by line.

    Returns runs of unchanged, removed and added lines in original line
    order. A replaced block yields its removed run before its added run.
    Lines keep their line endings.
    """
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    runs: List[DiffRun] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            runs.append(DiffRun(kind=LineChange.UNCHANGED, lines=old_lines[i1:i2]))
            continue
        if tag in ("replace", "delete"):
            runs.append(DiffRun(kind=LineChange.REMOVED, lines=old_lines[i1:i2]))
        if tag in ("replace", "insert"):
            runs.append(DiffRun(kind=LineChange.ADDED, lines=new_lines[j1:j2]))
    return runs


def compute_diff(
    base: SnapshotContents,
    target: SnapshotContents,
    diff_filter: Optional[DiffFilter] = None,
) -> SnapshotDiff:
    """
    Compute per-file differences from base to target.

    Args:
        base: Older (left-hand) snapshot contents.
        target: Newer (right-hand) snapshot contents.
        diff_filter: Optional extension/directory filter applied first.

    Returns:
        SnapshotDiff with one FileDiff per path in the union of both sides.

    Note:
        A path present on one side only is compared against empty content,
        so it shows up as a pure addition or a pure removal.
    """
    old_files = base.filtered(diff_filter)
    new_files = target.filtered(diff_filter)

    files = []
    for path in sorted(set(old_files) | set(new_files)):
        old = old_files.get(path)
        new = new_files.get(path)

        if old is None:
            status = FileStatus.ADDED
        elif new is None:
            status = FileStatus.REMOVED
        elif old == new:
            status = FileStatus.UNCHANGED
        else:
            status = FileStatus.MODIFIED

        files.append(FileDiff(
            path=path,
            status=status,
            runs=diff_lines(old or "", new or ""),
        ))

    return SnapshotDiff(
        base_id=base.snapshot.id,
        target_id=target.snapshot.id,
        files=files,
    )
