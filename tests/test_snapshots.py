"""Tests for snapshot creation, history, diff and deletion."""

import sqlite3
from unittest.mock import patch

import pytest

from simple_vc import ops
from simple_vc.core import DiffFilter, FileStatus, LineChange
from simple_vc.errors import (
    SnapshotIntegrityError,
    SnapshotNotFoundError,
    ValidationFailedError,
)


def contents(store, snapshot_id):
    return {sf.path: sf.content for sf in store.get_snapshot_files(snapshot_id)}


class TestCreateSnapshot:

    def test_tracks_before_capturing(self, project, write_file):
        ctx, store, proj = project
        write_file("a.txt", "1")

        snapshot_id = ops.create_snapshot(ctx, store, proj, "first")

        assert store.get_file(proj.id, "a.txt") is not None
        assert contents(store, snapshot_id)["a.txt"] == "1"

    def test_ignored_files_not_captured(self, project, write_file):
        ctx, store, proj = project
        write_file("a.txt", "1")
        write_file("debug.log", "noise")

        snapshot_id = ops.create_snapshot(ctx, store, proj, "first")

        assert "debug.log" not in contents(store, snapshot_id)

    def test_deleted_file_captured_as_empty(self, project, write_file):
        ctx, store, proj = project
        f = write_file("a.txt", "1")
        ops.create_snapshot(ctx, store, proj, "first")

        f.unlink()
        second = ops.create_snapshot(ctx, store, proj, "second")

        assert contents(store, second)["a.txt"] == ""

    def test_line_endings_preserved(self, project, tmp_path):
        ctx, store, proj = project
        (tmp_path / "crlf.txt").write_bytes(b"one\r\ntwo\r\n")

        snapshot_id = ops.create_snapshot(ctx, store, proj, "crlf")

        assert contents(store, snapshot_id)["crlf.txt"] == "one\r\ntwo\r\n"

    def test_binary_captured_with_replacement(self, project, tmp_path):
        ctx, store, proj = project
        (tmp_path / "blob.bin").write_bytes(b"ok\xff")

        snapshot_id = ops.create_snapshot(ctx, store, proj, "binary")

        assert contents(store, snapshot_id)["blob.bin"] == "ok\ufffd"

    def test_file_replaced_by_directory_captured_as_empty(self, project, write_file):
        ctx, store, proj = project
        notes = write_file("notes", "draft")
        ops.create_snapshot(ctx, store, proj, "first")

        notes.unlink()
        write_file("notes/inner.txt", "moved")
        second = ops.create_snapshot(ctx, store, proj, "second")
        third = ops.create_snapshot(ctx, store, proj, "third")

        captured = contents(store, second)
        assert captured["notes"] == ""
        assert captured["notes/inner.txt"] == "moved"
        assert contents(store, third)["notes"] == ""

    def test_unreadable_file_captured_as_empty(self, project, write_file):
        ctx, store, proj = project
        write_file("a.txt", "1")
        write_file("b.txt", "2")
        from simple_vc.utils import read_text_lenient as real_read

        def flaky_read(path, encoding="utf-8"):
            if path.name == "a.txt":
                raise PermissionError(13, "Permission denied", str(path))
            return real_read(path, encoding)

        with patch("simple_vc.snapshot.read_text_lenient", side_effect=flaky_read):
            snapshot_id = ops.create_snapshot(ctx, store, proj, "partial")

        assert contents(store, snapshot_id) == {"a.txt": "", "b.txt": "2"}

    def test_store_failure_rolls_back(self, project, write_file):
        ctx, store, proj = project
        write_file("a.txt", "1")

        with patch.object(store, "create_snapshot", side_effect=sqlite3.OperationalError("database is locked")):
            with pytest.raises(SnapshotIntegrityError) as exc_info:
                ops.create_snapshot(ctx, store, proj, "doomed")

        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
        assert ops.list_snapshots(store, proj) == []

    def test_history_in_creation_order(self, project, write_file):
        ctx, store, proj = project
        write_file("a.txt", "1")
        ids = [ops.create_snapshot(ctx, store, proj, name) for name in ("one", "two", "three")]

        history = ops.list_snapshots(store, proj)

        assert [s.id for s in history] == ids
        assert [s.description for s in history] == ["one", "two", "three"]
        assert all(s.file_count == history[0].file_count for s in history)

    def test_snapshot_paths(self, project, write_file):
        ctx, store, proj = project
        write_file("b.txt", "b")
        write_file("a/x.txt", "x")

        snapshot_id = ops.create_snapshot(ctx, store, proj, "paths")

        assert ops.snapshot_paths(store, proj, snapshot_id) == [".svcignore", "a/x.txt", "b.txt"]


class TestDiffSnapshots:

    def test_edit_scenario(self, project, write_file):
        ctx, store, proj = project
        a = write_file("a.txt", "1")
        write_file("b.txt", "2")
        s1 = ops.create_snapshot(ctx, store, proj, "S1")
        a.write_text("3")
        s2 = ops.create_snapshot(ctx, store, proj, "S2")

        files = ops.diff_snapshots(store, proj, s1, s2).by_path()

        assert files["a.txt"].status == FileStatus.MODIFIED
        assert [(r.kind, r.text) for r in files["a.txt"].runs] == [
            (LineChange.REMOVED, "1"),
            (LineChange.ADDED, "3"),
        ]
        assert files["b.txt"].status == FileStatus.UNCHANGED
        assert [(r.kind, r.text) for r in files["b.txt"].runs] == [(LineChange.UNCHANGED, "2")]

    def test_same_snapshot_rejected(self, project, write_file):
        ctx, store, proj = project
        write_file("a.txt", "1")
        s1 = ops.create_snapshot(ctx, store, proj, "S1")

        with pytest.raises(ValidationFailedError):
            ops.diff_snapshots(store, proj, s1, s1)

    def test_unknown_snapshot(self, project, write_file):
        ctx, store, proj = project
        write_file("a.txt", "1")
        s1 = ops.create_snapshot(ctx, store, proj, "S1")

        with pytest.raises(SnapshotNotFoundError):
            ops.diff_snapshots(store, proj, s1, 999)

    def test_snapshot_of_other_project_rejected(self, project, write_file):
        ctx, store, proj = project
        write_file("a.txt", "1")
        s1 = ops.create_snapshot(ctx, store, proj, "S1")
        other = store.create_project("someone-else")
        foreign = store.create_snapshot(other.id, "theirs", lambda f: "")

        with pytest.raises(ValidationFailedError):
            ops.diff_snapshots(store, proj, s1, foreign)

    def test_file_added_between_snapshots(self, project, write_file):
        ctx, store, proj = project
        write_file("a.txt", "1")
        s1 = ops.create_snapshot(ctx, store, proj, "S1")
        write_file("new.txt", "fresh\n")
        s2 = ops.create_snapshot(ctx, store, proj, "S2")

        new = ops.diff_snapshots(store, proj, s1, s2).by_path()["new.txt"]

        assert new.status == FileStatus.ADDED
        assert [(r.kind, r.text) for r in new.runs] == [(LineChange.ADDED, "fresh\n")]

    def test_filter_by_extension_and_directory(self, project, write_file):
        ctx, store, proj = project
        write_file("src/app.py", "a = 1\n")
        write_file("src/readme.txt", "hi\n")
        write_file("tools/run.py", "x\n")
        s1 = ops.create_snapshot(ctx, store, proj, "S1")
        write_file("src/app.py", "a = 2\n")
        s2 = ops.create_snapshot(ctx, store, proj, "S2")

        by_ext = ops.diff_snapshots(store, proj, s1, s2, DiffFilter(extension=".py"))
        assert sorted(by_ext.by_path()) == ["src/app.py", "tools/run.py"]

        both = ops.diff_snapshots(store, proj, s1, s2, DiffFilter(extension=".py", directory="src/"))
        assert [f.path for f in both.files] == ["src/app.py"]
        assert [f.path for f in both.changed_files] == ["src/app.py"]


class TestDeleteSnapshot:

    def test_delete_keeps_other_snapshots_diffable(self, project, write_file):
        ctx, store, proj = project
        a = write_file("a.txt", "1")
        s1 = ops.create_snapshot(ctx, store, proj, "S1")
        a.write_text("2")
        s2 = ops.create_snapshot(ctx, store, proj, "S2")
        a.write_text("3")
        s3 = ops.create_snapshot(ctx, store, proj, "S3")

        ops.delete_snapshot(store, proj, s1)

        with pytest.raises(SnapshotNotFoundError):
            ops.get_snapshot(store, proj, s1)
        assert store.get_snapshot_files(s1) == []
        assert contents(store, s2)["a.txt"] == "2"
        diff = ops.diff_snapshots(store, proj, s2, s3)
        assert diff.by_path()["a.txt"].status == FileStatus.MODIFIED

    def test_delete_unknown(self, project):
        _, store, proj = project
        with pytest.raises(SnapshotNotFoundError):
            ops.delete_snapshot(store, proj, 12345)
