"""Tests for change monitoring and triage."""

import time

from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from simple_vc.ignore import IgnoreRules, literal_rule
from simple_vc.monitor import (
    ChangeEvent,
    ChangeKind,
    ChangeMonitor,
    MonitorEventHandler,
    MonitorSession,
    TriageAction,
    triage,
)
from simple_vc.tracker import track


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestMonitorSession:

    def test_dedup_preserves_detection_order(self):
        session = MonitorSession()
        assert session.record(ChangeKind.ADDED, "b.txt")
        assert session.record(ChangeKind.ADDED, "a.txt")
        assert not session.record(ChangeKind.ADDED, "b.txt")

        assert session.changes(ChangeKind.ADDED) == ["b.txt", "a.txt"]

    def test_items_in_triage_order(self):
        session = MonitorSession()
        session.record(ChangeKind.DELETED, "d.txt")
        session.record(ChangeKind.MODIFIED, "m.txt")
        session.record(ChangeKind.ADDED, "a.txt")

        assert [(e.kind, e.path) for e in session.items()] == [
            (ChangeKind.ADDED, "a.txt"),
            (ChangeKind.MODIFIED, "m.txt"),
            (ChangeKind.DELETED, "d.txt"),
        ]
        assert session.summary() == {
            ChangeKind.ADDED: 1,
            ChangeKind.MODIFIED: 1,
            ChangeKind.DELETED: 1,
        }

    def test_clear(self):
        session = MonitorSession()
        session.record(ChangeKind.ADDED, "a.txt")
        session.clear()
        assert session.is_empty


class TestChangeMonitor:

    def test_added_and_deleted_recorded_immediately(self):
        monitor = ChangeMonitor(debounce_seconds=10)
        monitor.handle(ChangeEvent(ChangeKind.ADDED, "new.txt"))
        monitor.handle(ChangeEvent(ChangeKind.DELETED, "old.txt"))

        assert monitor.session.changes(ChangeKind.ADDED) == ["new.txt"]
        assert monitor.session.changes(ChangeKind.DELETED) == ["old.txt"]

    def test_modified_burst_coalesced(self):
        monitor = ChangeMonitor(debounce_seconds=10)
        for _ in range(5):
            monitor.handle(ChangeEvent(ChangeKind.MODIFIED, "a.txt"))

        assert monitor.pending == ["a.txt"]
        assert monitor.session.changes(ChangeKind.MODIFIED) == []

        session = monitor.stop()

        assert session.changes(ChangeKind.MODIFIED) == ["a.txt"]
        assert monitor.pending == []

    def test_modified_recorded_after_quiet_window(self):
        monitor = ChangeMonitor(debounce_seconds=0.05)
        monitor.handle(ChangeEvent(ChangeKind.MODIFIED, "a.txt"))
        monitor.handle(ChangeEvent(ChangeKind.MODIFIED, "a.txt"))

        assert wait_for(lambda: monitor.session.changes(ChangeKind.MODIFIED) == ["a.txt"])
        assert monitor.pending == []

    def test_storage_and_ignored_paths_dropped(self):
        monitor = ChangeMonitor(debounce_seconds=0, rules=IgnoreRules(["*.log", "build/"]))
        monitor.handle(ChangeEvent(ChangeKind.ADDED, ".svc/svc.db"))
        monitor.handle(ChangeEvent(ChangeKind.ADDED, "debug.log"))
        monitor.handle(ChangeEvent(ChangeKind.ADDED, "build/out.o"))
        monitor.handle(ChangeEvent(ChangeKind.ADDED, "keep.txt"))

        assert monitor.session.changes(ChangeKind.ADDED) == ["keep.txt"]

    def test_events_after_stop_ignored(self):
        monitor = ChangeMonitor(debounce_seconds=0)
        monitor.stop()
        monitor.handle(ChangeEvent(ChangeKind.ADDED, "late.txt"))

        assert monitor.session.is_empty


class TestWatcherAdapter:

    def test_translates_watchdog_events(self, tmp_path):
        monitor = ChangeMonitor(debounce_seconds=0)
        handler = MonitorEventHandler(tmp_path, monitor)

        handler.dispatch(FileCreatedEvent(str(tmp_path / "new.txt")))
        handler.dispatch(FileModifiedEvent(str(tmp_path / "src" / "app.py")))
        handler.dispatch(FileDeletedEvent(str(tmp_path / "old.txt")))
        handler.dispatch(FileMovedEvent(str(tmp_path / "a.txt"), str(tmp_path / "b.txt")))
        handler.dispatch(DirCreatedEvent(str(tmp_path / "somedir")))

        session = monitor.session
        assert session.changes(ChangeKind.ADDED) == ["new.txt", "b.txt"]
        assert session.changes(ChangeKind.MODIFIED) == ["src/app.py"]
        assert session.changes(ChangeKind.DELETED) == ["old.txt", "a.txt"]


class TestTriage:

    def test_routes_each_change(self, project, write_file):
        ctx, store, proj = project
        write_file("new.txt", "fresh")
        write_file("scratch.txt", "junk")
        rules = IgnoreRules.load(ctx.ignore_path)

        session = MonitorSession()
        session.record(ChangeKind.ADDED, "new.txt")
        session.record(ChangeKind.MODIFIED, "scratch.txt")
        session.record(ChangeKind.DELETED, "old.txt")

        decisions = {
            "new.txt": TriageAction.TRACK,
            "scratch.txt": TriageAction.IGNORE,
            "old.txt": TriageAction.SKIP,
        }
        seen = []

        def decide(event):
            seen.append(event.path)
            return decisions[event.path]

        report = triage(session, decide, ctx, store, proj.id, rules)

        assert seen == ["new.txt", "scratch.txt", "old.txt"]
        assert report.tracked == ["new.txt"]
        assert report.ignored == ["scratch.txt"]
        assert report.skipped == ["old.txt"]
        assert store.get_file(proj.id, "new.txt") is not None
        assert literal_rule("scratch.txt") in IgnoreRules.load(ctx.ignore_path).patterns
        assert session.is_empty

    def test_tracking_deleted_file_is_failure(self, project):
        ctx, store, proj = project
        session = MonitorSession()
        session.record(ChangeKind.DELETED, "gone.txt")

        report = triage(
            session, lambda e: TriageAction.TRACK, ctx, store, proj.id,
            IgnoreRules.load(ctx.ignore_path),
        )

        assert [f.path for f in report.failures] == ["gone.txt"]
        assert report.tracked == []

    def test_ignored_paths_with_pattern_characters(self, project, write_file):
        ctx, store, proj = project
        names = ["report (1).txt", "a[1].txt", "c++.txt", "notes*.md"]
        for name in names:
            write_file(name, "x")

        session = MonitorSession()
        for name in names:
            session.record(ChangeKind.ADDED, name)

        report = triage(
            session, lambda e: TriageAction.IGNORE, ctx, store, proj.id,
            IgnoreRules.load(ctx.ignore_path),
        )
        assert report.ignored == names
        assert report.failures == []

        write_file("notesX.md", "not ignored")
        result = track(ctx, store, proj.id)

        assert sorted(result.ignored) == sorted(names)
        assert "notesX.md" in result.tracked
