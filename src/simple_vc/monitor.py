"""Change monitoring and post-session triage.

A watch loop feeds filesystem events into a ChangeMonitor, which records them
in a MonitorSession. When the loop stops, the session is triaged one path at
a time: each change is tracked, turned into an ignore rule, or skipped.
"""

import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .constants import DEFAULT_DEBOUNCE_SECONDS
from .context import ProjectContext
from .core import FileFailure
from .ignore import IgnoreRules, is_storage_path, literal_rule
from .store import Store
from .tracker import track_paths


logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


# Triage visits kinds in this order
TRIAGE_ORDER = (ChangeKind.ADDED, ChangeKind.MODIFIED, ChangeKind.DELETED)


@dataclass(frozen=True)
class ChangeEvent:
    """One filesystem change, with a project-relative POSIX path."""

    kind: ChangeKind
    path: str


class MonitorSession:
    """Changes observed during one watch session.

    Keeps one list per change kind, each deduplicated by path and kept in
    detection order. Safe to record into from watcher and timer threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._changes: Dict[ChangeKind, List[str]] = {kind: [] for kind in ChangeKind}

    def record(self, kind: ChangeKind, path: str) -> bool:
        """Record a change. Returns False if the path was already listed."""
        with self._lock:
            paths = self._changes[kind]
            if path in paths:
                return False
            paths.append(path)
        logger.debug("Recorded %s: %s", kind.value, path)
        return True

    def changes(self, kind: ChangeKind) -> List[str]:
        with self._lock:
            return list(self._changes[kind])

    def items(self) -> List[ChangeEvent]:
        """All recorded changes in triage order."""
        with self._lock:
            return [
                ChangeEvent(kind, path)
                for kind in TRIAGE_ORDER
                for path in self._changes[kind]
            ]

    def summary(self) -> Dict[ChangeKind, int]:
        with self._lock:
            return {kind: len(self._changes[kind]) for kind in TRIAGE_ORDER}

    @property
    def is_empty(self) -> bool:
        return not any(self.summary().values())

    def clear(self) -> None:
        with self._lock:
            for paths in self._changes.values():
                paths.clear()


class ChangeMonitor:
    """Filters and debounces incoming events into a session.

    ``modified`` events for the same path arriving within the debounce window
    collapse into one recorded change. handle() never blocks on the window;
    a per-path timer records the change once the path has been quiet.
    """

    def __init__(
        self,
        session: Optional[MonitorSession] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        rules: Optional[IgnoreRules] = None,
    ):
        self.session = session if session is not None else MonitorSession()
        self.debounce_seconds = debounce_seconds
        self.rules = rules
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def pending(self) -> List[str]:
        """Paths with a debounced change not yet recorded."""
        with self._lock:
            return list(self._timers)

    def _accepts(self, path: str) -> bool:
        if is_storage_path(path):
            return False
        if self.rules is not None and self.rules.is_ignored(path):
            logger.debug("Dropping event for ignored path %s", path)
            return False
        return True

    def handle(self, event: ChangeEvent) -> None:
        if self._stopped or not self._accepts(event.path):
            return

        if event.kind != ChangeKind.MODIFIED or self.debounce_seconds <= 0:
            self.session.record(event.kind, event.path)
            return

        path = event.path
        timer = threading.Timer(self.debounce_seconds, lambda: self._fire(path, timer))
        timer.daemon = True
        with self._lock:
            previous = self._timers.get(path)
            if previous is not None:
                previous.cancel()
            self._timers[path] = timer
        timer.start()

    def _fire(self, path: str, timer: threading.Timer) -> None:
        with self._lock:
            # A newer event replaced this timer
            if self._timers.get(path) is not timer:
                return
            del self._timers[path]
        self.session.record(ChangeKind.MODIFIED, path)

    def stop(self) -> MonitorSession:
        """Stop accepting events, flush pending changes, return the session."""
        self._stopped = True
        with self._lock:
            pending = list(self._timers.items())
            self._timers.clear()
        for path, timer in pending:
            timer.cancel()
            self.session.record(ChangeKind.MODIFIED, path)
        return self.session


# ============= Watcher =============

class MonitorEventHandler(FileSystemEventHandler):
    """Translates watchdog events into ChangeEvents for a monitor."""

    def __init__(self, root: Path, monitor: ChangeMonitor):
        super().__init__()
        self.root = root
        self.monitor = monitor

    def _relative(self, path) -> Optional[str]:
        try:
            return Path(os.fsdecode(path)).relative_to(self.root).as_posix()
        except ValueError:
            return None

    def _emit(self, kind: ChangeKind, path) -> None:
        rel = self._relative(path)
        if rel:
            self.monitor.handle(ChangeEvent(kind, rel))

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory:
            self._emit(ChangeKind.ADDED, event.src_path)

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory:
            self._emit(ChangeKind.MODIFIED, event.src_path)

    def on_deleted(self, event: FileSystemEvent):
        if not event.is_directory:
            self._emit(ChangeKind.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent):
        if not event.is_directory:
            self._emit(ChangeKind.DELETED, event.src_path)
            self._emit(ChangeKind.ADDED, event.dest_path)


def watch(ctx: ProjectContext, monitor: ChangeMonitor) -> Observer:
    """Start a recursive observer on the project root feeding the monitor.

    The caller owns the observer and must stop() and join() it.
    """
    observer = Observer()
    observer.schedule(MonitorEventHandler(ctx.root, monitor), str(ctx.root), recursive=True)
    observer.start()
    logger.info("Watching %s", ctx.root)
    return observer


# ============= Triage =============

class TriageAction(str, Enum):
    TRACK = "track"
    IGNORE = "ignore"
    SKIP = "skip"


class TriageReport(BaseModel):
    """Outcome of triaging one session."""

    tracked: List[str] = Field(default_factory=list)
    ignored: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failures: List[FileFailure] = Field(default_factory=list)


def triage(
    session: MonitorSession,
    decide: Callable[[ChangeEvent], TriageAction],
    ctx: ProjectContext,
    store: Store,
    project_id: int,
    rules: IgnoreRules,
) -> TriageReport:
    """Route every recorded change, one at a time, then clear the session.

    Args:
        session: Changes collected by a stopped monitor
        decide: Chooses the action for each change (usually a prompt)
        ctx: Project context
        store: Project store
        project_id: Owning project
        rules: Rule set that gets one exact-path rule per ignored change;
            saved if changed

    Returns:
        TriageReport listing what happened to each path
    """
    report = TriageReport()
    rules_changed = False

    for event in session.items():
        action = decide(event)

        if action == TriageAction.TRACK:
            result = track_paths(ctx, store, project_id, [event.path], rules)
            report.tracked.extend(result.tracked)
            report.skipped.extend(result.ignored)
            report.failures.extend(result.failures)
        elif action == TriageAction.IGNORE:
            if rules.add(literal_rule(event.path)):
                rules_changed = True
            report.ignored.append(event.path)
        else:
            report.skipped.append(event.path)

    if rules_changed:
        rules.save()

    session.clear()
    logger.info(
        "Triage complete: %d tracked, %d ignored, %d skipped",
        len(report.tracked), len(report.ignored), len(report.skipped),
    )
    return report
