"""Snapshot content: capture from disk and load from the store."""

import logging
from typing import Callable, Dict, Optional

from pydantic import BaseModel, Field

from .context import ProjectContext
from .core import DiffFilter, Snapshot, TrackedFile
from .store import Store
from .utils import read_text_lenient


logger = logging.getLogger(__name__)


def content_reader(ctx: ProjectContext) -> Callable[[TrackedFile], str]:
    """Build the reader used while capturing a snapshot.

    A tracked path that is no longer a regular file (deleted, or replaced by
    a directory) is captured as empty content. So is a file that cannot be
    read; a warning is logged. Content is decoded as text; undecodable bytes
    are replaced, so the captured text of a binary file does not round-trip
    to its hashed bytes.
    """
    encoding = ctx.config.encoding

    def _read(tracked: TrackedFile) -> str:
        path = ctx.absolute(tracked.path)
        if not path.is_file():
            logger.debug("Capturing %s as empty (not a regular file)", tracked.path)
            return ""
        try:
            return read_text_lenient(path, encoding)
        except OSError as e:
            logger.warning("Capturing unreadable file %s as empty: %s", tracked.path, e.strerror or e)
            return ""

    return _read


class SnapshotContents(BaseModel):
    """Path -> content map of one stored snapshot."""

    snapshot: Snapshot
    files: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def load(cls, store: Store, snapshot_id: int) -> "SnapshotContents":
        """Load a snapshot's captured files (raises SnapshotNotFoundError)."""
        snapshot = store.get_snapshot(snapshot_id)
        files = {sf.path: sf.content for sf in store.get_snapshot_files(snapshot_id)}
        return cls(snapshot=snapshot, files=files)

    def filtered(self, diff_filter: Optional[DiffFilter] = None) -> Dict[str, str]:
        if diff_filter is None:
            return dict(self.files)
        return {p: c for p, c in self.files.items() if diff_filter.accepts(p)}
