"""SQLite persistence for projects, tracked files and snapshots."""

import logging
import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from .constants import DB_TIMEOUT
from .core import Project, Snapshot, SnapshotFile, TrackedFile
from .errors import NotFoundError, SnapshotNotFoundError
from .utils import utc_now


logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        created_at TEXT NOT NULL,
        secret_key TEXT
    );

    CREATE TABLE IF NOT EXISTS files (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL,
        path TEXT NOT NULL,
        hash TEXT NOT NULL,
        content TEXT,
        modified_at TEXT NOT NULL,
        UNIQUE (project_id, path),
        FOREIGN KEY (project_id) REFERENCES projects(id)
    );

    CREATE TABLE IF NOT EXISTS snapshots (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL,
        description TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (project_id) REFERENCES projects(id)
    );

    CREATE TABLE IF NOT EXISTS snapshot_files (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        snapshot_id INTEGER NOT NULL,
        file_id INTEGER NOT NULL,
        content TEXT NOT NULL,
        FOREIGN KEY (snapshot_id) REFERENCES snapshots(id),
        FOREIGN KEY (file_id) REFERENCES files(id)
    );

    CREATE INDEX IF NOT EXISTS idx_snapshots_project_created
        ON snapshots(project_id, created_at);
    CREATE INDEX IF NOT EXISTS idx_snapshot_files_snapshot
        ON snapshot_files(snapshot_id);
"""


class Store:
    """Project database (.svc/svc.db).

    Every public method opens its own connection. Multi-row operations that
    must be atomic (snapshot create and delete) run inside transaction().
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode: transactions are opened explicitly in transaction()
        conn = sqlite3.connect(str(self.db_path), timeout=DB_TIMEOUT, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Unit of work: commit on success, roll back on any exception."""
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Create tables and apply forward-compatible migrations."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn:
            conn.executescript(SCHEMA)
            # Older databases predate collaboration secrets
            columns = {row["name"] for row in conn.execute("PRAGMA table_info(projects)")}
            if "secret_key" not in columns:
                conn.execute("ALTER TABLE projects ADD COLUMN secret_key TEXT")

    # ============= Projects =============

    def create_project(self, name: str) -> Project:
        """Insert the project row if missing and return it."""
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO projects(name, created_at) VALUES (?, ?) ON CONFLICT(name) DO NOTHING",
                (name, utc_now()),
            )
        project = self.get_project(name)
        if project is None:
            raise NotFoundError(f"Project '{name}' could not be created")
        return project

    def get_project(self, name: str) -> Optional[Project]:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM projects WHERE name = ?", (name,)).fetchone()
        return Project(**dict(row)) if row else None

    def get_project_by_id(self, project_id: int) -> Project:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Project {project_id} not found")
        return Project(**dict(row))

    def set_secret_key(self, project_id: int, secret_key: str) -> None:
        with self.transaction() as conn:
            cursor = conn.execute(
                "UPDATE projects SET secret_key = ? WHERE id = ?", (secret_key, project_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Project {project_id} not found")

    # ============= Files =============

    def upsert_files(self, project_id: int, entries: Iterable[Tuple[str, str]]) -> int:
        """Insert or update (path, hash) rows; returns the number written."""
        now = utc_now()
        count = 0
        with self.transaction() as conn:
            for path, digest in entries:
                conn.execute(
                    """
                    INSERT INTO files(project_id, path, hash, modified_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(project_id, path) DO UPDATE
                    SET hash = excluded.hash, modified_at = excluded.modified_at
                    """,
                    (project_id, path, digest, now),
                )
                count += 1
        return count

    def list_files(self, project_id: int) -> List[TrackedFile]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                """
                SELECT id, project_id, path, hash, modified_at FROM files
                WHERE project_id = ? ORDER BY path
                """,
                (project_id,),
            ).fetchall()
        return [TrackedFile(**dict(row)) for row in rows]

    def get_file(self, project_id: int, path: str) -> Optional[TrackedFile]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                """
                SELECT id, project_id, path, hash, modified_at FROM files
                WHERE project_id = ? AND path = ?
                """,
                (project_id, path),
            ).fetchone()
        return TrackedFile(**dict(row)) if row else None

    # ============= Snapshots =============

    def create_snapshot(
        self,
        project_id: int,
        description: str,
        read_content: Callable[[TrackedFile], str],
    ) -> int:
        """Insert a snapshot and one content row per tracked file, atomically.

        Args:
            project_id: Owning project
            description: Snapshot description
            read_content: Returns the current content of a tracked file; any
                exception it raises rolls back the whole snapshot

        Returns:
            The new snapshot id
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO snapshots(project_id, description, created_at) VALUES (?, ?, ?)",
                (project_id, description, utc_now()),
            )
            snapshot_id = int(cursor.lastrowid)

            rows = conn.execute(
                """
                SELECT id, project_id, path, hash, modified_at FROM files
                WHERE project_id = ? ORDER BY path
                """,
                (project_id,),
            ).fetchall()
            for row in rows:
                tracked = TrackedFile(**dict(row))
                conn.execute(
                    "INSERT INTO snapshot_files(snapshot_id, file_id, content) VALUES (?, ?, ?)",
                    (snapshot_id, tracked.id, read_content(tracked)),
                )
        logger.debug("Snapshot %d stored with %d files", snapshot_id, len(rows))
        return snapshot_id

    def list_snapshots(self, project_id: int) -> List[Snapshot]:
        """Snapshots of a project in creation order."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                """
                SELECT s.id, s.project_id, s.description, s.created_at,
                       COUNT(sf.id) AS file_count
                FROM snapshots s
                LEFT JOIN snapshot_files sf ON sf.snapshot_id = s.id
                WHERE s.project_id = ?
                GROUP BY s.id
                ORDER BY s.created_at ASC, s.id ASC
                """,
                (project_id,),
            ).fetchall()
        return [Snapshot(**dict(row)) for row in rows]

    def get_snapshot(self, snapshot_id: int) -> Snapshot:
        with closing(self._connect()) as conn:
            row = conn.execute(
                """
                SELECT s.id, s.project_id, s.description, s.created_at,
                       (SELECT COUNT(*) FROM snapshot_files WHERE snapshot_id = s.id) AS file_count
                FROM snapshots s WHERE s.id = ?
                """,
                (snapshot_id,),
            ).fetchone()
        if row is None:
            raise SnapshotNotFoundError(snapshot_id)
        return Snapshot(**dict(row))

    def get_snapshot_files(self, snapshot_id: int) -> List[SnapshotFile]:
        """Captured content of a snapshot, ordered by path."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                """
                SELECT sf.id, sf.snapshot_id, sf.file_id, f.path, sf.content
                FROM snapshot_files sf
                INNER JOIN files f ON sf.file_id = f.id
                WHERE sf.snapshot_id = ?
                ORDER BY f.path
                """,
                (snapshot_id,),
            ).fetchall()
        return [SnapshotFile(**dict(row)) for row in rows]

    def delete_snapshot(self, snapshot_id: int) -> int:
        """Delete a snapshot's content rows, then the snapshot, atomically.

        Returns:
            Number of snapshot-file rows removed

        Raises:
            SnapshotNotFoundError: If the snapshot does not exist
        """
        with self.transaction() as conn:
            exists = conn.execute(
                "SELECT 1 FROM snapshots WHERE id = ?", (snapshot_id,)
            ).fetchone()
            if exists is None:
                raise SnapshotNotFoundError(snapshot_id)
            removed = conn.execute(
                "DELETE FROM snapshot_files WHERE snapshot_id = ?", (snapshot_id,)
            ).rowcount
            conn.execute("DELETE FROM snapshots WHERE id = ?", (snapshot_id,))
        return removed
