"""Project context for managing paths and project discovery."""

from pathlib import Path
from typing import Optional, Union

from .config import SvcConfig, load_config
from .constants import CONFIG_FILE, DB_FILE, SVC_DIR
from .errors import NotInitializedError, ValidationFailedError


class ProjectContext:
    """Manages project root discovery and path resolution."""

    def __init__(self, start_path: Optional[Path] = None):
        """Initialize context by finding the project root.

        Args:
            start_path: Path to start searching for project root

        Raises:
            NotInitializedError: If no .svc directory is found
        """
        start = Path(start_path) if start_path else Path.cwd()
        root = self._find_root(start)
        if not root:
            raise NotInitializedError(start)
        self.root = root
        self._config: Optional[SvcConfig] = None

    @classmethod
    def is_initialized(cls, path: Optional[Path] = None) -> bool:
        """Check if a specific directory is initialized (without traversing up)."""
        target = Path(path) if path else Path.cwd()
        return (target / SVC_DIR).is_dir()

    @classmethod
    def init(cls, path: Optional[Path] = None) -> "ProjectContext":
        """Create the marker directory for a new project at the given path."""
        target = Path(path) if path else Path.cwd()
        (target / SVC_DIR).mkdir(parents=True, exist_ok=True)
        return cls(target)

    def _find_root(self, start: Path) -> Optional[Path]:
        """Walk up directory tree to find project root."""
        current = start.resolve()

        while current != current.parent:
            if (current / SVC_DIR).is_dir():
                return current
            current = current.parent

        if (current / SVC_DIR).is_dir():
            return current
        return None

    @property
    def project_name(self) -> str:
        """Project identity: the base name of the working directory."""
        return self.root.name

    @property
    def storage_dir(self) -> Path:
        return self.root / SVC_DIR

    @property
    def db_path(self) -> Path:
        return self.storage_dir / DB_FILE

    @property
    def config_path(self) -> Path:
        return self.storage_dir / CONFIG_FILE

    @property
    def config(self) -> SvcConfig:
        """Project configuration (memoized)."""
        if self._config is None:
            self._config = load_config(self.config_path, self.project_name)
        return self._config

    @property
    def ignore_path(self) -> Path:
        return self.root / self.config.ignore_file

    def to_project_relative(self, path: Union[str, Path]) -> str:
        """Convert a path to a project-relative POSIX string.

        Relative inputs are interpreted relative to the project root.

        Raises:
            ValidationFailedError: If the path lies outside the project
        """
        p = Path(path)
        absolute = p if p.is_absolute() else self.root / p
        try:
            return absolute.resolve().relative_to(self.root).as_posix()
        except ValueError:
            raise ValidationFailedError(f"Path {path} is outside project")

    def absolute(self, project_path: Union[str, Path]) -> Path:
        """Get absolute path from project-relative path."""
        return self.root / project_path
