"""Utility functions for simple-vc."""

from datetime import datetime, timezone
from pathlib import Path
import os
import tempfile


def utc_now() -> str:
    """Get current timestamp in ISO 8601 format (UTC, microsecond precision).

    The fixed-width format sorts lexically in creation order, which the
    snapshot history relies on.
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# Relative-age buckets: (upper bound in seconds, unit seconds, unit name)
_AGE_UNITS = ((3600, 60, "minute"), (86400, 3600, "hour"), (604800, 86400, "day"))


def _parse_timestamp(iso_string: str) -> datetime:
    """Parse a timestamp written by utc_now() (or any naive ISO 8601 UTC string)."""
    return datetime.fromisoformat(iso_string.rstrip("Z")).replace(tzinfo=timezone.utc)


def format_iso_date(iso_string: str) -> str:
    """Render a stored timestamp as "YYYY-MM-DD HH:MM:SS" (seconds precision).

    Unparsable input is returned unchanged.
    """
    try:
        return _parse_timestamp(iso_string).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return iso_string


def humanize_date(iso_string: str) -> str:
    """Describe a stored timestamp relative to now ("3 minutes ago").

    Anything older than a week falls back to format_iso_date().
    """
    try:
        seconds = (datetime.now(timezone.utc) - _parse_timestamp(iso_string)).total_seconds()
    except ValueError:
        return iso_string

    if seconds < 60:
        return "just now"
    for limit, unit, name in _AGE_UNITS:
        if seconds < limit:
            count = int(seconds // unit)
            return f"{count} {name}{'' if count == 1 else 's'} ago"
    return format_iso_date(iso_string)


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """Atomically write text to file with crash safety.

    1. Writes to temp file with fsync to ensure content is on disk
    2. Atomic rename to target path (appears all-at-once)
    3. Fsync parent directory to ensure rename is durable

    Missing parent directories are created. Line endings are written
    exactly as given (no newline translation).

    Args:
        path: Target file path
        text: Text content to write
        encoding: Text encoding
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding=encoding,
        newline="",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.tmp-",
        suffix=""
    ) as f:
        tmp = Path(f.name)
        try:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        except BaseException:
            f.close()
            tmp.unlink(missing_ok=True)
            raise

    try:
        os.replace(tmp, path)

        # Directory fsync is best-effort (unsupported on Windows)
        try:
            flags = os.O_RDONLY
            if hasattr(os, "O_DIRECTORY"):
                flags |= os.O_DIRECTORY

            dirfd = os.open(str(path.parent), flags)
            try:
                os.fsync(dirfd)
            finally:
                os.close(dirfd)
        except OSError:
            pass
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def read_text_lenient(path: Path, encoding: str = "utf-8") -> str:
    """Read a file as text, replacing undecodable bytes.

    Line endings are preserved as stored on disk.
    """
    with path.open("r", encoding=encoding, errors="replace", newline="") as f:
        return f.read()
