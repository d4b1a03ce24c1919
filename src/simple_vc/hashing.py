"""Content hashing for tracked files."""

from pathlib import Path
import hashlib

# Read buffer for hashing (bytes)
HASH_CHUNK_SIZE = 64 * 1024


def compute_file_digest(path: Path) -> str:
    """Hash the raw bytes of a file.

    No newline or encoding normalization is applied, so the digest changes
    whenever any byte on disk changes.

    Returns:
        Digest in the form "sha256:<64 hex chars>"

    Raises:
        OSError: If the file cannot be opened or read
    """
    digest = hashlib.sha256()
    buffer = bytearray(HASH_CHUNK_SIZE)
    view = memoryview(buffer)
    with path.open("rb", buffering=0) as f:
        while True:
            n = f.readinto(buffer)
            if not n:
                break
            digest.update(view[:n])
    return f"sha256:{digest.hexdigest()}"


__all__ = ["compute_file_digest", "HASH_CHUNK_SIZE"]
