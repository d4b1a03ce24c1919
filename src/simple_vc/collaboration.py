"""Per-project collaboration secrets."""

import logging
import secrets

from .constants import SECRET_KEY_BYTES
from .store import Store


logger = logging.getLogger(__name__)


def generate_secret_key() -> str:
    """Random hex token (two characters per byte)."""
    return secrets.token_hex(SECRET_KEY_BYTES)


def get_secret_key(store: Store, project_id: int) -> str:
    """Return the project's secret, issuing one on first request."""
    project = store.get_project_by_id(project_id)
    if project.secret_key:
        return project.secret_key
    key = generate_secret_key()
    store.set_secret_key(project_id, key)
    logger.info("Issued secret key for project %s", project.name)
    return key


def regenerate_secret_key(store: Store, project_id: int) -> str:
    """Replace the project's secret unconditionally."""
    key = generate_secret_key()
    store.set_secret_key(project_id, key)
    logger.info("Regenerated secret key for project %d", project_id)
    return key
