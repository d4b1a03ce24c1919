"""Project configuration helpers."""

from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from .constants import DEFAULT_DEBOUNCE_SECONDS, DEFAULT_ENCODING, IGNORE_FILE
from .errors import ConfigError
from .utils import atomic_write_text


class SvcConfig(BaseModel):
    """Project configuration (stored in .svc/config.yaml)."""

    project_name: str
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    encoding: str = DEFAULT_ENCODING
    ignore_file: str = IGNORE_FILE


def load_config(config_path: Path, project_name: str) -> SvcConfig:
    """Load configuration, falling back to defaults if the file is absent."""
    if not config_path.exists():
        return SvcConfig(project_name=project_name)

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    data.setdefault("project_name", project_name)
    try:
        return SvcConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def save_config(config: SvcConfig, config_path: Path) -> None:
    """Save configuration atomically."""
    config_text = yaml.safe_dump(config.model_dump(), default_flow_style=False, sort_keys=False)
    atomic_write_text(config_path, config_text)
