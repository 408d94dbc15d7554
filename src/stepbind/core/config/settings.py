"""Resolver settings model and project config loading."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

CONFIG_DIR_NAME = ".stepbind"
CONFIG_FILE_NAME = "config.yaml"

DEFAULT_EXCLUDE_PATTERNS = [
    "**/bin/**",
    "**/obj/**",
    "**/node_modules/**",
    "**/.git/**",
]


class ResolverSettings(BaseModel):
    """Tunables for detection, indexing and matching."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    # Minimum detection confidence for a provider to become active
    active_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    case_insensitive: bool = False
    debug: bool = False
    exclude_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS)
    )
    max_files_indexed: int = Field(default=5000, gt=0)
    max_concurrent_files: int = Field(default=16, gt=0)

    def with_changes(self, **changes: Any) -> "ResolverSettings":
        """Return validated settings with ``changes`` applied."""
        return ResolverSettings.model_validate({**self.model_dump(), **changes})


def config_path_for(project_dir: Path) -> Path:
    return project_dir / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def load_settings(project_dir: Path, **overrides: Any) -> ResolverSettings:
    """Load settings from ``.stepbind/config.yaml`` under ``project_dir``.

    A missing file yields defaults. Keyword overrides with a value of None
    are ignored so CLI options can be forwarded unconditionally.

    Args:
        project_dir: Directory that may contain the ``.stepbind`` folder.
        **overrides: Values that take precedence over the file.

    Returns:
        Validated settings.

    Raises:
        ValueError: If the file cannot be read or is not a YAML mapping.
        pydantic.ValidationError: If a value is out of range or unknown.
    """
    config_file = config_path_for(project_dir)
    data: dict[str, Any] = {}
    if config_file.exists():
        try:
            with open(config_file, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ValueError(f"Failed to load config file {config_file}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_file} must contain a mapping")

    data.update({key: value for key, value in overrides.items() if value is not None})
    return ResolverSettings.model_validate(data)
