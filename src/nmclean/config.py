"""Engine configuration for nmclean.

Settings live in ~/.nmclean/config.json (or the file named by the
NMCLEAN_CONFIG environment variable). A missing file means defaults.
"""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from nmclean.cleaner import DEFAULT_DELETE_WORKERS
from nmclean.errors import ConfigError
from nmclean.filters import SKIP_DIRECTORIES, TARGET_NAMES, PathFilter
from nmclean.sizer import DEFAULT_SIZE_WORKERS

CONFIG_ENV_VAR = "NMCLEAN_CONFIG"

# Paths that should never be deleted, whatever the request says
DEFAULT_PROTECTED_PATHS = [
    "~",
    "/",
    "/bin",
    "/etc",
    "/usr",
    "/var",
    "/System",
    "/Library",
    "/Applications",
]


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


def default_config_file() -> Path:
    """Location of the config file, honouring NMCLEAN_CONFIG."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return expand_path(override)
    return expand_path("~/.nmclean") / "config.json"


class EngineConfig(BaseModel):
    """Tunable settings for scanning and cleaning."""

    target_names: list[str] = Field(
        default_factory=lambda: sorted(TARGET_NAMES),
        description="Directory names to find and clean",
    )
    skip_names: list[str] = Field(
        default_factory=lambda: sorted(SKIP_DIRECTORIES),
        description="Directory names never descended into",
    )
    skip_hidden: bool = Field(True, description="Skip hidden directories while scanning")
    max_depth: Optional[int] = Field(
        None, ge=1, description="Deepest level to scan below the root (None for no limit)"
    )
    size_workers: int = Field(
        DEFAULT_SIZE_WORKERS, ge=1, description="Parallel workers for size measurement"
    )
    delete_workers: int = Field(
        DEFAULT_DELETE_WORKERS, ge=1, description="Parallel workers for deletion"
    )
    protected_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PROTECTED_PATHS),
        description="Paths (supports ~) that are never deleted",
    )
    sort_by_size: bool = Field(
        False, description="Order scan results by size, largest first, when sizes are computed"
    )
    skip_empty: bool = Field(
        False, description="Leave zero-byte targets out of results when sizes are computed"
    )

    def path_filter(self) -> PathFilter:
        """Build the traversal filter described by this config."""
        return PathFilter(
            target_names=self.target_names,
            skip_names=self.skip_names,
            skip_hidden=self.skip_hidden,
        )

    def expanded_protected_paths(self) -> list[Path]:
        """Protected paths with ~ and variables expanded."""
        return [expand_path(p) for p in self.protected_paths]


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """
    Load configuration from disk.

    Args:
        path: Config file to read (default: default_config_file())

    Returns:
        EngineConfig, with defaults when the file does not exist

    Raises:
        ConfigError: If the file exists but is not valid
    """
    config_file = path or default_config_file()
    if not config_file.exists():
        return EngineConfig()

    try:
        with open(config_file) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Cannot read {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_file} must contain a JSON object")

    try:
        return EngineConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {config_file}: {e}") from e


def save_config(config: EngineConfig, path: Optional[Path] = None) -> Path:
    """
    Save configuration to disk.

    Returns:
        The file that was written

    Raises:
        ConfigError: If the file cannot be written
    """
    config_file = path or default_config_file()
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, "w") as f:
            f.write(config.model_dump_json(indent=2))
    except OSError as e:
        raise ConfigError(f"Cannot write {config_file}: {e}") from e
    return config_file
