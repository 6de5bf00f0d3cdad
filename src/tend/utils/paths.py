"""Path expansion helpers and default file locations."""

from pathlib import Path
from typing import Union


def expand_path(path: Union[str, Path]) -> Path:
    """Expand ~ and resolve a path."""
    return Path(path).expanduser().resolve()


def ensure_parent_exists(path: Union[str, Path]) -> Path:
    """Ensure the parent directory of a path exists, creating it if necessary."""
    path = expand_path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Get the tend configuration directory (~/.tend)."""
    return Path("~/.tend").expanduser()


def get_config_file() -> Path:
    """Get the path to the default config file."""
    return get_config_dir() / "config.json"
