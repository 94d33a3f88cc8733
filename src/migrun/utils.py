"""Utility functions for migrun."""

import os
from pathlib import Path


def expand_path(path: str | Path) -> Path:
    """
    Expand ~ and environment variables in a path.

    Args:
        path: Path string or Path object

    Returns:
        Expanded Path
    """
    return Path(os.path.expandvars(os.path.expanduser(str(path))))


def resolve_path(path: str | Path, base_dir: Path) -> Path:
    """
    Expand a path and anchor it at base_dir when it is relative.

    Args:
        path: Path string or Path object
        base_dir: Directory relative paths are resolved against

    Returns:
        Absolute Path
    """
    expanded = expand_path(path)
    if not expanded.is_absolute():
        expanded = base_dir / expanded
    return expanded.resolve()


def ensure_dir(path: Path) -> Path:
    """
    Create directory (and parents) if it does not exist.

    Args:
        path: Directory path

    Returns:
        The same path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
