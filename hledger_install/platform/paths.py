"""User-level paths.

Binaries are installed per user, never system-wide, so nothing here needs
root.
"""

from __future__ import annotations

import os
from pathlib import Path

__all__ = [
    "home",
    "local_bin_dir",
    "on_path",
]


def home() -> Path:
    """Get the user's home directory.

    Prefers HOME so CI and container environments can redirect it.
    """
    home_env = os.environ.get("HOME")
    if home_env:
        return Path(home_env)
    return Path.home()


def local_bin_dir() -> Path:
    """Directory binaries are installed into: ~/.local/bin."""
    return home() / ".local" / "bin"


def on_path(directory: Path, path_env: str | None = None) -> bool:
    """Check whether a directory is listed in PATH.

    Args:
        directory: Directory to look for
        path_env: PATH value to search (defaults to the current PATH)
    """
    if path_env is None:
        path_env = os.environ.get("PATH", "")
    entries = [entry.rstrip("/") for entry in path_env.split(os.pathsep) if entry]
    return str(directory).rstrip("/") in entries
