"""Filesystem checks shared by the planning, execution, undo and backup engines.

All checks use `lstat`, so symlinks are never followed: a symlink is not a regular
file, and a dangling symlink still occupies its path.
"""

import os
import stat
from pathlib import Path


def path_exists(path: Path) -> bool:
    """Whether anything (including a dangling symlink) occupies `path`.

    Raises:
        OSError: For failures other than the path being absent.
    """
    try:
        os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        return False
    return True


def is_regular_file(path: Path) -> bool:
    """Whether `path` is a regular file (not a symlink, directory or device).

    Raises:
        OSError: For failures other than the path being absent.
    """
    try:
        mode = os.lstat(path).st_mode
    except (FileNotFoundError, NotADirectoryError):
        return False
    return stat.S_ISREG(mode)


def is_directory(path: Path) -> bool:
    """Whether `path` is a real directory (a symlink to one does not count)."""
    try:
        mode = os.lstat(path).st_mode
    except (FileNotFoundError, NotADirectoryError):
        return False
    return stat.S_ISDIR(mode)


def describe_os_error(error: Exception) -> str:
    """Short system message for an OSError, falling back to its string form."""
    return getattr(error, "strerror", None) or str(error)
