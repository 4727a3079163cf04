"""Constants and platform directory resolution."""

import os
import sys
from pathlib import Path


# 32-bit signed bounds used for parsed and incremented file numbers
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Maximum length of a <random:N> token
MAX_RANDOM_LENGTH = 64

# Zero-pad width bounds for <num>/<orig_num> when a numeric filter is active
MIN_NUMBER_WIDTH = 2
MAX_NUMBER_WIDTH = 9
DEFAULT_NUMBER_WIDTH = 2

# Backup naming
BACKUP_DIR_NAME = "RenameUtilityBackups"
BACKUP_FOLDER_PREFIX = "RenameBackup"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
MAX_CONTEXT_LENGTH = 50
DEFAULT_CONTEXT_NAME = "BackupContext"
FALLBACK_CONTEXT_NAME = "Backup"

# Host-side state
APP_NAME = "batchrename"
HISTORY_FILE_NAME = "rename_history.log"
UNDO_FILE_NAME = "undo_history.json"
MAX_UNDO_LEVELS = 10

# Environment overrides (read by the CLI through click's envvar support)
BACKUP_DIR_ENVVAR = "BATCHRENAME_BACKUP_DIR"
STATE_DIR_ENVVAR = "BATCHRENAME_STATE_DIR"


def documents_dir() -> Path:
    """Best guess at the user's documents folder.

    Falls back to the home directory, then to the current working directory when
    no home can be determined.
    """
    xdg_documents = os.environ.get("XDG_DOCUMENTS_DIR")
    if xdg_documents:
        return Path(xdg_documents).expanduser()

    try:
        home = Path.home()
    except RuntimeError:
        return Path.cwd()

    documents = home / "Documents"
    if documents.is_dir():
        return documents
    return home


def default_backup_root() -> Path:
    """Parent directory under which timestamped backup folders are created."""
    return documents_dir() / BACKUP_DIR_NAME


def user_data_dir() -> Path:
    """Per-user application data directory for the undo stack and history log."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / APP_NAME
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME

    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data) / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME
