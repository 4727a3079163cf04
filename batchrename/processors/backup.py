"""Backup manager: timestamped recursive snapshots of a directory and their removal."""

import os
import re
import shutil
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from batchrename.config import (
    BACKUP_FOLDER_PREFIX,
    BACKUP_TIMESTAMP_FORMAT,
    DEFAULT_CONTEXT_NAME,
    FALLBACK_CONTEXT_NAME,
    MAX_CONTEXT_LENGTH,
    default_backup_root,
)
from batchrename.models.results import BackupResult, DeleteResult
from batchrename.processors.fs_checks import describe_os_error, is_directory, path_exists


_INVALID_CONTEXT_CHARS = re.compile(r'[<>:"/\\|?*]')
_DOTS_ONLY = re.compile(r"^\.+$")


class BackupError(Exception):
    """Raised when a backup cannot be created."""


def sanitize_context_name(context_name: str, source: Path | None = None) -> str:
    """Turn a free-form context label into a safe folder name component.

    An empty label falls back to the source directory's name, or to a generic
    label when that is unavailable.

    Examples:
        >>> sanitize_context_name("*.jpg")
        '_.jpg'
        >>> sanitize_context_name("..")
        '_'
    """
    if not context_name:
        context_name = source.name if source is not None and source.name else DEFAULT_CONTEXT_NAME

    sanitized = _INVALID_CONTEXT_CHARS.sub("_", context_name)
    sanitized = _DOTS_ONLY.sub("_", sanitized)
    sanitized = sanitized.strip(". ")
    sanitized = sanitized[:MAX_CONTEXT_LENGTH]
    return sanitized or FALLBACK_CONTEXT_NAME


def copy_tree(source: Path, destination: Path) -> None:
    """Recursively copy regular files and directories from `source` into `destination`.

    Existing files in the destination are overwritten. Symlinks and other special
    entries are skipped.

    Raises:
        BackupError: If any directory cannot be created or any file cannot be copied.
    """
    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BackupError(f"Failed to create backup directory '{destination}': {describe_os_error(e)}") from e

    try:
        with os.scandir(source) as entries:
            children = list(entries)
    except OSError as e:
        raise BackupError(f"Failed to read directory '{source}': {describe_os_error(e)}") from e

    for entry in children:
        entry_source = Path(entry.path)
        entry_destination = destination / entry.name
        try:
            if entry.is_dir(follow_symlinks=False):
                copy_tree(entry_source, entry_destination)
            elif entry.is_file(follow_symlinks=False):
                shutil.copy2(entry_source, entry_destination)
        except OSError as e:
            raise BackupError(
                f"Failed to copy '{entry_source}' to '{entry_destination}': {describe_os_error(e)}"
            ) from e


class BackupManager:
    """Creates and deletes timestamped backups under a backup root directory."""

    def __init__(
        self,
        backup_root: Path | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the backup manager.

        Args:
            backup_root: Parent directory of all backup folders. Defaults to
                `RenameUtilityBackups` inside the user's documents directory.
            now: Clock used for the folder timestamp.
        """
        self.backup_root = backup_root
        self.now = now or datetime.now

    def _resolve_root(self) -> Path:
        return self.backup_root if self.backup_root is not None else default_backup_root()

    def backup_folder_name(self, source: Path, context_name: str) -> str:
        timestamp = self.now().strftime(BACKUP_TIMESTAMP_FORMAT)
        return f"{BACKUP_FOLDER_PREFIX}_{sanitize_context_name(context_name, source)}_{timestamp}"

    def perform_backup(self, source: Path, context_name: str = "") -> BackupResult:
        """Copy `source` recursively into a new timestamped backup folder.

        Args:
            source: Directory to back up.
            context_name: Label embedded in the backup folder name.

        Returns:
            BackupResult. On failure any partially created folder is removed, and a
            failed removal is appended to the error message.
        """
        try:
            backup_root = self._resolve_root()
            backup_path = backup_root / self.backup_folder_name(source, context_name)
        except Exception as e:
            return BackupResult(success=False, error_message=f"Failed to determine backup location: {e}")

        try:
            source_is_dir = source.is_dir()
        except (OSError, ValueError) as e:
            return BackupResult(
                backup_path=backup_path,
                success=False,
                error_message=f"Failed to check backup source '{source}': {describe_os_error(e)}",
            )
        if not source_is_dir:
            return BackupResult(
                backup_path=backup_path,
                success=False,
                error_message=f"Backup source is not a valid directory: '{source}'.",
            )

        try:
            backup_root.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as e:
            return BackupResult(
                backup_path=backup_path,
                success=False,
                error_message=f"Failed to create backup parent directory '{backup_root}': {describe_os_error(e)}",
            )

        try:
            destination_exists = path_exists(backup_path)
        except (OSError, ValueError) as e:
            return BackupResult(
                backup_path=backup_path,
                success=False,
                error_message=f"Failed to check backup destination '{backup_path}': {describe_os_error(e)}",
            )
        if destination_exists:
            return BackupResult(
                backup_path=backup_path,
                success=False,
                error_message=f"Backup destination already exists: '{backup_path}'.",
            )

        try:
            copy_tree(source, backup_path)
        except Exception as e:
            message = str(e) if isinstance(e, BackupError) else f"Unexpected error during backup: {e}"
            cleanup_error = self._cleanup(backup_path)
            if cleanup_error:
                message += f" | Additionally, failed to cleanup partially created backup directory: {cleanup_error}"
            return BackupResult(backup_path=backup_path, success=False, error_message=message)

        return BackupResult(backup_path=backup_path, success=True)

    def _cleanup(self, backup_path: Path) -> str:
        """Remove a partial backup. Returns an error description, or "" on success."""
        try:
            if path_exists(backup_path):
                shutil.rmtree(backup_path)
        except OSError as e:
            return f"'{backup_path}': {describe_os_error(e)}"
        return ""

    def delete_backup(self, path: Path | str) -> DeleteResult:
        """Recursively delete a backup folder.

        A path that no longer exists counts as deleted.
        """
        if str(path) in ("", ".", ".."):
            return DeleteResult(success=False, error_message=f"Invalid backup path: '{path}'.")

        backup_path = Path(path)
        try:
            if not path_exists(backup_path):
                return DeleteResult(
                    success=True,
                    error_message=f"Backup path not found (already deleted?): '{backup_path}'.",
                )
            if not is_directory(backup_path):
                return DeleteResult(
                    success=False,
                    error_message=f"Backup path is not a directory: '{backup_path}'.",
                )

            shutil.rmtree(backup_path)

            if path_exists(backup_path):
                return DeleteResult(
                    success=False,
                    error_message=f"Backup directory still exists after deletion: '{backup_path}'.",
                )
        except OSError as e:
            return DeleteResult(
                success=False,
                error_message=f"Failed to delete backup '{backup_path}': {describe_os_error(e)}",
            )

        return DeleteResult(success=True)


def perform_backup(source: Path, context_name: str = "", backup_root: Path | None = None) -> BackupResult:
    """Snapshot `source` into a new timestamped backup folder."""
    return BackupManager(backup_root=backup_root).perform_backup(source, context_name)


def delete_backup(path: Path | str) -> DeleteResult:
    """Delete a backup folder created by `perform_backup`."""
    return BackupManager().delete_backup(path)
