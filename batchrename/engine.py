"""Public engine entry points and the combined backup-then-rename action."""

from pathlib import Path

from batchrename.models.rename import InputParams, RenameOperation, RenamingMode
from batchrename.models.results import BackupResult, RenameBatchResult, RenameExecutionResult
from batchrename.processors.backup import BackupManager, delete_backup, perform_backup
from batchrename.processors.executor import RenameExecutor, perform_rename
from batchrename.processors.plan_builder import calculate_rename_plan
from batchrename.processors.undo import perform_undo


__all__ = [
    "backup_context_for",
    "backup_source_for",
    "calculate_rename_plan",
    "delete_backup",
    "perform_backup",
    "perform_rename",
    "perform_rename_batch",
    "perform_undo",
]


def backup_source_for(params: InputParams) -> Path | None:
    """Directory that should be backed up before renaming the files selected by `params`."""
    if params.mode == RenamingMode.DIRECTORY_SCAN:
        return params.target_directory
    if params.manual_files:
        return params.manual_files[0].parent
    return None


def backup_context_for(params: InputParams) -> str:
    """Label for the backup folder of a batch planned from `params`."""
    if params.mode == RenamingMode.MANUAL_SELECTION:
        return "ManualList"
    context = params.filename_pattern or "DirScan"
    return context.replace("*", "_").replace("?", "_")


def perform_rename_batch(
    plan: list[RenameOperation],
    increment: int = 0,
    backup_source: Path | None = None,
    context_name: str = "",
    backup_manager: BackupManager | None = None,
    show_progress: bool = False,
) -> RenameBatchResult:
    """Optionally back up `backup_source`, then execute `plan`.

    A failed backup aborts the action before any file is renamed.
    """
    result = RenameBatchResult()

    if backup_source is not None:
        manager = backup_manager or BackupManager()
        result.backup_attempted = True
        try:
            result.backup_result = manager.perform_backup(backup_source, context_name)
        except Exception as e:
            result.backup_result = BackupResult(success=False, error_message=f"Unexpected error during backup: {e}")

        if not result.backup_result.success:
            result.rename_result = RenameExecutionResult(overall_success=False)
            return result

    result.rename_result = RenameExecutor(show_progress=show_progress).run(plan, increment)
    return result
