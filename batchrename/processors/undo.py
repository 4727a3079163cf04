"""Undo processor: best-effort reversal of a completed rename batch."""

from tqdm import tqdm

from batchrename.models.rename import RenameOperation
from batchrename.models.results import UndoResult
from batchrename.processors.fs_checks import describe_os_error, is_regular_file, path_exists


class UndoProcessor:
    """Reverts successful rename operations, last one first."""

    def __init__(self, show_progress: bool = False) -> None:
        self.show_progress = show_progress

    def _undo_one(self, op: RenameOperation) -> str | None:
        current, original = op.new_full_path, op.old_full_path

        if not is_regular_file(current):
            return f"Skipped: Renamed file not found ({current})."
        if path_exists(original):
            return f"Skipped: Original path is occupied ({original})."

        current.rename(original)

        if not path_exists(original):
            return f"Undo verification failed: original missing after rename ({original})."
        if path_exists(current):
            return f"Undo verification failed: renamed file still exists ({current})."
        return None

    def run(self, operations: list[RenameOperation]) -> UndoResult:
        """Move every file back to its original path.

        Args:
            operations: Successful operations in the order they were executed.

        Returns:
            UndoResult; `overall_success` requires a non-empty input and no failures.
        """
        result = UndoResult()

        for op in tqdm(list(reversed(operations)), desc="Undoing renames...", disable=not self.show_progress):
            if op.old_full_path == op.new_full_path:
                result.skipped_undos.append((op.new_name, "Skipped: Original and renamed paths are identical."))
                continue

            try:
                reason = self._undo_one(op)
            except OSError as e:
                reason = f"Undo failed: {describe_os_error(e)}"
            except Exception as e:
                reason = f"Unexpected error: {e}"

            if reason is None:
                result.successful_undos.append((op.new_name, op.old_name))
            else:
                result.failed_undos.append((op.new_name, reason))

        result.overall_success = bool(operations) and not result.failed_undos
        return result


def perform_undo(operations: list[RenameOperation], show_progress: bool = False) -> UndoResult:
    """Revert a batch of successful rename operations."""
    return UndoProcessor(show_progress=show_progress).run(operations)
