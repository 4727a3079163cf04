"""Rename executor: applies a plan to the filesystem in a collision-avoiding order."""

from tqdm import tqdm

from batchrename.models.rename import RenameOperation
from batchrename.models.results import RenameExecutionResult
from batchrename.processors.fs_checks import describe_os_error, is_regular_file, path_exists


def _execution_key(op: RenameOperation, increment: int) -> tuple[int, int, int, str]:
    if op.number is None:
        return (1, 0, op.index, str(op.old_full_path))
    return (0, -op.number if increment > 0 else op.number, op.index, str(op.old_full_path))


def order_for_execution(plan: list[RenameOperation], increment: int) -> list[RenameOperation]:
    """Return a sorted copy of `plan` in the order the renames should run.

    Numbered operations run first, highest number first when `increment` is
    positive, so a file never moves onto a slot that is still occupied by a file
    yet to move. Numberless operations follow. Ties fall back to the manual index
    and then to the original path.
    """
    return sorted(plan, key=lambda op: _execution_key(op, increment))


class RenameExecutor:
    """Executes rename plans with verification of every step."""

    def __init__(self, show_progress: bool = False) -> None:
        """Initialize the executor.

        Args:
            show_progress: Whether to display a tqdm progress bar while renaming.
        """
        self.show_progress = show_progress

    def _rename_one(self, op: RenameOperation) -> str | None:
        """Rename a single file. Returns a failure reason, or None on success."""
        source, target = op.old_full_path, op.new_full_path

        if not is_regular_file(source):
            return f"Skipped: Source file disappeared ({source})."
        if path_exists(target):
            return f"Skipped: Target path already exists ({target})."

        source.rename(target)

        if path_exists(source):
            return f"Rename verification failed: source still exists after rename ({source})."
        if not path_exists(target):
            return f"Rename verification failed: target missing after rename ({target})."
        return None

    def run(self, plan: list[RenameOperation], increment: int = 0) -> RenameExecutionResult:
        """Execute every operation of `plan`.

        Failures never abort the batch; each one is recorded with its reason.

        Args:
            plan: Operations produced by the plan builder. The list is not modified.
            increment: The increment used for planning; selects the execution order.

        Returns:
            RenameExecutionResult with successes, failures and skipped operations.
        """
        result = RenameExecutionResult()

        for op in tqdm(order_for_execution(plan, increment), desc="Renaming files...", disable=not self.show_progress):
            if op.old_full_path == op.new_full_path:
                result.skipped_renames.append((op.old_name, "Skipped: Source and target paths are identical."))
                continue

            try:
                reason = self._rename_one(op)
            except OSError as e:
                reason = f"Rename failed: {describe_os_error(e)}"
            except Exception as e:
                reason = f"Unexpected error: {e}"

            if reason is None:
                result.successful_rename_ops.append(op)
            else:
                result.failed_renames.append((op.old_name, reason))

        result.overall_success = bool(plan) and not result.failed_renames
        return result


def perform_rename(
    plan: list[RenameOperation],
    increment: int = 0,
    show_progress: bool = False,
) -> RenameExecutionResult:
    """Apply a rename plan and report itemized outcomes."""
    return RenameExecutor(show_progress=show_progress).run(plan, increment)
