"""Result models returned by the planning, execution, undo and backup engines.

Results double as error channels: every expected failure is recorded in one of the
log collections instead of being raised.
"""

from pathlib import Path

from pydantic import BaseModel, Field

from batchrename.models.rename import PotentialOverwrite, RenameOperation


class OutputResults(BaseModel):
    """A rename plan together with the diagnostics collected while building it."""

    rename_plan: list[RenameOperation] = Field(default_factory=list, description="Accepted rename operations")
    missing_source_files_log: list[str] = Field(
        default_factory=list,
        description="Source files that were skipped, with the reason",
    )
    potential_overwrites_log: list[PotentialOverwrite] = Field(
        default_factory=list,
        description="Targets that exist on disk and are not part of the batch",
    )
    general_info_log: list[str] = Field(default_factory=list, description="Informational messages")
    warning_log: list[str] = Field(default_factory=list, description="Non-fatal problems")
    error_log: list[str] = Field(default_factory=list, description="Errors; any entry makes the pass unsuccessful")
    success: bool = Field(default=False, description="No fatal error occurred and the error log is empty")

    def __len__(self) -> int:
        return len(self.rename_plan)

    def summary(self) -> str:
        """Return a human-readable summary of the planning pass."""
        lines = [
            "Rename Plan Summary:",
            f"  Planned renames: {len(self.rename_plan)}",
            f"  Skipped sources: {len(self.missing_source_files_log)}",
            f"  Potential overwrites: {len(self.potential_overwrites_log)}",
            f"  Warnings: {len(self.warning_log)}",
            f"  Errors: {len(self.error_log)}",
        ]
        return "\n".join(lines)


class RenameExecutionResult(BaseModel):
    """Itemized outcome of executing a rename plan."""

    successful_rename_ops: list[RenameOperation] = Field(
        default_factory=list,
        description="Operations that completed and verified, in execution order",
    )
    failed_renames: list[tuple[str, str]] = Field(default_factory=list, description="(original name, reason) pairs")
    skipped_renames: list[tuple[str, str]] = Field(
        default_factory=list,
        description="(original name, reason) pairs for identity renames that were not attempted",
    )
    overall_success: bool = Field(default=False, description="Plan was non-empty and nothing failed")

    def __len__(self) -> int:
        return len(self.successful_rename_ops)

    def summary(self) -> str:
        """Return a human-readable summary of the execution."""
        lines = [
            "Execution Result:",
            f"  Renamed: {len(self.successful_rename_ops)}",
            f"  Failed: {len(self.failed_renames)}",
            f"  Skipped: {len(self.skipped_renames)}",
        ]
        for name, reason in self.failed_renames[:10]:
            lines.append(f"  - {name}: {reason}")
        if len(self.failed_renames) > 10:
            lines.append(f"  ... and {len(self.failed_renames) - 10} more failures")
        return "\n".join(lines)


class UndoResult(BaseModel):
    """Itemized outcome of reverting a rename batch."""

    successful_undos: list[tuple[str, str]] = Field(
        default_factory=list,
        description="(renamed name, restored name) pairs",
    )
    failed_undos: list[tuple[str, str]] = Field(default_factory=list, description="(renamed name, reason) pairs")
    skipped_undos: list[tuple[str, str]] = Field(
        default_factory=list,
        description="(renamed name, reason) pairs for identity operations that were not attempted",
    )
    overall_success: bool = Field(default=False, description="Input was non-empty and nothing failed")

    def __len__(self) -> int:
        return len(self.successful_undos)

    def summary(self) -> str:
        """Return a human-readable summary of the undo."""
        lines = [
            "Undo Result:",
            f"  Reverted: {len(self.successful_undos)}",
            f"  Failed: {len(self.failed_undos)}",
            f"  Skipped: {len(self.skipped_undos)}",
        ]
        return "\n".join(lines)


class BackupResult(BaseModel):
    """Outcome of snapshotting a directory before a rename batch."""

    backup_path: Path | None = Field(default=None, description="Backup folder that was (or would have been) created")
    success: bool = Field(default=False, description="The copy completed")
    error_message: str = Field(default="", description="Failure description, including cleanup problems")


class DeleteResult(BaseModel):
    """Outcome of deleting a backup folder."""

    success: bool = Field(default=False, description="The folder is gone")
    error_message: str = Field(default="", description="Failure description or note")


class RenameBatchResult(BaseModel):
    """Outcome of the combined backup-then-rename action."""

    backup_attempted: bool = Field(default=False, description="A backup was requested")
    backup_result: BackupResult | None = Field(default=None, description="Backup outcome when attempted")
    rename_result: RenameExecutionResult = Field(
        default_factory=RenameExecutionResult,
        description="Rename outcome; empty when the backup failed",
    )

    @property
    def success(self) -> bool:
        backup_ok = not self.backup_attempted or (self.backup_result is not None and self.backup_result.success)
        return backup_ok and self.rename_result.overall_success
