"""Persistent multi-level undo stack of completed rename batches."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from batchrename.config import MAX_UNDO_LEVELS
from batchrename.models.rename import RenameOperation


class UndoBatch(BaseModel):
    """One completed rename batch that can still be reverted."""

    created_at: datetime = Field(default_factory=datetime.now, description="When the batch was executed")
    operations: list[RenameOperation] = Field(description="Successful operations in execution order")
    backup_path: Path | None = Field(default=None, description="Backup taken before the batch, if any")

    def __len__(self) -> int:
        return len(self.operations)

    def summary(self) -> str:
        """Return a one-line description of the batch."""
        line = f"{self.created_at.strftime('%Y-%m-%d %H:%M:%S')}: {len(self.operations)} file(s)"
        if self.backup_path is not None:
            line += f" (backup: {self.backup_path})"
        return line


class UndoHistory(BaseModel):
    """Undo stack, newest batch first, bounded to a fixed number of levels."""

    batches: list[UndoBatch] = Field(default_factory=list, description="Stored batches, newest first")
    max_levels: int = Field(default=MAX_UNDO_LEVELS, ge=1, description="Maximum number of stored batches")

    def __len__(self) -> int:
        return len(self.batches)

    def push(self, operations: list[RenameOperation], backup_path: Path | None = None) -> UndoBatch | None:
        """Record a completed batch. Empty batches are ignored."""
        if not operations:
            return None

        batch = UndoBatch(operations=list(operations), backup_path=backup_path)
        self.batches.insert(0, batch)
        del self.batches[self.max_levels :]
        return batch

    def pop(self) -> UndoBatch | None:
        """Remove and return the newest batch."""
        if not self.batches:
            return None
        return self.batches.pop(0)

    def peek(self) -> UndoBatch | None:
        return self.batches[0] if self.batches else None

    @classmethod
    def load(cls, path: Path, strict: bool = False) -> "UndoHistory":
        """Load a stored stack.

        A missing file always yields an empty stack. An unreadable or corrupt file
        yields an empty stack too, unless `strict` is set, in which case the error
        is raised.
        """
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return cls()
        except (OSError, ValidationError, ValueError):
            if strict:
                raise
            return cls()

    def save(self, path: Path) -> None:
        """Write the stack to `path` as JSON.

        Raises:
            OSError: If the file cannot be written.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
