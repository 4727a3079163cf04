"""Append-only plain-text log of executed rename and undo batches."""

from datetime import datetime
from pathlib import Path

from batchrename.models.rename import RenameOperation


def format_history_entry(
    operations: list[RenameOperation],
    operation_type: str,
    timestamp: datetime | None = None,
) -> str:
    """Render one batch as a history log block.

    Example block:

        === RENAME at 2024-05-01 12:30:00 ===
        Files: 1
          /photos/a.jpg -> /photos/b.jpg
    """
    timestamp = timestamp or datetime.now()
    lines = [
        "",
        f"=== {operation_type} at {timestamp.strftime('%Y-%m-%d %H:%M:%S')} ===",
        f"Files: {len(operations)}",
    ]
    lines.extend(f"  {op.old_full_path} -> {op.new_full_path}" for op in operations)
    return "\n".join(lines) + "\n"


def write_history_log(
    operations: list[RenameOperation],
    operation_type: str,
    log_path: Path,
    timestamp: datetime | None = None,
) -> bool:
    """Append a batch to the history log.

    Returns:
        True if the entry was written (or there was nothing to write), False if the
        log could not be written.
    """
    if not operations:
        return True

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as f:
            f.write(format_history_entry(operations, operation_type, timestamp))
    except OSError:
        return False
    return True


def read_history_log(log_path: Path) -> str:
    """Return the full history log, or an empty string if there is none."""
    try:
        return log_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
