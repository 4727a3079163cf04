"""Rename operation and planning input data models."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from batchrename.config import INT32_MAX, INT32_MIN


class RenamingMode(str, Enum):
    """Where the candidate files of a planning pass come from."""

    DIRECTORY_SCAN = "directory_scan"
    MANUAL_SELECTION = "manual_selection"


class CaseConversionMode(str, Enum):
    """Case conversion applied to the stem of a generated name."""

    NO_CHANGE = "none"
    TO_UPPER = "upper"
    TO_LOWER = "lower"


class RenameOperation(BaseModel):
    """A single planned or completed file rename."""

    old_name: str = Field(description="Original filename (without directory path)")
    new_name: str = Field(description="New filename (without directory path)")
    old_full_path: Path = Field(description="Full path of the file before the rename")
    new_full_path: Path = Field(description="Full path of the file after the rename")
    number: int | None = Field(
        default=None,
        description="Number parsed from the original filename (directory scan mode only)",
    )
    index: int = Field(default=0, description="1-based position in the manual list, 0 when not applicable")
    conflict: bool = Field(
        default=False,
        description="Target is currently occupied by another file of the same batch",
    )

    def __str__(self) -> str:
        return f"RenameOperation('{self.old_name}' -> '{self.new_name}')"


class PotentialOverwrite(BaseModel):
    """A generated target that already exists on disk and is unrelated to the batch."""

    source_file: str = Field(description="Name of the file that would have been renamed")
    target_file: str = Field(description="Generated target filename")
    target_path: Path = Field(description="Full path of the existing target")

    def __str__(self) -> str:
        return f"'{self.source_file}' -> '{self.target_file}' (exists: {self.target_path})"


class InputParams(BaseModel):
    """Immutable configuration for one planning pass."""

    model_config = ConfigDict(frozen=True)

    mode: RenamingMode = Field(default=RenamingMode.DIRECTORY_SCAN, description="Source of candidate files")
    target_directory: Path | None = Field(default=None, description="Directory to scan (directory scan mode)")
    manual_files: tuple[Path, ...] = Field(default=(), description="Explicit ordered file list (manual mode)")
    naming_template: str = Field(default="", description="Template with <placeholders> for the new name")
    find_text: str = Field(default="", description="Text or pattern to find in the generated name")
    replace_text: str = Field(default="", description="Replacement for find_text")
    find_case_sensitive: bool = Field(default=False, description="Case-sensitive find/replace")
    find_use_regex: bool = Field(default=False, description="Treat find_text as a regular expression")
    case_conversion: CaseConversionMode = Field(
        default=CaseConversionMode.NO_CHANGE,
        description="Case conversion applied to the stem of the final name",
    )
    increment: int = Field(default=0, ge=INT32_MIN, le=INT32_MAX, description="Added to each parsed number for <num>")
    filename_pattern: str = Field(default="*", description="Wildcard pattern (* and ?) filenames must match")
    extension_filter: str = Field(default="", description="Comma-separated list of extensions to keep")
    lowest_number: int = Field(default=0, ge=INT32_MIN, le=INT32_MAX, description="Lower bound of the number filter")
    highest_number: int = Field(default=0, ge=INT32_MIN, le=INT32_MAX, description="Upper bound of the number filter")
    recursive_scan: bool = Field(default=False, description="Scan subdirectories as well")
    strict_overwrites: bool = Field(
        default=False,
        description="Count skipped potential overwrites as errors",
    )

    @property
    def number_filter_active(self) -> bool:
        """A 0..0 range means no numeric filter."""
        return self.lowest_number != 0 or self.highest_number != 0
