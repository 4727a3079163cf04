"""Unit tests for data models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from batchrename.models.rename import InputParams, PotentialOverwrite, RenameOperation, RenamingMode
from batchrename.models.results import (
    BackupResult,
    OutputResults,
    RenameBatchResult,
    RenameExecutionResult,
    UndoResult,
)


class TestRenameOperation:
    """Tests for RenameOperation model."""

    @pytest.fixture
    def sample_op(self):
        return RenameOperation(
            old_name="a.txt",
            new_name="b.txt",
            old_full_path=Path("/tmp/a.txt"),
            new_full_path=Path("/tmp/b.txt"),
            number=3,
        )

    def test_defaults(self, sample_op):
        """Test default index and conflict flag."""
        assert sample_op.index == 0
        assert sample_op.conflict is False

    def test_str_representation(self, sample_op):
        """Test string representation."""
        assert str(sample_op) == "RenameOperation('a.txt' -> 'b.txt')"

    def test_json_round_trip(self, sample_op):
        """Test that operations survive JSON serialization."""
        restored = RenameOperation.model_validate_json(sample_op.model_dump_json())

        assert restored == sample_op


class TestPotentialOverwrite:
    """Tests for PotentialOverwrite model."""

    def test_str_representation(self):
        """Test string representation."""
        overwrite = PotentialOverwrite(source_file="a.txt", target_file="b.txt", target_path=Path("/x/b.txt"))

        result = str(overwrite)

        assert "'a.txt' -> 'b.txt'" in result
        assert "b.txt" in result


class TestInputParams:
    """Tests for InputParams model."""

    def test_defaults(self):
        """Test default planning parameters."""
        params = InputParams()

        assert params.mode == RenamingMode.DIRECTORY_SCAN
        assert params.filename_pattern == "*"
        assert params.manual_files == ()
        assert not params.number_filter_active
        assert not params.strict_overwrites

    def test_is_frozen(self):
        """Test that parameters cannot be changed after construction."""
        params = InputParams(naming_template="x")

        with pytest.raises(ValidationError):
            params.naming_template = "y"

    @pytest.mark.parametrize("field", ["increment", "lowest_number", "highest_number"])
    def test_integers_are_bounded_to_32_bits(self, field):
        """Test the 32-bit range validation."""
        with pytest.raises(ValidationError):
            InputParams(**{field: 2**31})

    @pytest.mark.parametrize(
        "lowest,highest,expected",
        [
            (0, 0, False),
            (0, 5, True),
            (-3, 0, True),
        ],
    )
    def test_number_filter_active(self, lowest, highest, expected):
        """Test that only the 0..0 range disables the number filter."""
        assert InputParams(lowest_number=lowest, highest_number=highest).number_filter_active is expected

    def test_manual_files_accept_lists(self):
        """Test that manual file lists are coerced to tuples of paths."""
        params = InputParams(mode=RenamingMode.MANUAL_SELECTION, manual_files=["a.txt", "b.txt"])

        assert params.manual_files == (Path("a.txt"), Path("b.txt"))


class TestResults:
    """Tests for result models."""

    def test_output_results_summary(self):
        """Test the plan summary."""
        results = OutputResults(error_log=["boom"], warning_log=["w1", "w2"])

        summary = results.summary()

        assert "Planned renames: 0" in summary
        assert "Warnings: 2" in summary
        assert "Errors: 1" in summary
        assert len(results) == 0
        assert results.success is False

    def test_execution_summary_truncates_failures(self):
        """Test that long failure lists are truncated in the summary."""
        result = RenameExecutionResult(failed_renames=[(f"f{i}", "reason") for i in range(12)])

        summary = result.summary()

        assert "Failed: 12" in summary
        assert "and 2 more failures" in summary

    def test_undo_summary(self):
        """Test the undo summary."""
        result = UndoResult(successful_undos=[("b.txt", "a.txt")], overall_success=True)

        assert "Reverted: 1" in result.summary()
        assert len(result) == 1

    @pytest.mark.parametrize(
        "backup_attempted,backup_ok,rename_ok,expected",
        [
            (False, False, True, True),
            (True, True, True, True),
            (True, False, False, False),
            (False, False, False, False),
        ],
    )
    def test_batch_success(self, backup_attempted, backup_ok, rename_ok, expected):
        """Test the combined success of backup and rename."""
        batch = RenameBatchResult(
            backup_attempted=backup_attempted,
            backup_result=BackupResult(success=backup_ok) if backup_attempted else None,
            rename_result=RenameExecutionResult(overall_success=rename_ok),
        )

        assert batch.success is expected
