"""Tests for CLI commands."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from batchrename.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def photos(tmp_path: Path) -> Path:
    """A directory with three numbered photos."""
    directory = tmp_path / "photos"
    directory.mkdir()
    for n in (1, 2, 3):
        (directory / f"img_{n}.jpg").write_text(f"photo {n}")
    return directory


@pytest.fixture
def base_args(tmp_path: Path) -> list[str]:
    """Group options pointing the state and backup locations into tmp_path."""
    return ["--state-dir", str(tmp_path / "state"), "--backup-dir", str(tmp_path / "backups")]


def names(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.iterdir())


class TestHelp:
    """Tests for command discovery."""

    def test_group_help_lists_commands(self, runner: CliRunner) -> None:
        """Test that --help lists every command."""
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("preview", "rename", "undo", "history", "backup", "delete-backup"):
            assert command in result.output

    def test_rename_help_shows_plan_options(self, runner: CliRunner) -> None:
        """Test that the shared plan options are attached to rename."""
        result = runner.invoke(cli, ["rename", "--help"])

        assert result.exit_code == 0
        for option in ("--template", "--pattern", "--increment", "--recursive", "--strict-overwrites", "--backup"):
            assert option in result.output


class TestPreview:
    """Tests for the preview command."""

    def test_preview_does_not_touch_files(self, runner: CliRunner, photos: Path, base_args: list[str]) -> None:
        """Test that preview only reports the plan."""
        result = runner.invoke(cli, [*base_args, "preview", str(photos), "-t", "p_<num><ext>", "--increment", "1"])

        assert result.exit_code == 0, result.output
        assert "3 file(s) would be renamed." in result.output
        assert names(photos) == ["img_1.jpg", "img_2.jpg", "img_3.jpg"]

    def test_preview_planning_error_exits_nonzero(
        self, runner: CliRunner, photos: Path, base_args: list[str]
    ) -> None:
        """Test that a fatal planning error yields exit code 1."""
        result = runner.invoke(cli, [*base_args, "preview", str(photos), "-t", ""])

        assert result.exit_code == 1
        assert "New name pattern cannot be empty" in result.output

    def test_directory_scan_requires_single_directory(
        self, runner: CliRunner, photos: Path, base_args: list[str]
    ) -> None:
        """Test that several paths without --manual are rejected."""
        result = runner.invoke(cli, [*base_args, "preview", str(photos), str(photos), "-t", "x<ext>"])

        assert result.exit_code == 2
        assert "exactly one directory" in result.output

    def test_out_of_range_number_is_a_usage_error(
        self, runner: CliRunner, photos: Path, base_args: list[str]
    ) -> None:
        """Test that numbers beyond 32 bits are rejected."""
        result = runner.invoke(cli, [*base_args, "preview", str(photos), "-t", "x<ext>", "--increment", str(2**31)])

        assert result.exit_code == 2
        assert "Invalid options" in result.output


class TestRenameAndUndo:
    """Tests for the rename, undo and history commands."""

    def test_rename_without_backup(
        self, runner: CliRunner, photos: Path, base_args: list[str], tmp_path: Path
    ) -> None:
        """Test a confirmed rename and the state it records."""
        result = runner.invoke(
            cli,
            [*base_args, "rename", str(photos), "-t", "p_<num><ext>", "--increment", "1", "--no-backup", "-y"],
        )

        assert result.exit_code == 0, result.output
        assert "Successfully renamed 3 file(s)." in result.output
        assert names(photos) == ["p_02.jpg", "p_03.jpg", "p_04.jpg"]
        assert (tmp_path / "state" / "undo_history.json").exists()
        assert "=== RENAME at" in (tmp_path / "state" / "rename_history.log").read_text()
        assert not (tmp_path / "backups").exists()

    def test_rename_with_backup(self, runner: CliRunner, photos: Path, base_args: list[str], tmp_path: Path) -> None:
        """Test that the default rename takes a backup first."""
        result = runner.invoke(cli, [*base_args, "rename", str(photos), "-p", "*.jpg", "-t", "p_<num><ext>", "-y"])

        assert result.exit_code == 0, result.output
        backups = list((tmp_path / "backups").iterdir())
        assert len(backups) == 1
        assert backups[0].name.startswith("RenameBackup__.jpg_")
        assert names(backups[0]) == ["img_1.jpg", "img_2.jpg", "img_3.jpg"]

    def test_rename_declined(self, runner: CliRunner, photos: Path, base_args: list[str]) -> None:
        """Test that answering no leaves the files alone."""
        result = runner.invoke(cli, [*base_args, "rename", str(photos), "-t", "p_<num><ext>"], input="n\n")

        assert result.exit_code == 0
        assert "Aborted" in result.output
        assert names(photos) == ["img_1.jpg", "img_2.jpg", "img_3.jpg"]

    def test_rename_nothing_to_do(self, runner: CliRunner, photos: Path, base_args: list[str]) -> None:
        """Test the message for an empty plan."""
        result = runner.invoke(cli, [*base_args, "rename", str(photos), "-t", "<orig_name><ext>", "-y"])

        assert result.exit_code == 0
        assert "Nothing to rename." in result.output

    def test_rename_with_plan_errors_is_refused(self, runner: CliRunner, photos: Path, base_args: list[str]) -> None:
        """Test that a plan with errors is not executed."""
        result = runner.invoke(cli, [*base_args, "rename", str(photos), "-t", "same<ext>", "--no-backup", "-y"])

        assert result.exit_code == 1
        assert "No files were renamed" in result.output
        assert names(photos) == ["img_1.jpg", "img_2.jpg", "img_3.jpg"]

    def test_manual_mode(self, runner: CliRunner, photos: Path, base_args: list[str]) -> None:
        """Test renaming an explicit file list."""
        files = [str(photos / "img_3.jpg"), str(photos / "img_1.jpg")]

        result = runner.invoke(
            cli, [*base_args, "rename", "--manual", *files, "-t", "<index>-<orig_name><ext>", "--no-backup", "-y"]
        )

        assert result.exit_code == 0, result.output
        assert names(photos) == ["1-img_3.jpg", "2-img_1.jpg", "img_2.jpg"]

    def test_undo_restores_last_batch(self, runner: CliRunner, photos: Path, base_args: list[str]) -> None:
        """Test that undo reverts the newest batch and then reports nothing left."""
        runner.invoke(cli, [*base_args, "rename", str(photos), "-t", "a_<num><ext>", "--no-backup", "-y"])
        runner.invoke(cli, [*base_args, "rename", str(photos), "-t", "b_<orig_name><ext>", "--no-backup", "-y"])
        assert names(photos) == ["b_a_01.jpg", "b_a_02.jpg", "b_a_03.jpg"]

        first = runner.invoke(cli, [*base_args, "undo", "-y"])
        assert first.exit_code == 0, first.output
        assert names(photos) == ["a_01.jpg", "a_02.jpg", "a_03.jpg"]

        second = runner.invoke(cli, [*base_args, "undo", "-y"])
        assert second.exit_code == 0, second.output
        assert names(photos) == ["img_1.jpg", "img_2.jpg", "img_3.jpg"]

        third = runner.invoke(cli, [*base_args, "undo", "-y"])
        assert "Nothing to undo." in third.output

    def test_undo_declined_keeps_batch(self, runner: CliRunner, photos: Path, base_args: list[str]) -> None:
        """Test that declining an undo keeps it available."""
        runner.invoke(cli, [*base_args, "rename", str(photos), "-t", "a_<num><ext>", "--no-backup", "-y"])

        declined = runner.invoke(cli, [*base_args, "undo"], input="n\n")
        assert "Aborted" in declined.output

        accepted = runner.invoke(cli, [*base_args, "undo", "-y"])
        assert accepted.exit_code == 0
        assert names(photos) == ["img_1.jpg", "img_2.jpg", "img_3.jpg"]

    def test_undo_failure_exits_nonzero(self, runner: CliRunner, photos: Path, base_args: list[str]) -> None:
        """Test that an undo blocked by a new file reports failure."""
        runner.invoke(cli, [*base_args, "rename", str(photos), "-t", "a_<num><ext>", "--no-backup", "-y"])
        (photos / "img_1.jpg").write_text("newcomer")

        result = runner.invoke(cli, [*base_args, "undo", "-y"])

        assert result.exit_code == 1
        assert (photos / "img_1.jpg").read_text() == "newcomer"
        assert (photos / "a_01.jpg").exists()

    def test_history_lists_batches(self, runner: CliRunner, photos: Path, base_args: list[str]) -> None:
        """Test the history listing."""
        empty = runner.invoke(cli, [*base_args, "history"])
        assert "No rename batches recorded." in empty.output

        runner.invoke(cli, [*base_args, "rename", str(photos), "-t", "a_<num><ext>", "--no-backup", "-y"])
        result = runner.invoke(cli, [*base_args, "history"])

        assert result.exit_code == 0
        assert "No rename batches recorded." not in result.output

    def test_corrupt_undo_history_is_reported(
        self, runner: CliRunner, base_args: list[str], tmp_path: Path
    ) -> None:
        """Test that a corrupt undo file produces a warning, not a crash."""
        state = tmp_path / "state"
        state.mkdir()
        (state / "undo_history.json").write_text("garbage")

        result = runner.invoke(cli, [*base_args, "undo", "-y"])

        assert result.exit_code == 0
        assert "Could not read undo history" in result.output
        assert "Nothing to undo." in result.output

    def test_state_dir_from_environment(self, runner: CliRunner, photos: Path, tmp_path: Path) -> None:
        """Test the environment variable override of the state directory."""
        state = tmp_path / "env_state"

        result = runner.invoke(
            cli,
            ["rename", str(photos), "-t", "a_<num><ext>", "--no-backup", "-y"],
            env={"BATCHRENAME_STATE_DIR": str(state)},
        )

        assert result.exit_code == 0, result.output
        assert (state / "undo_history.json").exists()


class TestBackupCommands:
    """Tests for the backup and delete-backup commands."""

    def test_backup_and_delete(self, runner: CliRunner, photos: Path, base_args: list[str], tmp_path: Path) -> None:
        """Test creating and deleting a backup."""
        result = runner.invoke(cli, [*base_args, "backup", str(photos), "--context", "Trip"])

        assert result.exit_code == 0, result.output
        backups = list((tmp_path / "backups").iterdir())
        assert len(backups) == 1
        assert backups[0].name.startswith("RenameBackup_Trip_")

        deleted = runner.invoke(cli, [*base_args, "delete-backup", str(backups[0]), "-y"])

        assert deleted.exit_code == 0, deleted.output
        assert not backups[0].exists()

    def test_delete_missing_backup(self, runner: CliRunner, base_args: list[str], tmp_path: Path) -> None:
        """Test that deleting a missing backup is reported but succeeds."""
        result = runner.invoke(cli, [*base_args, "delete-backup", str(tmp_path / "gone"), "-y"])

        assert result.exit_code == 0
        assert "already deleted" in result.output

    def test_delete_backup_declined(self, runner: CliRunner, base_args: list[str], tmp_path: Path) -> None:
        """Test that declining keeps the folder."""
        folder = tmp_path / "keep"
        folder.mkdir()

        result = runner.invoke(cli, [*base_args, "delete-backup", str(folder)], input="n\n")

        assert "Aborted" in result.output
        assert folder.exists()

    def test_delete_file_fails(self, runner: CliRunner, base_args: list[str], tmp_path: Path) -> None:
        """Test that a regular file is not deleted."""
        path = tmp_path / "file.txt"
        path.write_text("x")

        result = runner.invoke(cli, [*base_args, "delete-backup", str(path), "-y"])

        assert result.exit_code == 1
        assert path.exists()
