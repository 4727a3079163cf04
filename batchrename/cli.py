"""CLI entrypoints."""

from collections.abc import Callable
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from batchrename.config import (
    BACKUP_DIR_ENVVAR,
    HISTORY_FILE_NAME,
    STATE_DIR_ENVVAR,
    UNDO_FILE_NAME,
    user_data_dir,
)
from batchrename.engine import backup_context_for, backup_source_for, perform_rename_batch
from batchrename.history import write_history_log
from batchrename.models.rename import CaseConversionMode, InputParams, RenameOperation, RenamingMode
from batchrename.models.results import OutputResults
from batchrename.processors.backup import BackupManager
from batchrename.processors.plan_builder import calculate_rename_plan
from batchrename.processors.undo import perform_undo
from batchrename.session import UndoHistory


console = Console()


def plan_options(f: Callable) -> Callable:
    """Options shared by every command that computes a rename plan."""
    options = [
        click.argument("paths", type=click.Path(exists=True, path_type=Path), nargs=-1, required=True),
        click.option(
            "--manual",
            is_flag=True,
            default=False,
            help="Treat PATHS as an ordered list of files instead of a directory to scan.",
        ),
        click.option(
            "-t",
            "--template",
            type=str,
            required=True,
            help="Naming template, e.g. 'Photo_<num><ext>' or '<index>-<orig_name><ext>'.",
        ),
        click.option("-p", "--pattern", type=str, default="*", help="Wildcard pattern filenames must match."),
        click.option("--ext", type=str, default="", help="Comma-separated extensions to keep (e.g. 'jpg,png')."),
        click.option("--lowest", type=int, default=0, help="Lowest file number to include (0..0 disables)."),
        click.option("--highest", type=int, default=0, help="Highest file number to include (0..0 disables)."),
        click.option("--increment", type=int, default=0, help="Value added to each file number for <num>."),
        click.option("-r", "--recursive", is_flag=True, default=False, help="Scan subdirectories as well."),
        click.option("--find", "find_text", type=str, default="", help="Text to find in the generated name."),
        click.option("--replace", "replace_text", type=str, default="", help="Replacement for --find."),
        click.option("--case-sensitive", is_flag=True, default=False, help="Case-sensitive --find."),
        click.option("--regex", is_flag=True, default=False, help="Treat --find as a regular expression."),
        click.option(
            "--case",
            "case_conversion",
            type=click.Choice([mode.value for mode in CaseConversionMode]),
            default=CaseConversionMode.NO_CHANGE.value,
            help="Case conversion applied to the name (extension keeps its case).",
        ),
        click.option(
            "--strict-overwrites",
            is_flag=True,
            default=False,
            help="Treat files that would overwrite an unrelated existing file as errors.",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def build_params(
    paths: tuple[Path, ...],
    manual: bool,
    template: str,
    pattern: str,
    ext: str,
    lowest: int,
    highest: int,
    increment: int,
    recursive: bool,
    find_text: str,
    replace_text: str,
    case_sensitive: bool,
    regex: bool,
    case_conversion: str,
    strict_overwrites: bool,
) -> InputParams:
    """Translate command-line options into planning parameters."""
    if manual:
        mode_fields: dict = dict(mode=RenamingMode.MANUAL_SELECTION, manual_files=tuple(paths))
    else:
        if len(paths) != 1:
            raise click.BadParameter("exactly one directory is required unless --manual is given.", param_hint="PATHS")
        mode_fields = dict(mode=RenamingMode.DIRECTORY_SCAN, target_directory=paths[0])

    try:
        return InputParams(
            **mode_fields,
            naming_template=template,
            filename_pattern=pattern,
            extension_filter=ext,
            lowest_number=lowest,
            highest_number=highest,
            increment=increment,
            recursive_scan=recursive,
            find_text=find_text,
            replace_text=replace_text,
            find_case_sensitive=case_sensitive,
            find_use_regex=regex,
            case_conversion=CaseConversionMode(case_conversion),
            strict_overwrites=strict_overwrites,
        )
    except ValidationError as e:
        raise click.UsageError(f"Invalid options: {e}") from e


def print_plan_logs(results: OutputResults) -> None:
    for line in results.general_info_log:
        console.print(f"[dim]{escape(line)}[/dim]")
    for line in results.warning_log:
        console.print(f"[yellow]{escape(line)}[/yellow]")
    for overwrite in results.potential_overwrites_log:
        console.print(f"[yellow]Would overwrite:[/yellow] {escape(str(overwrite))}")
    for line in results.missing_source_files_log:
        console.print(f"[yellow]Skipped:[/yellow] {escape(line)}")
    for line in results.error_log:
        console.print(f"[red]{escape(line)}[/red]")


def print_plan_table(plan: list[RenameOperation]) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Original", style="cyan")
    table.add_column("New Name", style="green")
    table.add_column("Directory", style="dim")
    table.add_column("Note", style="yellow")

    for op in plan:
        note = "reuses a name freed by this batch" if op.conflict else ""
        table.add_row(escape(op.old_name), escape(op.new_name), escape(str(op.old_full_path.parent)), note)

    console.print(table)


def _state_dir(ctx: click.Context) -> Path:
    return ctx.obj["state_dir"]


def _load_undo_history(path: Path) -> UndoHistory:
    try:
        return UndoHistory.load(path, strict=True)
    except (OSError, ValueError) as e:
        console.print(
            f"[yellow]Warning:[/yellow] Could not read undo history ({escape(str(e))}). "
            "Starting with an empty history."
        )
        return UndoHistory()


def _save_undo_history(history: UndoHistory, path: Path) -> None:
    try:
        history.save(path)
    except OSError as e:
        console.print(f"[yellow]Warning:[/yellow] Could not save undo history: {escape(str(e))}")


def _swap(op: RenameOperation) -> RenameOperation:
    return op.model_copy(
        update=dict(
            old_name=op.new_name,
            new_name=op.old_name,
            old_full_path=op.new_full_path,
            new_full_path=op.old_full_path,
        )
    )


@click.group(context_settings=dict(show_default=True))
@click.option(
    "--state-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar=STATE_DIR_ENVVAR,
    default=None,
    help="Directory holding the undo history and rename log.",
)
@click.option(
    "--backup-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar=BACKUP_DIR_ENVVAR,
    default=None,
    help="Directory under which backups are created (defaults to Documents/RenameUtilityBackups).",
)
@click.pass_context
def cli(ctx: click.Context, state_dir: Path | None, backup_dir: Path | None) -> None:
    """batchrename - Template-driven batch file renaming with undo and backups."""
    ctx.ensure_object(dict)
    ctx.obj["state_dir"] = state_dir if state_dir is not None else user_data_dir()
    ctx.obj["backup_manager"] = BackupManager(backup_root=backup_dir)


@cli.command("preview")
@plan_options
def preview(paths: tuple[Path, ...], manual: bool, **options) -> None:
    """Show the rename plan without touching any file.

    Examples:

        batchrename preview photos -p "*.jpg" -t "Holiday_<num><ext>" --increment 1

        batchrename preview --manual a.txt b.txt -t "<index>-<orig_name><ext>"
    """
    params = build_params(paths, manual, **options)
    results = calculate_rename_plan(params)

    print_plan_logs(results)
    if results.rename_plan:
        console.print()
        print_plan_table(results.rename_plan)

    if not results.success:
        console.print("[bold red]Error:[/bold red] The rename plan has errors.")
        raise SystemExit(1)

    console.print(f"[bold green]{len(results.rename_plan)} file(s) would be renamed.[/bold green]")


@cli.command("rename")
@plan_options
@click.option(
    "--backup/--no-backup",
    default=True,
    help="Back up the affected directory before renaming.",
)
@click.option(
    "-y",
    "--yes",
    is_flag=True,
    default=False,
    help="Automatically apply renames without asking for confirmation.",
)
@click.option("--show-progress", is_flag=True, default=False, help="Display a progress bar while renaming.")
@click.pass_context
def rename(
    ctx: click.Context,
    paths: tuple[Path, ...],
    manual: bool,
    backup: bool,
    yes: bool,
    show_progress: bool,
    **options,
) -> None:
    """Rename files according to a naming template.

    Examples:

        batchrename rename photos -p "IMG_*.jpg" -t "Trip_<num><ext>" --increment 100

        batchrename rename --manual notes.txt todo.txt -t "<index>_<orig_name><ext>" --case upper -y
    """
    params = build_params(paths, manual, **options)

    console.print("[cyan]Calculating rename plan...[/cyan]")
    results = calculate_rename_plan(params)
    print_plan_logs(results)

    if not results.success:
        console.print("[bold red]Error:[/bold red] The rename plan has errors. No files were renamed.")
        raise SystemExit(1)

    if not results.rename_plan:
        console.print("[yellow]Nothing to rename.[/yellow]")
        return

    console.print()
    console.print("[bold]Proposed renames:[/bold]")
    print_plan_table(results.rename_plan)
    console.print()

    if not yes and not click.confirm("Apply these renames?", default=False):
        console.print("[yellow]Aborted. No files were renamed.[/yellow]")
        return

    backup_manager: BackupManager = ctx.obj["backup_manager"]
    backup_source = backup_source_for(params) if backup else None
    if backup_source is not None:
        console.print(f"[cyan]Backing up[/cyan] [bold cyan]{backup_source}[/bold cyan]...")

    console.print("[cyan]Applying renames...[/cyan]")
    batch = perform_rename_batch(
        results.rename_plan,
        params.increment,
        backup_source=backup_source,
        context_name=backup_context_for(params),
        backup_manager=backup_manager,
        show_progress=show_progress,
    )

    backup_path = None
    if batch.backup_result is not None:
        if not batch.backup_result.success:
            console.print(f"[bold red]Error:[/bold red] Backup failed: {escape(batch.backup_result.error_message)}")
            console.print("[yellow]No files were renamed.[/yellow]")
            raise SystemExit(1)
        backup_path = batch.backup_result.backup_path
        console.print(f"[green]Backup created:[/green] {backup_path}")

    outcome = batch.rename_result
    for name, reason in outcome.skipped_renames:
        console.print(f"[yellow]Skipped[/yellow] {escape(name)}: {escape(reason)}")
    for name, reason in outcome.failed_renames:
        console.print(f"[red]Failed[/red] {escape(name)}: {escape(reason)}")

    state_dir = _state_dir(ctx)
    if outcome.successful_rename_ops and not write_history_log(
        outcome.successful_rename_ops, "RENAME", state_dir / HISTORY_FILE_NAME
    ):
        console.print("[yellow]Warning:[/yellow] Could not write the rename history log.")

    if not outcome.overall_success:
        console.print(
            f"[bold red]Error:[/bold red] Renamed {len(outcome.successful_rename_ops)} file(s), "
            f"{len(outcome.failed_renames)} failed. This batch cannot be undone automatically."
        )
        raise SystemExit(1)

    undo_path = state_dir / UNDO_FILE_NAME
    history = _load_undo_history(undo_path)
    history.push(outcome.successful_rename_ops, backup_path=backup_path)
    _save_undo_history(history, undo_path)

    console.print(f"[bold green]Successfully renamed {len(outcome.successful_rename_ops)} file(s).[/bold green]")


@cli.command("undo")
@click.option(
    "-y",
    "--yes",
    is_flag=True,
    default=False,
    help="Undo without asking for confirmation.",
)
@click.option("--show-progress", is_flag=True, default=False, help="Display a progress bar while undoing.")
@click.pass_context
def undo(ctx: click.Context, yes: bool, show_progress: bool) -> None:
    """Revert the most recent rename batch."""
    state_dir = _state_dir(ctx)
    undo_path = state_dir / UNDO_FILE_NAME
    history = _load_undo_history(undo_path)

    batch = history.peek()
    if batch is None:
        console.print("[yellow]Nothing to undo.[/yellow]")
        return

    console.print(f"[bold]Most recent batch:[/bold] {batch.summary()}")
    print_plan_table([_swap(op) for op in batch.operations])

    if not yes and not click.confirm("Undo this batch?", default=False):
        console.print("[yellow]Aborted. No files were changed.[/yellow]")
        return

    # Undo is one-shot: the batch leaves the stack whatever the outcome.
    history.pop()
    _save_undo_history(history, undo_path)

    result = perform_undo(batch.operations, show_progress=show_progress)

    undone = set(result.successful_undos)
    reverted = [_swap(op) for op in batch.operations if (op.new_name, op.old_name) in undone]
    if reverted and not write_history_log(reverted, "UNDO", state_dir / HISTORY_FILE_NAME):
        console.print("[yellow]Warning:[/yellow] Could not write the rename history log.")

    for name, reason in result.skipped_undos:
        console.print(f"[yellow]Skipped[/yellow] {escape(name)}: {escape(reason)}")
    for name, reason in result.failed_undos:
        console.print(f"[red]Failed[/red] {escape(name)}: {escape(reason)}")

    if not result.overall_success:
        console.print(
            f"[bold red]Error:[/bold red] Reverted {len(result.successful_undos)} file(s), "
            f"{len(result.failed_undos)} failed."
        )
        if batch.backup_path is not None:
            console.print(f"A backup of the original files is available at [bold cyan]{batch.backup_path}[/bold cyan].")
        raise SystemExit(1)

    console.print(f"[bold green]Successfully reverted {len(result.successful_undos)} file(s).[/bold green]")


@cli.command("history")
@click.option("--limit", type=int, default=10, help="Maximum number of batches to list.")
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """List the rename batches that can still be undone, newest first."""
    undo_history = _load_undo_history(_state_dir(ctx) / UNDO_FILE_NAME)
    if not undo_history.batches:
        console.print("[yellow]No rename batches recorded.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("When", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Example", style="green")
    table.add_column("Backup", style="dim")

    for position, batch in enumerate(undo_history.batches[:limit], start=1):
        first = batch.operations[0]
        table.add_row(
            str(position),
            batch.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(len(batch)),
            escape(f"{first.old_name} -> {first.new_name}"),
            str(batch.backup_path) if batch.backup_path is not None else "",
        )

    console.print(table)


@cli.command("backup")
@click.argument("source", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--context", "context_name", type=str, default="", help="Label included in the backup folder name.")
@click.pass_context
def backup(ctx: click.Context, source: Path, context_name: str) -> None:
    """Create a timestamped backup copy of a directory."""
    backup_manager: BackupManager = ctx.obj["backup_manager"]

    console.print(f"Backing up [bold cyan]{source}[/bold cyan]...")
    result = backup_manager.perform_backup(source, context_name)
    if not result.success:
        console.print(f"[bold red]Error:[/bold red] {escape(result.error_message)}")
        raise SystemExit(1)

    console.print(f"[bold green]Backup created:[/bold green] [bold cyan]{result.backup_path}[/bold cyan]")


@cli.command("delete-backup")
@click.argument("path", type=click.Path(path_type=Path))
@click.option(
    "-y",
    "--yes",
    is_flag=True,
    default=False,
    help="Delete without asking for confirmation.",
)
@click.pass_context
def delete_backup_command(ctx: click.Context, path: Path, yes: bool) -> None:
    """Delete a backup folder."""
    if not yes and not click.confirm(f"Permanently delete '{path}'?", default=False):
        console.print("[yellow]Aborted. Nothing was deleted.[/yellow]")
        return

    backup_manager: BackupManager = ctx.obj["backup_manager"]
    result = backup_manager.delete_backup(path)
    if not result.success:
        console.print(f"[bold red]Error:[/bold red] {escape(result.error_message)}")
        raise SystemExit(1)

    if result.error_message:
        console.print(f"[yellow]{escape(result.error_message)}[/yellow]")
    else:
        console.print(f"[bold green]Deleted[/bold green] [bold cyan]{path}[/bold cyan].")
