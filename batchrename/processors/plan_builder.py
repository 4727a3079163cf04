"""Rename plan builder: scan, filter, expand templates and detect conflicts."""

import math
import os
import random
import re
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from batchrename.config import DEFAULT_NUMBER_WIDTH, INT32_MAX, INT32_MIN, MAX_NUMBER_WIDTH, MIN_NUMBER_WIDTH
from batchrename.models.rename import InputParams, PotentialOverwrite, RenameOperation, RenamingMode
from batchrename.models.results import OutputResults
from batchrename.naming import (
    apply_case_conversion,
    convert_wildcard_to_regex,
    has_control_characters,
    iequals,
    parse_last_number,
    perform_find_replace,
    replace_placeholders,
    split_name,
)
from batchrename.processors.fs_checks import describe_os_error, is_regular_file, path_exists


NUMBER_TOKENS = ("<num>", "<orig_num>")


def parse_extension_filter(extensions: str) -> set[str]:
    """Parse a comma-separated extension list into lowercase, dot-prefixed entries.

    Examples:
        >>> sorted(parse_extension_filter("JPG, .png,,"))
        ['.jpg', '.png']
    """
    parsed: set[str] = set()
    for token in extensions.split(","):
        ext = token.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = "." + ext
        parsed.add(ext)
    return parsed


def compute_number_width(lowest: int, highest: int, increment: int) -> int:
    """Zero-pad width for <num>/<orig_num>.

    Derived from the magnitude of the filter bounds and their increment-shifted
    extremes, clamped to [2, 9]. Without a numeric filter the width is 2.
    """
    if lowest == 0 and highest == 0:
        return DEFAULT_NUMBER_WIDTH

    max_abs = max(
        abs(highest),
        abs(lowest),
        abs(highest + abs(increment)),
        abs(lowest - abs(increment)),
    )
    width = int(math.floor(math.log10(max_abs))) + 1 if max_abs > 0 else 1
    return min(MAX_NUMBER_WIDTH, max(MIN_NUMBER_WIDTH, width))


class PlanBuilder:
    """Builds a conflict-checked rename plan from planning parameters.

    One builder performs one planning pass. The random source and clock can be
    injected to make <random:N> and date/time placeholders deterministic.
    """

    def __init__(
        self,
        params: InputParams,
        rng: random.Random | None = None,
        now: datetime | None = None,
    ) -> None:
        """Initialize the plan builder.

        Args:
            params: Planning parameters for this pass.
            rng: Random source for <random:N>. A fresh generator is used if omitted.
            now: Clock reading for date/time placeholders. Read once per pass if omitted.
        """
        self.params = params
        self.rng = rng if rng is not None else random.Random()
        self.now = now

        self._results = OutputResults()
        self._plan_now = now
        # lowercase target path -> accepted operation (None once rejected or retracted)
        self._targets: dict[str, RenameOperation | None] = {}
        self._files_matched = 0

    def run(self) -> OutputResults:
        """Perform the planning pass.

        Returns:
            OutputResults with the plan and every diagnostic collected. Never raises.
        """
        self._results = OutputResults(success=True)
        self._targets = {}
        self._files_matched = 0
        self._plan_now = self.now if self.now is not None else datetime.now()
        results = self._results

        if not self.params.naming_template:
            return self._fatal("FATAL: New name pattern cannot be empty.")

        try:
            if self.params.mode == RenamingMode.DIRECTORY_SCAN:
                completed = self._plan_directory_scan()
            else:
                completed = self._plan_manual_selection()
        except Exception as e:
            return self._fatal(f"FATAL: Unexpected error while calculating the rename plan: {e}")

        if not completed:
            return results

        results.success = results.success and not results.error_log
        self._append_summary()
        return results

    def _fatal(self, message: str) -> OutputResults:
        self._results.error_log.append(message)
        self._results.rename_plan = []
        self._results.success = False
        return self._results

    # Directory scan

    def _plan_directory_scan(self) -> bool:
        params = self.params
        results = self._results
        target = params.target_directory

        if target is None or not target.is_dir():
            self._fatal(f"FATAL: Target directory is invalid or inaccessible: {target if target is not None else ''}")
            return False
        if not params.filename_pattern:
            self._fatal("FATAL: Filename Pattern cannot be empty in Directory Scan mode.")
            return False
        if params.lowest_number > params.highest_number and params.number_filter_active:
            self._fatal("FATAL: Lowest Number filter cannot be greater than Highest Number filter.")
            return False

        try:
            name_regex = re.compile(convert_wildcard_to_regex(params.filename_pattern), re.IGNORECASE)
        except re.error as e:
            self._fatal(f"FATAL: Invalid Filename Pattern (regex error): {e}")
            return False

        extension_filter = parse_extension_filter(params.extension_filter)
        if extension_filter:
            results.general_info_log.append(f"Filtering by extensions: {params.extension_filter}")

        number_width = compute_number_width(params.lowest_number, params.highest_number, params.increment)
        needs_numbers = params.number_filter_active or any(token in params.naming_template for token in NUMBER_TOKENS)

        try:
            found = self._scan(target, name_regex, extension_filter, needs_numbers)
        except OSError as e:
            self._fatal(f"FATAL: Filesystem error starting directory scan at '{target}': {describe_os_error(e)}")
            return False

        self._files_matched = len(found)
        batch_paths = set(found)

        for path in sorted(found):
            original_number = found[path]
            new_number = None
            if original_number is not None:
                new_number = original_number + params.increment
                if not INT32_MIN <= new_number <= INT32_MAX:
                    results.error_log.append(
                        f"Error: Incremented number for '{path.name}' is out of the 32-bit integer range. Skipped."
                    )
                    results.missing_source_files_log.append(
                        f"{path.name} (in {path.parent}) (Skipped: Incremented number out of int range)"
                    )
                    results.success = False
                    continue

            self._consider(
                path,
                batch_paths,
                original_number=original_number,
                new_number=new_number,
                number_width=number_width,
            )

        return True

    def _scan(
        self,
        target: Path,
        name_regex: re.Pattern,
        extension_filter: set[str],
        needs_numbers: bool,
    ) -> dict[Path, int | None]:
        """Collect matching regular files, mapped to their parsed trailing number."""
        params = self.params
        found: dict[Path, int | None] = {}

        if params.recursive_scan:
            self._results.general_info_log.append("Starting recursive directory scan...")
        else:
            self._results.general_info_log.append("Starting non-recursive directory scan...")

        for path in self._iter_regular_files(target):
            name = path.name
            if not name_regex.fullmatch(name):
                continue
            if extension_filter and split_name(name)[1].lower() not in extension_filter:
                continue

            original_number = parse_last_number(name) if needs_numbers else None
            if params.number_filter_active and (
                original_number is None or not params.lowest_number <= original_number <= params.highest_number
            ):
                continue

            found[path] = original_number

        return found

    def _iter_regular_files(self, target: Path) -> Iterator[Path]:
        """Yield regular files under `target`, logging and skipping unreadable entries.

        Raises:
            OSError: If `target` itself cannot be listed.
        """
        warnings = self._results.warning_log

        if not self.params.recursive_scan:
            with os.scandir(target) as entries:
                for entry in entries:
                    try:
                        if entry.is_file(follow_symlinks=False):
                            yield Path(entry.path)
                    except OSError as e:
                        warnings.append(
                            f"Warning: Filesystem error checking type of '{entry.path}': {describe_os_error(e)}"
                        )
            return

        def _on_error(error: OSError) -> None:
            if error.filename is not None and Path(error.filename) == target:
                raise error
            warnings.append(
                f"Warning: Filesystem error during recursive scan near '{error.filename}': {describe_os_error(error)}"
            )

        for dirpath, _dirnames, filenames in os.walk(target, onerror=_on_error):
            for filename in filenames:
                path = Path(dirpath) / filename
                try:
                    if is_regular_file(path):
                        yield path
                except OSError as e:
                    warnings.append(f"Warning: Filesystem error checking type of '{path}': {describe_os_error(e)}")

    # Manual selection

    def _plan_manual_selection(self) -> bool:
        params = self.params
        results = self._results

        if not params.manual_files:
            self._fatal("FATAL: No files were added to the list in Manual Selection mode.")
            return False

        total_files = len(params.manual_files)
        batch_paths = set(params.manual_files)
        seen: set[Path] = set()

        for index, path in enumerate(params.manual_files, start=1):
            if path in seen:
                results.warning_log.append(f"Warning: Skipping duplicate input file: {path}")
                continue
            seen.add(path)

            try:
                valid = is_regular_file(path)
                reason = ""
            except OSError as e:
                valid = False
                reason = f". Error: {describe_os_error(e)}"
            if not valid:
                results.missing_source_files_log.append(f"{path} (Skipped: Not a valid file or inaccessible{reason})")
                continue

            self._files_matched += 1
            self._consider(path, batch_paths, index=index, total_files=total_files)

        return True

    # Shared per-file checks

    def _generate_name(
        self,
        path: Path,
        original_number: int | None,
        new_number: int | None,
        number_width: int,
        index: int,
        total_files: int,
    ) -> str:
        params = self.params
        stem, extension = split_name(path.name)
        name = replace_placeholders(
            params.naming_template,
            params.mode,
            original_stem=stem,
            original_extension=extension,
            index=index,
            total_files=total_files,
            original_number=original_number,
            new_number=new_number,
            number_width=number_width,
            parent_dir_name=path.parent.name,
            file_path=path,
            rng=self.rng,
            now=self._plan_now,
        )
        name = perform_find_replace(
            name,
            params.find_text,
            params.replace_text,
            params.find_case_sensitive,
            params.find_use_regex,
        )
        return apply_case_conversion(name, params.case_conversion)

    def _consider(
        self,
        path: Path,
        batch_paths: set[Path],
        *,
        original_number: int | None = None,
        new_number: int | None = None,
        number_width: int = DEFAULT_NUMBER_WIDTH,
        index: int = 0,
        total_files: int = 0,
    ) -> None:
        """Generate the target for one source file and accept or reject it."""
        results = self._results
        original_name = path.name

        new_name = self._generate_name(path, original_number, new_number, number_width, index, total_files)

        if not new_name:
            results.error_log.append(f"Error: Generated new filename is empty for '{original_name}'. Skipped.")
            results.missing_source_files_log.append(f"{original_name} (Skipped: Generated name was empty)")
            results.success = False
            return
        if new_name in (".", "..") or "/" in new_name or os.sep in new_name or has_control_characters(new_name):
            results.error_log.append(
                f"Error: Generated new filename {new_name!r} for '{original_name}' is not a valid filename. Skipped."
            )
            results.missing_source_files_log.append(f"{original_name} (Skipped: Generated name was invalid)")
            results.success = False
            return

        new_full_path = path.parent / new_name

        if iequals(str(path), str(new_full_path)):
            results.general_info_log.append(
                f"Skipping '{original_name}' (New name is identical to old name, case-insensitively)"
            )
            return

        target_key = str(new_full_path).lower()
        if target_key in self._targets:
            self._reject_collision(original_name, new_full_path)
            earlier = self._targets[target_key]
            if earlier is not None:
                results.rename_plan.remove(earlier)
                self._reject_collision(earlier.old_name, new_full_path)
                self._targets[target_key] = None
            return
        self._targets[target_key] = None

        try:
            target_exists = path_exists(new_full_path)
        except (OSError, ValueError) as e:
            results.warning_log.append(
                f"Warning: Filesystem error checking target path '{new_full_path}': {describe_os_error(e)}. "
                f"Skipping '{original_name}'."
            )
            results.missing_source_files_log.append(f"{original_name} (Skipped: Error checking target path)")
            return

        if target_exists and new_full_path not in batch_paths:
            results.potential_overwrites_log.append(
                PotentialOverwrite(source_file=original_name, target_file=new_name, target_path=new_full_path)
            )
            results.missing_source_files_log.append(
                f"{original_name} (Skipped: Target path '{new_full_path}' already exists "
                "and is not part of this rename batch)"
            )
            if self.params.strict_overwrites:
                results.error_log.append(
                    f"Error: Renaming '{original_name}' would overwrite existing file '{new_full_path}'."
                )
                results.success = False
            return

        operation = RenameOperation(
            old_name=original_name,
            new_name=new_name,
            old_full_path=path,
            new_full_path=new_full_path,
            number=original_number,
            index=index,
            conflict=target_exists,
        )
        results.rename_plan.append(operation)
        self._targets[target_key] = operation

    def _reject_collision(self, original_name: str, new_full_path: Path) -> None:
        results = self._results
        results.error_log.append(
            f"Error: Generated new path '{new_full_path}' conflicts with another generated path in this batch. "
            f"Skipping '{original_name}'."
        )
        results.missing_source_files_log.append(f"{original_name} (Skipped: Target path conflict within batch)")
        results.success = False

    def _append_summary(self) -> None:
        results = self._results
        if results.rename_plan:
            results.general_info_log.append(f"Calculated {len(results.rename_plan)} file(s) to be renamed.")
            return

        if self.params.mode == RenamingMode.DIRECTORY_SCAN and self._files_matched == 0:
            results.general_info_log.append(
                "No files found in the target directory matching the specified pattern/filters."
            )
        elif self.params.mode == RenamingMode.MANUAL_SELECTION and not self.params.manual_files:
            results.general_info_log.append("No files were added to the list to be renamed.")
        else:
            results.general_info_log.append("No files eligible for renaming after applying all filters and checks.")


def calculate_rename_plan(
    params: InputParams,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> OutputResults:
    """Compute a conflict-checked rename plan for `params`."""
    return PlanBuilder(params, rng=rng, now=now).run()
