"""Template expansion and filename string utilities.

Everything here is a pure function of its arguments. The only I/O is the stat
call behind the <file_size>, <file_size_kb> and <modified_date> placeholders.
"""

import os
import random
import re
import string
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from batchrename.config import DEFAULT_NUMBER_WIDTH, INT32_MAX, INT32_MIN, MAX_RANDOM_LENGTH
from batchrename.models.rename import CaseConversionMode, RenamingMode


REGEX_METACHARACTERS = frozenset(".^$|()[]{}+*?\\")

# Characters that may not appear in a filename on common filesystems
INVALID_FILENAME_CHARS = frozenset('\\/:*?"<>|')

ALPHANUMERIC_CHARS = string.digits + string.ascii_uppercase + string.ascii_lowercase

_LAST_NUMBER_REGEX = re.compile(r"(.*?)([0-9]+)([^0-9]*)", re.DOTALL)

# ECMAScript-style references accepted in regex replacement text
_DOLLAR_REFERENCE_REGEX = re.compile(r"\$(?:\$|&|\{(\w+)\}|(\d+))")


def escape_regex_chars(text: str) -> str:
    """Escape regex metacharacters so `text` matches itself literally."""
    return "".join(f"\\{char}" if char in REGEX_METACHARACTERS else char for char in text)


def convert_wildcard_to_regex(pattern: str) -> str:
    """Translate a filename wildcard into an anchored regular expression.

    `*` matches any run of characters, `?` exactly one character; everything else
    is literal. An empty pattern matches any string.

    Examples:
        >>> convert_wildcard_to_regex("*.txt")
        '^.*\\\\.txt$'
    """
    if not pattern:
        return "^.*$"

    parts = ["^"]
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char in REGEX_METACHARACTERS:
            parts.append(f"\\{char}")
        else:
            parts.append(char)
    parts.append("$")
    return "".join(parts)


def parse_last_number(name: str) -> int | None:
    """Return the last run of digits in `name`, or None.

    None is also returned when the number does not fit a 32-bit signed integer.
    """
    match = _LAST_NUMBER_REGEX.fullmatch(name)
    if match is None:
        return None

    value = int(match.group(2))
    if INT32_MIN <= value <= INT32_MAX:
        return value
    return None


def format_number(number: int, width: int) -> str:
    """Zero-pad a non-negative number to at least `width` digits.

    Negative numbers are rendered without padding, and the result is never
    truncated.
    """
    if number < 0:
        return str(number)
    width = max(1, width)
    return f"{number:0{width}d}"


def iequals(a: str, b: str) -> bool:
    """Case-insensitive string equality."""
    return len(a) == len(b) and a.lower() == b.lower()


def has_control_characters(name: str) -> bool:
    """Whether `name` contains a NUL or another ASCII control character."""
    return any(ord(char) < 32 or ord(char) == 127 for char in name)


def split_name(name: str) -> tuple[str, str]:
    """Split a filename into (stem, extension).

    The extension starts at the last dot, but only when that dot is not the first
    character and something follows it. ".bashrc" and "notes." have no extension.
    """
    dot = name.rfind(".")
    if dot > 0 and dot + 1 < len(name):
        return name[:dot], name[dot:]
    return name, ""


def _sanitize_char(char: str) -> str:
    return "_" if ord(char) <= 31 or char in INVALID_FILENAME_CHARS else char


def sanitize_stem(stem: str) -> str:
    """Replace invalid and control characters with `_`.

    Empty, "." and ".." stems become "_".
    """
    sanitized = "".join(_sanitize_char(char) for char in stem)
    if sanitized in ("", ".", ".."):
        return "_"
    return sanitized


def _sanitize_extension(extension: str) -> str:
    if not extension:
        return extension
    return "." + "".join(_sanitize_char(char) for char in extension[1:])


def perform_find_replace(
    subject: str,
    find: str,
    replace: str,
    case_sensitive: bool,
    use_regex: bool = False,
) -> str:
    """Replace every occurrence of `find` in `subject`.

    Literal mode resumes searching after each inserted replacement, so a pattern that
    is a substring of its replacement cannot loop. Regex mode performs a global
    substitution; `\\1`, `\\g<name>`, `$1`, `${1}` and `$&` back-references are
    supported. A malformed pattern leaves `subject` unchanged.
    """
    if not find or not subject:
        return subject

    if use_regex:
        flags = 0 if case_sensitive else re.IGNORECASE
        try:
            pattern = re.compile(find, flags)
            return pattern.sub(_translate_dollar_references(replace), subject)
        except (re.error, IndexError):
            return subject

    matcher = None if case_sensitive else re.compile(re.escape(find), re.IGNORECASE)
    pos = 0
    while pos < len(subject):
        if matcher is None:
            found = subject.find(find, pos)
            found_end = found + len(find)
        else:
            match = matcher.search(subject, pos)
            found = match.start() if match else -1
            found_end = match.end() if match else -1

        if found < 0:
            break

        subject = subject[:found] + replace + subject[found_end:]
        pos = found + len(replace)

    return subject


def _translate_dollar_references(replacement: str) -> str:
    """Rewrite `$1`, `${name}`, `$&` and `$$` into Python's replacement syntax."""

    def _convert(match: re.Match) -> str:
        token = match.group(0)
        if token == "$$":
            return "$"
        if token == "$&":
            return r"\g<0>"
        group = match.group(1) or match.group(2)
        return rf"\g<{group}>"

    return _DOLLAR_REFERENCE_REGEX.sub(_convert, replacement)


def apply_case_conversion(name: str, mode: CaseConversionMode) -> str:
    """Upper- or lower-case the stem of `name`, keeping the extension's case.

    Dotfiles such as ".profile" are returned unchanged.
    """
    if mode == CaseConversionMode.NO_CHANGE or not name:
        return name
    if name.startswith(".") and "." not in name[1:]:
        return name

    stem, extension = split_name(name)
    if mode == CaseConversionMode.TO_UPPER:
        stem = stem.upper()
    elif mode == CaseConversionMode.TO_LOWER:
        stem = stem.lower()
    return stem + extension


@dataclass(frozen=True)
class PlaceholderContext:
    """Values available to the placeholder passes for one file."""

    mode: RenamingMode
    original_stem: str = ""
    original_extension: str = ""
    index: int = 0
    total_files: int = 0
    original_number: int | None = None
    new_number: int | None = None
    number_width: int = DEFAULT_NUMBER_WIDTH
    parent_dir_name: str = ""
    file_path: Path | None = None
    rng: random.Random | None = None
    now: datetime | None = None


# A template is processed as a list of (text, resolved) segments. Passes only look
# at unresolved text, so a value inserted by one pass is never expanded again.
Segment = tuple[str, bool]
Resolver = Callable[[re.Match], str]


def _substitute(segments: list[Segment], pattern: re.Pattern, resolver: Resolver) -> list[Segment]:
    result: list[Segment] = []
    for text, resolved in segments:
        if resolved:
            result.append((text, True))
            continue

        pos = 0
        for match in pattern.finditer(text):
            if match.start() > pos:
                result.append((text[pos : match.start()], False))
            result.append((resolver(match), True))
            pos = match.end()
        if pos < len(text):
            result.append((text[pos:], False))
    return result


_PARENT_DIR_TOKEN = re.compile(r"<parent_dir>")
_FILE_METADATA_TOKEN = re.compile(r"<(file_size_kb|file_size|modified_date)>")
_RANDOM_TOKEN = re.compile(r"<random:(\d+)>")
_DATETIME_TOKEN = re.compile(r"<(YYYY|MM|DD|hh|mm|ss)>")
_MODE_TOKEN = re.compile(r"<(ext|orig_ext|orig_name|num|orig_num|index)>")

_DATETIME_FORMATS = {
    "YYYY": "%Y",
    "MM": "%m",
    "DD": "%d",
    "hh": "%H",
    "mm": "%M",
    "ss": "%S",
}


def _parent_dir_pass(segments: list[Segment], ctx: PlaceholderContext) -> list[Segment]:
    return _substitute(segments, _PARENT_DIR_TOKEN, lambda _: ctx.parent_dir_name)


def _file_metadata_pass(segments: list[Segment], ctx: PlaceholderContext) -> list[Segment]:
    stat_result: os.stat_result | None = None
    if ctx.file_path is not None:
        try:
            stat_result = os.stat(ctx.file_path)
        except OSError:
            stat_result = None

    def _resolve(match: re.Match) -> str:
        token = match.group(1)
        if token == "modified_date":
            if stat_result is None:
                return "00000000"
            return datetime.fromtimestamp(stat_result.st_mtime).strftime("%Y%m%d")
        if stat_result is None:
            return "0"
        if token == "file_size_kb":
            return str(stat_result.st_size // 1024)
        return str(stat_result.st_size)

    return _substitute(segments, _FILE_METADATA_TOKEN, _resolve)


def _random_pass(segments: list[Segment], ctx: PlaceholderContext) -> list[Segment]:
    rng = ctx.rng if ctx.rng is not None else random.Random()

    def _resolve(match: re.Match) -> str:
        length = min(int(match.group(1)), MAX_RANDOM_LENGTH)
        return "".join(rng.choice(ALPHANUMERIC_CHARS) for _ in range(length))

    return _substitute(segments, _RANDOM_TOKEN, _resolve)


def _datetime_pass(segments: list[Segment], ctx: PlaceholderContext) -> list[Segment]:
    now = ctx.now if ctx.now is not None else datetime.now()
    return _substitute(segments, _DATETIME_TOKEN, lambda match: now.strftime(_DATETIME_FORMATS[match.group(1)]))


def _mode_pass(segments: list[Segment], ctx: PlaceholderContext) -> list[Segment]:
    if ctx.mode == RenamingMode.DIRECTORY_SCAN:
        values = {
            "num": format_number(ctx.new_number, ctx.number_width) if ctx.new_number is not None else "",
            "orig_num": format_number(ctx.original_number, ctx.number_width)
            if ctx.original_number is not None
            else "",
            "index": "",
        }
    else:
        index_width = len(str(ctx.total_files)) if ctx.total_files > 0 else 1
        values = {
            "index": format_number(ctx.index, index_width),
            "num": "",
            "orig_num": "",
        }
    values["ext"] = ctx.original_extension
    values["orig_ext"] = ctx.original_extension
    values["orig_name"] = ctx.original_stem

    return _substitute(segments, _MODE_TOKEN, lambda match: values[match.group(1)])


PLACEHOLDER_PASSES = (
    _parent_dir_pass,
    _file_metadata_pass,
    _random_pass,
    _datetime_pass,
    _mode_pass,
)


def expand_placeholders(template: str, ctx: PlaceholderContext) -> str:
    """Run every placeholder pass over `template` without sanitizing the result."""
    segments: list[Segment] = [(template, False)]
    for substitution_pass in PLACEHOLDER_PASSES:
        segments = substitution_pass(segments, ctx)
    return "".join(text for text, _ in segments)


def replace_placeholders(
    template: str,
    mode: RenamingMode,
    *,
    original_stem: str = "",
    original_extension: str = "",
    index: int = 0,
    total_files: int = 0,
    original_number: int | None = None,
    new_number: int | None = None,
    number_width: int = DEFAULT_NUMBER_WIDTH,
    parent_dir_name: str = "",
    file_path: Path | None = None,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> str:
    """Expand a naming template into a sanitized filename.

    Supported tokens: <parent_dir>, <file_size>, <file_size_kb>, <modified_date>,
    <random:N>, <YYYY> <MM> <DD> <hh> <mm> <ss>, <ext>, <orig_ext>, <orig_name>,
    and the mode-specific <num>, <orig_num> (directory scan) and <index> (manual
    selection). Tokens not valid in `mode` expand to an empty string.

    Returns "_" when no usable name can be produced.
    """
    ctx = PlaceholderContext(
        mode=mode,
        original_stem=original_stem,
        original_extension=original_extension,
        index=index,
        total_files=total_files,
        original_number=original_number,
        new_number=new_number,
        number_width=number_width,
        parent_dir_name=parent_dir_name,
        file_path=file_path,
        rng=rng,
        now=now,
    )
    expanded = expand_placeholders(template, ctx)

    stem, extension = split_name(expanded)
    sanitized_stem = sanitize_stem(stem)
    if sanitized_stem == "_" and not extension:
        return "_"
    return sanitized_stem + _sanitize_extension(extension)
