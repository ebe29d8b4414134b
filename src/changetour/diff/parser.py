"""Unified diff parsing into raw, per-hunk change units."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterable
from pathlib import PurePosixPath, PureWindowsPath

import structlog

from changetour.core.ranges import LineRange
from changetour.diff.models import ChangeUnit, HunkLine, derive_change_type

log = structlog.get_logger(__name__)

HUNK_HEADER_RE = re.compile(r"@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


def normalize_path(raw: str) -> str:
    """Forward-slash, normalized form of a diff path."""
    return posixpath.normpath(raw.replace("\\", "/"))


def _is_absolute(path: str) -> bool:
    return PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute()


def _workspace_relative(path: str, workspace_root: str) -> str | None:
    """Relative form of ``path``; None for absolute paths outside the root."""
    if not _is_absolute(path):
        return path
    root = normalize_path(workspace_root).rstrip("/")
    if path == root or not path.startswith(root + "/"):
        return None
    return path[len(root) + 1 :]


def _header_path(line: str) -> str | None:
    raw = line[4:].split("\t", 1)[0].strip()
    if raw == "/dev/null":
        return None
    if raw.startswith("b/"):
        raw = raw[2:]
    return normalize_path(raw)


class _Hunk:
    __slots__ = ("file_path", "new_start", "new_length", "lines")

    def __init__(self, file_path: str, new_start: int, new_length: int, header: str) -> None:
        self.file_path = file_path
        self.new_start = new_start
        self.new_length = new_length
        self.lines = [header]

    def to_unit(self) -> ChangeUnit:
        start = max(1, self.new_start)
        end = start + self.new_length - 1 if self.new_length > 0 else start
        text = "\n".join(self.lines)
        return ChangeUnit(
            file_path=self.file_path,
            range=LineRange.clamped(start, end),
            diff_text=text,
            change_type=derive_change_type(text),
        )


def parse_change_units(
    diff_text: str,
    workspace_root: str,
    ignored_extensions: Iterable[str] = (".md",),
) -> list[ChangeUnit]:
    """Split unified diff text into one raw unit per hunk.

    Hunks of deleted files (``+++ /dev/null``), of files with an ignored
    extension, and of absolute paths outside ``workspace_root`` are dropped.
    Lines that are not recognized as headers attach to the open hunk, or are
    dropped when no hunk is open.
    """
    ignored = {ext.lower() for ext in ignored_extensions}
    lines = diff_text.splitlines()
    units: list[ChangeUnit] = []
    current_file: str | None = None
    hunk: _Hunk | None = None

    def flush() -> None:
        nonlocal hunk
        if hunk is not None:
            units.append(hunk.to_unit())
        hunk = None

    for index, line in enumerate(lines):
        if line.startswith("diff --git "):
            flush()
            current_file = None
            continue

        # A bare "--- " line only opens a file header when "+++ " follows
        if line.startswith("--- ") and index + 1 < len(lines) and lines[index + 1].startswith("+++ "):
            flush()
            continue

        if line.startswith("+++ ") and hunk is None:
            current_file = _header_path(line)
            continue

        match = HUNK_HEADER_RE.match(line)
        if match:
            flush()
            if current_file is None:
                continue
            new_start = int(match.group(3))
            new_length = int(match.group(4)) if match.group(4) is not None else 1
            hunk = _Hunk(current_file, new_start, new_length, line)
            continue

        if hunk is not None:
            hunk.lines.append(line)

    flush()

    kept: list[ChangeUnit] = []
    for unit in units:
        relative = _workspace_relative(unit.file_path, workspace_root)
        if relative is None:
            log.debug("hunk_outside_workspace", path=unit.file_path)
            continue
        if posixpath.splitext(relative)[1].lower() in ignored:
            continue
        unit.file_path = relative
        kept.append(unit)

    log.debug("diff_parsed", hunks=len(units), units=len(kept))
    return kept


def replay_hunk(diff_text: str) -> list[HunkLine]:
    """Replay a hunk's ``@@`` counters and assign revised-file line numbers.

    Context and added lines advance the new-side counter; removed lines do
    not and are anchored at the current counter value.
    """
    replayed: list[HunkLine] = []
    counter: int | None = None
    for line in diff_text.splitlines():
        match = HUNK_HEADER_RE.match(line)
        if match:
            counter = int(match.group(3))
            replayed.append(HunkLine("header", line, None))
            continue
        if counter is None:
            continue
        if line.startswith("+"):
            replayed.append(HunkLine("add", line[1:], counter))
            counter += 1
        elif line.startswith("-"):
            replayed.append(HunkLine("remove", line[1:], counter))
        elif line.startswith("\\"):
            replayed.append(HunkLine("meta", line, None))
        else:
            replayed.append(HunkLine("context", line[1:], counter))
            counter += 1
    return replayed
