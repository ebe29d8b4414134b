"""Line ranges shared by the diff, analysis and tour layers."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class LineRange:
    """1-based inclusive line span in one file.

    Producers build ranges through ``clamped`` so an inverted span from a
    heuristic never escapes; the assertion catches direct misuse under test.
    """

    start_line: int
    end_line: int

    def __post_init__(self) -> None:
        assert 1 <= self.start_line <= self.end_line, (
            f"invalid line range {self.start_line}-{self.end_line}"
        )

    @classmethod
    def clamped(cls, start_line: int, end_line: int) -> LineRange:
        start = max(1, start_line)
        end = max(start, end_line)
        if (start, end) != (start_line, end_line):
            log.debug("range_clamped", start=start_line, end=end_line, clamped=f"{start}-{end}")
        return cls(start, end)

    @property
    def span(self) -> int:
        return self.end_line - self.start_line

    def contains_line(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    def contains(self, other: LineRange) -> bool:
        return self.start_line <= other.start_line and other.end_line <= self.end_line

    def overlaps(self, other: LineRange) -> bool:
        return self.start_line <= other.end_line and other.start_line <= self.end_line

    def merge(self, other: LineRange) -> LineRange:
        return LineRange(
            min(self.start_line, other.start_line),
            max(self.end_line, other.end_line),
        )

    def to_dict(self) -> dict[str, int]:
        return {"startLine": self.start_line, "endLine": self.end_line}

    def __str__(self) -> str:
        return f"{self.start_line}-{self.end_line}"
