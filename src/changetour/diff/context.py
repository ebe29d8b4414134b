"""Per-build context: source access and analysis memo.

One ``BuildContext`` lives for one tour build and is passed explicitly
through the pipeline. Nothing here is process-wide.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import structlog

from changetour.analysis.models import FileAnalysis
from changetour.analysis.treesitter import SyntaxAnalyzer
from changetour.git.errors import GitError

log = structlog.get_logger(__name__)


class SourceReader(Protocol):
    """Reads a workspace-relative file at HEAD and in the working tree.

    Implementations raise ``OSError`` or ``GitError`` when the text is not
    available (new file, deleted file, unreadable path).
    """

    def read_head(self, path: str) -> str: ...

    def read_now(self, path: str) -> str: ...


class WorkspaceReader:
    """Working-tree reader with no committed state.

    ``read_head`` always fails, so background resolution finds nothing.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    def read_head(self, path: str) -> str:
        raise FileNotFoundError(f"no committed snapshot for {path}")

    def read_now(self, path: str) -> str:
        return (self._root / path).read_text(encoding="utf-8", errors="replace")


@dataclass
class BuildContext:
    """Everything one build shares across passes.

    File text is read at most once per path and side; analyses are memoized
    by ``(path, sha256(text))`` so HEAD and working-tree text of one file
    never collide.
    """

    workspace_root: Path
    reader: SourceReader
    analyzer: SyntaxAnalyzer = field(default_factory=SyntaxAnalyzer)
    _now: dict[str, str | None] = field(default_factory=dict, repr=False)
    _head: dict[str, str | None] = field(default_factory=dict, repr=False)
    _analyses: dict[tuple[str, str], FileAnalysis] = field(default_factory=dict, repr=False)

    @classmethod
    def for_workspace(cls, workspace_root: Path | str) -> BuildContext:
        root = Path(workspace_root)
        return cls(workspace_root=root, reader=WorkspaceReader(root))

    def read_now(self, path: str) -> str | None:
        """Working-tree text, or None when it cannot be read."""
        if path not in self._now:
            try:
                self._now[path] = self.reader.read_now(path)
            except (OSError, GitError):
                log.debug("read_now_failed", path=path, exc_info=True)
                self._now[path] = None
        return self._now[path]

    def read_head(self, path: str) -> str | None:
        """HEAD text, or None for new, untracked or unreadable files."""
        if path not in self._head:
            try:
                self._head[path] = self.reader.read_head(path)
            except (OSError, GitError):
                log.debug("read_head_failed", path=path, exc_info=True)
                self._head[path] = None
        return self._head[path]

    def analyze(self, path: str, text: str) -> FileAnalysis:
        digest = hashlib.sha256(text.encode("utf-8", errors="replace")).hexdigest()
        key = (path, digest)
        cached = self._analyses.get(key)
        if cached is None:
            cached = self.analyzer.analyze(path, text)
            self._analyses[key] = cached
        return cached
