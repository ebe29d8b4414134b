"""Repository access layer - owns pygit2.Repository and exposes the two facts a tour needs."""

from __future__ import annotations

from pathlib import Path

import pygit2
import structlog

from changetour.git.errors import (
    FileNotInHeadError,
    NotARepositoryError,
    UnbornHeadError,
)

log = structlog.get_logger(__name__)


class RepoAccess:
    """Owns pygit2.Repository and provides the working-tree diff and HEAD file text."""

    def __init__(self, repo_path: Path | str) -> None:
        self._path = Path(repo_path)
        try:
            discovered = pygit2.discover_repository(str(self._path))
            if discovered is None:
                raise NotARepositoryError(str(self._path))
            self._repo = pygit2.Repository(discovered)
        except pygit2.GitError as e:
            raise NotARepositoryError(str(self._path)) from e

    @property
    def repo(self) -> pygit2.Repository:
        return self._repo

    @property
    def path(self) -> Path:
        return Path(self._repo.workdir) if self._repo.workdir else self._path

    @property
    def is_unborn(self) -> bool:
        return self._repo.head_is_unborn

    def head_tree(self) -> pygit2.Tree | None:
        if self.is_unborn:
            return None
        return self._repo.head.peel(pygit2.Tree)

    def must_head_tree(self) -> pygit2.Tree:
        tree = self.head_tree()
        if tree is None:
            raise UnbornHeadError("read HEAD tree")
        return tree

    def get_empty_tree(self) -> pygit2.Tree:
        """Get an empty tree for diffing an unborn repository."""
        builder = self._repo.TreeBuilder()
        empty_tree_oid = builder.write()
        return self._repo.get(empty_tree_oid)  # type: ignore[return-value]

    def diff_against_head(self, context_lines: int = 0) -> str:
        """Unified diff text of the working tree against HEAD.

        An unborn repository diffs against the empty tree. Returns an empty
        string when nothing changed.
        """
        base = self.head_tree() or self.get_empty_tree()
        diff = base.diff_to_workdir(context_lines=context_lines)
        text = diff.patch or ""
        log.debug(
            "diff_collected",
            files=len(diff),
            chars=len(text),
            unborn=self.is_unborn,
        )
        return text

    def show_at_head(self, path: str) -> str:
        """Text of ``path`` in the HEAD tree, decoded as UTF-8."""
        tree = self.must_head_tree()
        try:
            entry = tree[path]
        except KeyError as e:
            raise FileNotInHeadError(path) from e

        blob = self._repo[entry.id]
        if not isinstance(blob, pygit2.Blob):
            raise FileNotInHeadError(path)

        source = blob.data
        if isinstance(source, memoryview):
            source = bytes(source)
        return source.decode("utf-8", errors="replace")
