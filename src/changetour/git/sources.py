"""Source reader backed by a git repository."""

from __future__ import annotations

from changetour.git.access import RepoAccess


class GitSourceReader:
    """Reads HEAD text from the repository and current text from the working tree."""

    def __init__(self, access: RepoAccess) -> None:
        self._access = access

    def read_head(self, path: str) -> str:
        return self._access.show_at_head(path)

    def read_now(self, path: str) -> str:
        return (self._access.path / path).read_text(encoding="utf-8", errors="replace")
