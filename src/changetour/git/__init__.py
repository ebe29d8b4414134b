"""Git access: working-tree diff and HEAD file text."""

from changetour.git.access import RepoAccess
from changetour.git.errors import (
    FileNotInHeadError,
    GitError,
    NotARepositoryError,
    UnbornHeadError,
)
from changetour.git.sources import GitSourceReader

__all__ = [
    "FileNotInHeadError",
    "GitError",
    "GitSourceReader",
    "NotARepositoryError",
    "RepoAccess",
    "UnbornHeadError",
]
