"""Git module error types."""


class GitError(Exception):
    """Base error for git operations."""

    pass


class NotARepositoryError(GitError):
    """Path is not a git repository."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Not a git repository: {path}")
        self.path = path


class UnbornHeadError(GitError):
    """Operation needs a HEAD commit but the branch has none yet."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Cannot {operation}: HEAD is unborn (no commits yet)")
        self.operation = operation


class FileNotInHeadError(GitError):
    """Path does not exist as a file in the HEAD tree."""

    def __init__(self, path: str) -> None:
        super().__init__(f"File not present at HEAD: {path}")
        self.path = path
