"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Generator
from pathlib import Path

import pygit2
import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from changetour.diff.context import BuildContext  # noqa: E402

APP_HEAD = "def bar():\n    return 1\n"
APP_NOW = "MAX = 10\n\ndef bar():\n    return 1\n\n\ndef foo():\n    return bar() + MAX\n"


class MemoryReader:
    """Source reader over in-memory HEAD and working-tree text."""

    def __init__(self, now: dict[str, str], head: dict[str, str] | None = None) -> None:
        self.now = now
        self.head = head or {}
        self.head_reads: list[str] = []

    def read_head(self, path: str) -> str:
        self.head_reads.append(path)
        if path not in self.head:
            raise FileNotFoundError(path)
        return self.head[path]

    def read_now(self, path: str) -> str:
        if path not in self.now:
            raise FileNotFoundError(path)
        return self.now[path]


@pytest.fixture
def make_context(tmp_path: Path) -> Callable[..., BuildContext]:
    """Build a context over in-memory files rooted at ``tmp_path``."""

    def _make(now: dict[str, str], head: dict[str, str] | None = None) -> BuildContext:
        return BuildContext(workspace_root=tmp_path, reader=MemoryReader(now, head))

    return _make


@pytest.fixture
def temp_repo(tmp_path: Path) -> Generator[pygit2.Repository, None, None]:
    """Create a temporary git repository with one committed Python module."""
    repo_path = tmp_path / "repo"
    repo_path.mkdir()

    repo = pygit2.init_repository(str(repo_path), initial_head="main")

    # Configure user
    repo.config["user.name"] = "Test User"
    repo.config["user.email"] = "test@example.com"

    # Create initial commit
    (repo_path / "app.py").write_text(APP_HEAD)
    (repo_path / "README.md").write_text("# Test Repo\n")
    repo.index.add("app.py")
    repo.index.add("README.md")
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test User", "test@example.com")
    repo.create_commit("refs/heads/main", sig, sig, "Initial commit", tree, [])

    # Set HEAD to main
    repo.set_head("refs/heads/main")

    yield repo


@pytest.fixture
def changed_repo(temp_repo: pygit2.Repository) -> Path:
    """Repository whose working tree adds a constant and a function to app.py."""
    root = Path(temp_repo.workdir)
    (root / "app.py").write_text(APP_NOW)
    (root / "README.md").write_text("# Test Repo\n\nMore words.\n")
    return root
