"""Pytest configuration and fixtures for pretested tests."""

import hashlib
import itertools
import subprocess
import sys
import tempfile
from pathlib import Path

import pytest

from pretested.core.config import JobConfig
from pretested.core.errors import (
    ConcurrentUpdateError,
    ConflictError,
    NotFastForwardable,
)
from pretested.core.log import ConsoleSink, setup_logger
from pretested.core.model import Commit
from pretested.core.store import JobStore

AUTHOR = "A U Thor <author@example.com>"


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only logging at debug level for the whole session."""
    test_log_root = Path(tempfile.gettempdir()) / "pretested-tests"
    setup_logger(
        log_root=test_log_root,
        job_name="test",
        console=ConsoleSink(level="debug"),
    )


class FakeRepository:
    """In-memory VcsGateway.

    Branches are shared refs; the workspace is a detached HEAD plus
    a list of staged (cherry-picked but uncommitted) commits.
    """

    def __init__(self):
        self.commits: dict[str, Commit] = {}
        self.branches: dict[str, str] = {}
        self.workspace: str | None = None
        self.staged: list[Commit] = []
        self.conflicts: set[str] = set()
        self.push_error: Exception | None = None
        self.pushes: list[tuple[str, str, str | None]] = []
        self.fetches = 0
        self.discards = 0
        self._order: dict[str, int] = {}
        self._counter = itertools.count(1)

    # Test helpers

    def _new_commit(self, parents, message, author) -> Commit:
        n = next(self._counter)
        commit = Commit(
            id=hashlib.sha1(f"commit-{n}".encode()).hexdigest(),
            parents=tuple(parents),
            author=author,
            message=message,
        )
        self.commits[commit.id] = commit
        self._order[commit.id] = n
        return commit

    def make_commit(
        self, branch: str, message: str, author: str = AUTHOR
    ) -> Commit:
        """Add a commit on top of branch (creating it if needed)."""
        parent = self.branches.get(branch)
        commit = self._new_commit(
            [parent] if parent else [], message, author
        )
        self.branches[branch] = commit.id
        return commit

    def make_merge(
        self, branch: str, other: str, message: str = "Merge"
    ) -> Commit:
        """Merge other into branch with a two-parent commit."""
        commit = self._new_commit(
            [self.branches[branch], self.branches[other]], message, AUTHOR
        )
        self.branches[branch] = commit.id
        return commit

    def create_branch(self, name: str, at: str) -> None:
        self.branches[name] = self.branches[at]

    def reachable(self, head: str | None) -> set[str]:
        seen = set()
        stack = [head] if head else []
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.commits[current].parents)
        return seen

    def log(self, branch: str) -> list[Commit]:
        """Commits on branch, oldest first."""
        return self.list_commits(self.branches[branch])

    # VcsGateway

    def fetch(self) -> None:
        self.fetches += 1

    def branch_head(self, branch: str) -> str | None:
        return self.branches.get(branch)

    def list_commits(
        self,
        head: str,
        exclude: str | None = None,
        ancestry_path: bool = False,
    ) -> list[Commit]:
        ids = self.reachable(head) - self.reachable(exclude)
        if exclude and ancestry_path:
            ids = {i for i in ids if exclude in self.reachable(i)}
        return [
            self.commits[i] for i in sorted(ids, key=self._order.__getitem__)
        ]

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return ancestor in self.reachable(descendant)

    def checkout(self, ref: str) -> None:
        self.discard()
        self.workspace = self.branches.get(ref, ref)

    def merge_ff(self, ref: str) -> None:
        if not self.is_ancestor(self.workspace, ref):
            raise NotFastForwardable("Workspace cannot be fast-forwarded",
                                     commits=[ref])
        self.workspace = ref

    def cherry_pick(self, commit: Commit, no_commit: bool = False):
        if commit.id in self.conflicts:
            raise ConflictError(
                f"Cherry-pick of {commit.short_id} conflicts",
                commits=[commit],
                files=["conflict.txt"],
            )
        if no_commit:
            self.staged.append(commit)
            return None
        new = self._new_commit([self.workspace], commit.message, commit.author)
        self.workspace = new.id
        return new.id

    def commit(self, message: str, author: str) -> str:
        new = self._new_commit([self.workspace], message, author)
        self.workspace = new.id
        self.staged = []
        return new.id

    def head(self) -> str:
        return self.workspace

    def discard(self) -> None:
        self.staged = []
        self.discards += 1

    def push_ref(
        self, branch: str, new_head: str, expected_old_head: str | None
    ) -> None:
        if self.push_error is not None:
            raise self.push_error
        if self.branches.get(branch) != expected_old_head:
            raise ConcurrentUpdateError(
                f"{branch} moved since preparation", commits=[new_head]
            )
        self.branches[branch] = new_head
        self.pushes.append((branch, new_head, expected_old_head))

    def delete_branch(self, branch: str, expected_head: str) -> None:
        if self.branches.get(branch) != expected_head:
            raise ConcurrentUpdateError(
                f"{branch} moved, not deleting", commits=[expected_head]
            )
        del self.branches[branch]


@pytest.fixture
def repo():
    """FakeRepository with master at an initial commit M."""
    fake = FakeRepository()
    fake.make_commit("master", "Initial commit")
    return fake


@pytest.fixture
def ready(repo):
    """Ready branch two commits (X, Y) ahead of master."""
    repo.create_branch("ready", "master")
    x = repo.make_commit("ready", "Add feature X",
                         author="Xavier <x@example.com>")
    y = repo.make_commit("ready", "Fix \"quoted\" bug in Y",
                         author="Yolanda <y@example.com>")
    return x, y


@pytest.fixture
def job(tmp_path):
    return JobConfig(workdir=tmp_path / "work")


@pytest.fixture
def store(tmp_path):
    return JobStore(tmp_path / "jobs")


def git(cwd: Path, *args: str, stdin: str | None = None) -> str:
    """Run git for test setup and return stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        input=stdin,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def init_repo(path: Path) -> Path:
    """Create a repository whose master holds one commit."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", "refs/heads/master")
    git(path, "config", "user.name", "Test Committer")
    git(path, "config", "user.email", "committer@example.com")
    git(path, "config", "commit.gpgsign", "false")
    commit_file(path, "README", "initial\n", "Initial commit")
    return path


def commit_file(
    path: Path,
    name: str,
    content: str,
    message: str,
    author: str = AUTHOR,
) -> str:
    """Write a file, commit it and return the new commit id."""
    (path / name).write_text(content, encoding="utf-8")
    git(path, "add", name)
    git(path, "commit", "-q", f"--author={author}", "-F", "-", stdin=message)
    return git(path, "rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path):
    """Real repository: master at M, ready two commits ahead."""
    work = init_repo(tmp_path / "work")
    git(work, "checkout", "-q", "-b", "ready")
    x = commit_file(work, "x.txt", "x\n", "Add x",
                    author="Xavier <x@example.com>")
    y = commit_file(work, "y.txt", "y\n", "Add y with \"quotes\" and 'ticks'",
                    author="Yolanda <y@example.com>")
    git(work, "checkout", "-q", "master")
    return work, x, y


@pytest.fixture
def mock_argv():
    """Save and restore sys.argv."""
    original = sys.argv.copy()
    yield
    sys.argv = original


@pytest.fixture
def run_git():
    return git


@pytest.fixture
def make_file_commit():
    return commit_file


@pytest.fixture
def origin_repo(tmp_path, git_repo):
    """Bare origin with master and ready, plus a fresh clone of it."""
    work, x, y = git_repo
    origin = tmp_path / "origin.git"
    git(tmp_path, "clone", "-q", "--bare", str(work), str(origin))
    clone = tmp_path / "clone"
    git(tmp_path, "clone", "-q", str(origin), str(clone))
    git(clone, "config", "user.name", "Test Committer")
    git(clone, "config", "user.email", "committer@example.com")
    git(clone, "config", "commit.gpgsign", "false")
    return origin, clone, x, y
