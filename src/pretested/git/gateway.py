"""Version control capability surface and its git implementation."""

from __future__ import annotations

import shlex
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from pretested.core.errors import (
    ConcurrentUpdateError,
    ConflictError,
    NotFastForwardable,
    PushError,
    RepositoryError,
)
from pretested.core.log import logger
from pretested.core.model import Commit
from pretested.core.runner import Runner


@runtime_checkable
class VcsGateway(Protocol):
    """The repository operations integration needs.

    Workspace operations (checkout, merge_ff, cherry_pick, commit,
    head, discard) act on a single disposable working copy. Branch
    operations (branch_head, push_ref, delete_branch) act on the
    shared repository.
    """

    def fetch(self) -> None:
        """Refresh knowledge of the shared branches."""
        ...

    def branch_head(self, branch: str) -> str | None:
        """Commit id at the tip of a branch, None if it does not exist."""
        ...

    def list_commits(
        self,
        head: str,
        exclude: str | None = None,
        ancestry_path: bool = False,
    ) -> list[Commit]:
        """Commits reachable from head but not from exclude, oldest first.

        With ancestry_path, only commits that descend from exclude are
        listed, so side branches merged in after exclude contribute
        their merge commit but not their own history.
        """
        ...

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        ...

    def checkout(self, ref: str) -> None:
        """Check out ref fresh, discarding any leftover workspace state."""
        ...

    def merge_ff(self, ref: str) -> None:
        """Fast-forward the workspace to ref."""
        ...

    def cherry_pick(self, commit: Commit, no_commit: bool = False) -> str | None:
        """Replay one commit; returns the new id unless no_commit."""
        ...

    def commit(self, message: str, author: str) -> str:
        """Commit the staged workspace changes."""
        ...

    def head(self) -> str:
        ...

    def discard(self) -> None:
        """Abort in-progress operations and reset the workspace."""
        ...

    def push_ref(
        self, branch: str, new_head: str, expected_old_head: str | None
    ) -> None:
        """Compare-and-swap update of a shared branch."""
        ...

    def delete_branch(self, branch: str, expected_head: str) -> None:
        """Delete a shared branch only while it still points at expected_head."""
        ...


# Fields separated by US, records by RS
_LOG_FORMAT = "%H%x1f%P%x1f%an <%ae>%x1f%aI%x1f%B%x1e"

DEFAULT_GIT_COMMANDS = {
    "fetch": "git fetch --prune {remote}",
    "rev_parse": "git rev-parse --verify --quiet {ref}^{{commit}}",
    "head": "git rev-parse HEAD",
    "log": "git log --reverse --topo-order --format={format} {revs}",
    "is_ancestor": "git merge-base --is-ancestor {ancestor} {descendant}",
    "checkout": "git checkout --force --detach {ref}",
    "merge_abort": "git merge --abort",
    "cherry_pick_abort": "git cherry-pick --abort",
    "reset_hard": "git reset --hard --quiet",
    "clean": "git clean -fdxq",
    "merge_ff": "git merge --ff-only {ref}",
    "cherry_pick": "git cherry-pick {flags} {ref}",
    "commit": "git commit --allow-empty --no-verify --author={author} --file=-",
    "conflicted_files": "git diff --name-only --diff-filter=U",
    "push": (
        "git push --porcelain --force-with-lease={lease} "
        "{remote} {new}:refs/heads/{branch}"
    ),
    "update_ref": "git update-ref refs/heads/{branch} {new} {expected}",
    "delete_remote_branch": (
        "git push --porcelain --force-with-lease={lease} "
        "{remote} :refs/heads/{branch}"
    ),
    "delete_branch": "git update-ref -d refs/heads/{branch} {expected}",
}

_STALE_MARKERS = ("stale info", "fetch first", "non-fast-forward")


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with _LOG_FORMAT."""
    commits = []
    for record in output.split("\x1e"):
        record = record.strip("\n")
        if not record:
            continue
        sha, parents, author, date, message = record.split("\x1f", 4)
        commits.append(Commit(
            id=sha,
            parents=tuple(parents.split()),
            author=author,
            message=message.rstrip("\n"),
            timestamp=datetime.fromisoformat(date) if date else None,
        ))
    return commits


class GitGateway:
    """VcsGateway backed by the git command line.

    With a remote, branches are read from remote-tracking refs and
    updated by pushing. Without one (``remote=None``) the working
    copy's own branches are updated in place.
    """

    def __init__(
        self,
        workdir: Path,
        remote: str | None = "origin",
        commands: dict[str, str] | None = None,
    ):
        self.workdir = Path(workdir)
        self.remote = remote
        self.commands = {**DEFAULT_GIT_COMMANDS, **(commands or {})}
        self.runner = Runner()

    def _git(
        self,
        name: str,
        check: bool = True,
        stdin: str | None = None,
        raw: dict[str, str] | None = None,
        **params: str,
    ):
        """Run a named git command template.

        ``params`` are shell-quoted before substitution, ``raw``
        values are inserted as given.

        Raises:
            RepositoryError: If check is True and git exits non-zero
        """
        values = {k: shlex.quote(v) for k, v in params.items()}
        values.update(raw or {})
        cmd = self.commands[name].format(**values)

        result = self.runner.execute(
            cmd, cwd=self.workdir, stdin=stdin, check=False
        )
        logger.spew(
            "git {name} exited {code}", name=name, code=result.exited
        )

        if check and result.exited != 0:
            raise RepositoryError(
                f"git {name} failed in {self.workdir}",
                details={
                    "command": cmd,
                    "exit_code": result.exited,
                    "stderr": result.stderr.strip(),
                },
            )
        return result

    def _branch_ref(self, branch: str) -> str:
        if self.remote:
            return f"refs/remotes/{self.remote}/{branch}"
        return f"refs/heads/{branch}"

    def fetch(self) -> None:
        if not self.remote:
            return
        logger.debug("Fetching {remote}", remote=self.remote)
        self._git("fetch", remote=self.remote)

    def branch_head(self, branch: str) -> str | None:
        result = self._git("rev_parse", check=False, ref=self._branch_ref(branch))
        if result.exited != 0:
            return None
        return result.stdout.strip()

    def list_commits(
        self,
        head: str,
        exclude: str | None = None,
        ancestry_path: bool = False,
    ) -> list[Commit]:
        revs = shlex.quote(head)
        if exclude:
            revs += " " + shlex.quote(f"^{exclude}")
            if ancestry_path:
                revs = "--ancestry-path " + revs
        result = self._git("log", format=_LOG_FORMAT, raw={"revs": revs})
        return parse_log(result.stdout)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._git(
            "is_ancestor", check=False,
            ancestor=ancestor, descendant=descendant,
        )
        if result.exited not in (0, 1):
            raise RepositoryError(
                "git merge-base failed",
                commits=[ancestor, descendant],
                details={"stderr": result.stderr.strip()},
            )
        return result.exited == 0

    def discard(self) -> None:
        # Either abort may legitimately have nothing to abort
        self._git("merge_abort", check=False)
        self._git("cherry_pick_abort", check=False)
        self._git("reset_hard")
        self._git("clean")

    def checkout(self, ref: str) -> None:
        self.discard()
        self._git("checkout", ref=ref)
        logger.debug("Workspace checked out at {ref}", ref=ref[:12])

    def head(self) -> str:
        return self._git("head").stdout.strip()

    def _conflicted_files(self) -> list[str]:
        output = self._git("conflicted_files", check=False).stdout.strip()
        return output.splitlines() if output else []

    def merge_ff(self, ref: str) -> None:
        result = self._git("merge_ff", check=False, ref=ref)
        if result.exited != 0:
            raise NotFastForwardable(
                "Workspace cannot be fast-forwarded", commits=[ref]
            )

    def cherry_pick(self, commit: Commit, no_commit: bool = False) -> str | None:
        flags = ["--no-commit"] if no_commit else ["--keep-redundant-commits"]
        if commit.is_merge:
            flags += ["-m", "1"]

        result = self._git(
            "cherry_pick", check=False,
            ref=commit.id, raw={"flags": " ".join(flags)},
        )
        if result.exited != 0:
            files = self._conflicted_files()
            if not files:
                raise RepositoryError(
                    f"Cherry-pick of {commit.short_id} failed",
                    commits=[commit],
                    details={"stderr": result.stderr.strip()},
                )
            raise ConflictError(
                f"Cherry-pick of {commit.short_id} conflicts",
                commits=[commit],
                files=files,
            )

        return None if no_commit else self.head()

    def commit(self, message: str, author: str) -> str:
        # Message goes through stdin so quotes survive untouched
        self._git("commit", stdin=message, author=author)
        return self.head()

    def push_ref(
        self, branch: str, new_head: str, expected_old_head: str | None
    ) -> None:
        if self.remote:
            self._push_remote(branch, new_head, expected_old_head)
        else:
            self._update_local(branch, new_head, expected_old_head)
        logger.info(
            "Updated {branch} to {head}", branch=branch, head=new_head[:12]
        )

    def _push_remote(
        self, branch: str, new_head: str, expected: str | None
    ) -> None:
        result = self._git(
            "push", check=False,
            lease=f"refs/heads/{branch}:{expected or ''}",
            remote=self.remote, new=new_head, branch=branch,
        )
        if result.exited == 0:
            return

        output = result.stdout + result.stderr
        if any(marker in output for marker in _STALE_MARKERS):
            raise ConcurrentUpdateError(
                f"{branch} moved on {self.remote} since preparation",
                commits=[new_head],
                details={"expected": expected},
            )
        raise PushError(
            f"Push to {self.remote}/{branch} failed",
            commits=[new_head],
            details={"stderr": result.stderr.strip()},
        )

    def _update_local(
        self, branch: str, new_head: str, expected: str | None
    ) -> None:
        result = self._git(
            "update_ref", check=False,
            branch=branch, new=new_head, expected=expected or "",
        )
        if result.exited == 0:
            return

        if self.branch_head(branch) != expected:
            raise ConcurrentUpdateError(
                f"{branch} moved since preparation",
                commits=[new_head],
                details={"expected": expected},
            )
        raise PushError(
            f"Updating {branch} failed",
            commits=[new_head],
            details={"stderr": result.stderr.strip()},
        )

    def delete_branch(self, branch: str, expected_head: str) -> None:
        """Delete branch unless someone moved it away from expected_head.

        Raises:
            ConcurrentUpdateError: If the branch no longer points at
                expected_head
            PushError: If the deletion fails for any other reason
        """
        if self.remote:
            result = self._git(
                "delete_remote_branch", check=False,
                lease=f"refs/heads/{branch}:{expected_head}",
                remote=self.remote, branch=branch,
            )
            moved = any(
                marker in result.stdout + result.stderr
                for marker in _STALE_MARKERS
            )
        else:
            result = self._git(
                "delete_branch", check=False,
                branch=branch, expected=expected_head,
            )
            moved = (
                result.exited != 0
                and self.branch_head(branch) != expected_head
            )

        if result.exited != 0:
            if moved:
                raise ConcurrentUpdateError(
                    f"{branch} moved past {expected_head[:12]}, not deleting",
                    commits=[expected_head],
                    details={"expected": expected_head},
                )
            raise PushError(
                f"Deleting {branch} failed",
                commits=[expected_head],
                details={"stderr": result.stderr.strip()},
            )
        logger.info("Deleted branch {branch}", branch=branch)
