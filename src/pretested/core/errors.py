"""Integration error hierarchy.

Every error carries the commit range it concerns so operators can
see which candidates were involved. Preparation errors abort an
attempt before any build runs; finalize errors leave the job as if
the build had failed.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def _short(commit_id: str) -> str:
    return commit_id[:12]


def describe_range(commits: Sequence[Any]) -> str:
    """Render a commit range as ``first..last`` (or a single id).

    Accepts Commit models or bare commit ids.
    """
    ids = [getattr(c, "id", c) for c in commits]
    if not ids:
        return ""
    if len(ids) == 1:
        return _short(ids[0])
    return f"{_short(ids[0])}..{_short(ids[-1])} ({len(ids)} commits)"


class IntegrationError(Exception):
    """Base exception for all integration errors."""

    fatal: bool = False
    retriable: bool = False

    def __init__(
        self,
        message: str,
        commits: Sequence[Any] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.commits = list(commits or [])
        self.details = details or {}

    @property
    def commit_range(self) -> str:
        return describe_range(self.commits)

    def __str__(self) -> str:
        text = self.message
        if self.commits:
            text = f"{text} [commits {self.commit_range}]"
        if self.details:
            text = f"{text}: {self.details}"
        return text


class HistoryDivergedError(IntegrationError):
    """The marker is not an ancestor of the ready branch head.

    Happens when the ready branch was rewound or force-pushed.
    """

    fatal = True

    def __init__(self, marker: str, ready_head: str) -> None:
        super().__init__(
            f"Last integrated commit {_short(marker)} is not an ancestor "
            f"of ready head {_short(ready_head)}",
            commits=[marker, ready_head],
        )
        self.marker = marker
        self.ready_head = ready_head


class ConflictError(IntegrationError):
    """A merge, cherry-pick or apply produced conflicts."""

    def __init__(
        self,
        message: str,
        commits: Sequence[Any] | None = None,
        files: list[str] | None = None,
    ) -> None:
        details = {"files": files} if files else None
        super().__init__(message, commits, details)
        self.files = files or []


class NotFastForwardable(ConflictError):
    """The target branch diverged from the candidate range."""


class RepositoryError(IntegrationError):
    """Missing branch, corrupt repository or a failing git command."""

    fatal = True


class PushError(IntegrationError):
    """Pushing the integrated result to the target branch failed."""


class ConcurrentUpdateError(PushError):
    """The target ref moved since the workspace was prepared.

    Never forced; the host re-runs the full cycle instead.
    """

    retriable = True


class ProtocolError(IntegrationError):
    """A lifecycle hook was invoked out of phase or with bad arguments."""

    fatal = True


class AttemptInProgressError(ProtocolError):
    """on_build_start() called while an attempt is in flight."""


class NoActiveAttemptError(ProtocolError):
    """on_build_complete() called with no attempt in flight."""


class WorkspaceMismatchError(ProtocolError):
    """The host builds in a different directory than the job prepares."""


__all__ = [
    "IntegrationError",
    "HistoryDivergedError",
    "ConflictError",
    "NotFastForwardable",
    "RepositoryError",
    "PushError",
    "ConcurrentUpdateError",
    "ProtocolError",
    "AttemptInProgressError",
    "NoActiveAttemptError",
    "WorkspaceMismatchError",
    "describe_range",
]
