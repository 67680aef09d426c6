"""Candidate selection from the ready branch."""

from __future__ import annotations

from pretested.core.errors import HistoryDivergedError
from pretested.core.log import logger
from pretested.core.model import Commit
from pretested.git.gateway import VcsGateway


class CommitQueue:
    """Orders the untested commits on the ready branch."""

    def __init__(self, gateway: VcsGateway):
        self.gateway = gateway

    def compute_candidates(
        self,
        ready_head: str | None,
        marker: str | None,
        baseline: str | None = None,
    ) -> list[Commit]:
        """Commits between the marker (exclusive) and ready_head.

        Past a marker the walk follows the ancestry path, so a side
        branch merged into the ready branch shows up as its merge
        commit only.

        Args:
            ready_head: Tip of the ready branch, None if it is absent
            marker: Last integrated commit, None before the first
                integration
            baseline: Bounds the walk when there is no marker yet
                (normally the target head)

        Returns:
            Candidates oldest first; empty when there is no work

        Raises:
            HistoryDivergedError: If the marker is not an ancestor of
                ready_head
        """
        if ready_head is None or ready_head == marker:
            return []

        if marker is not None:
            if not self.gateway.is_ancestor(marker, ready_head):
                raise HistoryDivergedError(marker, ready_head)
            stop = marker
        else:
            stop = baseline

        # Only the marker is known to be an ancestor of ready_head
        candidates = self.gateway.list_commits(
            ready_head, exclude=stop, ancestry_path=marker is not None
        )
        logger.debug(
            "{count} candidate(s) after {stop}",
            count=len(candidates),
            stop=(stop or "root")[:12],
        )
        return candidates
