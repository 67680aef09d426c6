"""Workspace preparation for one integration attempt."""

from __future__ import annotations

from pretested.core.errors import ConflictError, RepositoryError
from pretested.core.log import logger
from pretested.core.model import Commit, PreparedState
from pretested.git.gateway import VcsGateway
from pretested.strategy.base import IntegrationStrategy


class WorkspacePreparer:
    """Checks out the target head fresh and applies a strategy."""

    def __init__(self, gateway: VcsGateway):
        self.gateway = gateway

    def prepare(
        self,
        target_branch: str,
        strategy: IntegrationStrategy,
        candidates: list[Commit],
    ) -> PreparedState:
        """Build the workspace state the external build will test.

        Safe to call again after an interrupted attempt: leftover
        workspace state is discarded by the fresh checkout.

        Raises:
            ConflictError: Candidates do not apply (not fatal)
            RepositoryError: Missing target branch or broken repository
        """
        base = self.gateway.branch_head(target_branch)
        if base is None:
            raise RepositoryError(
                f"Target branch '{target_branch}' does not exist",
                commits=candidates,
            )

        with logger.span(
            "Preparing {strategy} of {count} commit(s) onto {branch}",
            strategy=strategy.name,
            count=len(candidates),
            branch=target_branch,
        ):
            self.gateway.checkout(base)
            try:
                prepared = strategy.prepare(candidates, self.gateway, base)
            except ConflictError as e:
                logger.warn("Preparation failed: {error}", error=str(e))
                self.gateway.discard()
                if not e.commits:
                    e.commits = list(candidates)
                raise

        return prepared.model_copy(update={"target_branch": target_branch})
