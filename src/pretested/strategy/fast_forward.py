"""Fast-forward strategy: advance the target ref, create nothing."""

from __future__ import annotations

from pretested.core.errors import NotFastForwardable
from pretested.core.log import logger
from pretested.core.model import Commit, PreparedState, StrategyKind
from pretested.git.gateway import VcsGateway
from pretested.strategy.base import IntegrationStrategy


class FastForwardStrategy(IntegrationStrategy):
    """Test and publish the ready head itself.

    Requires the target head to be an ancestor of the last
    candidate; no new commit objects are ever created.
    """

    kind = StrategyKind.FAST_FORWARD

    def prepare(
        self,
        candidates: list[Commit],
        gateway: VcsGateway,
        base: str,
    ) -> PreparedState:
        self._require_candidates(candidates)
        last = candidates[-1]

        if not gateway.is_ancestor(base, last.id):
            raise NotFastForwardable(
                f"Target head {base[:12]} is not an ancestor of "
                f"{last.short_id}",
                commits=candidates,
            )

        gateway.merge_ff(last.id)
        logger.debug("Fast-forwarded workspace to {head}", head=last.short_id)

        return PreparedState(
            strategy=self.kind,
            base=base,
            head=last.id,
            candidates=candidates,
        )
