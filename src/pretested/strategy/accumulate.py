"""Accumulate strategy: replay each candidate as its own commit."""

from __future__ import annotations

from pretested.core.log import logger
from pretested.core.model import Commit, PreparedState, StrategyKind
from pretested.git.gateway import VcsGateway
from pretested.strategy.base import IntegrationStrategy


class AccumulateStrategy(IntegrationStrategy):
    """Cherry-pick candidates one by one onto the target head.

    Each replayed commit keeps its original author and message. A
    conflict in any replay fails the whole attempt; the preparer
    discards the partially replayed workspace.
    """

    kind = StrategyKind.ACCUMULATE

    def prepare(
        self,
        candidates: list[Commit],
        gateway: VcsGateway,
        base: str,
    ) -> PreparedState:
        self._require_candidates(candidates)

        created = []
        for commit in candidates:
            new_id = gateway.cherry_pick(commit)
            logger.trace(
                "Replayed {source} as {new}",
                source=commit.short_id,
                new=new_id[:12],
            )
            created.append(new_id)

        return PreparedState(
            strategy=self.kind,
            base=base,
            head=created[-1],
            candidates=candidates,
            created=created,
        )
