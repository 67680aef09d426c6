"""Squash strategy: the whole range becomes one commit."""

from __future__ import annotations

from pretested.core.log import logger
from pretested.core.model import Commit, PreparedState, StrategyKind
from pretested.git.gateway import VcsGateway
from pretested.strategy.base import IntegrationStrategy

DEFAULT_HEADER = "Squashed commit of the following:"


def squash_message(candidates: list[Commit], header: str | None = None) -> str:
    """Compose the squash commit message, oldest candidate first."""
    lines = [header or DEFAULT_HEADER, ""]
    for commit in candidates:
        lines.append(f"commit {commit.id}")
        lines.append(f"Author: {commit.author}")
        if commit.timestamp:
            lines.append(f"Date:   {commit.timestamp.isoformat()}")
        lines.append("")
        lines.extend(
            f"    {line}" if line else "" for line in commit.message.splitlines()
        )
        lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n"


class SquashStrategy(IntegrationStrategy):
    """Apply every candidate without committing, then commit once.

    The squash commit is attributed to the author of the last
    candidate.
    """

    kind = StrategyKind.SQUASH

    def __init__(self, header: str | None = None):
        self.header = header

    def prepare(
        self,
        candidates: list[Commit],
        gateway: VcsGateway,
        base: str,
    ) -> PreparedState:
        self._require_candidates(candidates)

        for commit in candidates:
            gateway.cherry_pick(commit, no_commit=True)

        author = candidates[-1].author
        head = gateway.commit(squash_message(candidates, self.header), author)
        logger.debug(
            "Squashed {count} commits into {head}",
            count=len(candidates),
            head=head[:12],
            author=author,
        )

        return PreparedState(
            strategy=self.kind,
            base=base,
            head=head,
            candidates=candidates,
            created=[head],
        )
