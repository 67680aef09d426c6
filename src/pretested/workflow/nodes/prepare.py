"""Prepare node - build the workspace the external build will test."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from pretested.core.errors import ConflictError
from pretested.core.model import Commit, IntegrationAttempt, Phase, StartResult
from pretested.workflow.state import CycleState


@dataclass
class Prepare(BaseNode[CycleState, None, StartResult]):
    """Apply the candidates with the job's strategy."""

    candidates: list[Commit]
    ready_head: str

    async def run(
        self, ctx: GraphRunContext[CycleState]
    ) -> End[StartResult]:
        state = ctx.state
        state.controller.phase = Phase.PREPARING

        try:
            prepared = state.preparer.prepare(
                state.job.target_branch, state.strategy, self.candidates
            )
        except ConflictError:
            # Same exclusion as a failed build
            state.set_rejected(self.ready_head)
            raise

        state.attempt = IntegrationAttempt(
            candidates=self.candidates,
            strategy=state.strategy.kind,
            prepared=prepared,
            ready_head=self.ready_head,
        )
        state.controller.phase = Phase.AWAITING_BUILD

        return End(StartResult(
            proceed=True,
            prepared_ref=prepared.head,
            candidates=self.candidates,
        ))
