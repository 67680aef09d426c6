"""Select node - compute the candidate set for a new attempt."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from pretested.core.log import logger
from pretested.core.model import Phase, StartResult
from pretested.workflow.nodes.prepare import Prepare
from pretested.workflow.state import CycleState


@dataclass
class Select(BaseNode[CycleState, None, StartResult]):
    """Diff the ready branch against the last integrated commit."""

    async def run(
        self, ctx: GraphRunContext[CycleState]
    ) -> Prepare | End[StartResult]:
        """Pick the candidates, or end with "no work".

        Returns:
            Prepare: Candidates are pending
            End[StartResult]: Nothing to integrate (proceed=False)
        """
        state = ctx.state
        state.controller.phase = Phase.SELECTING

        ready_head, candidates = state.select_candidates()
        if not candidates:
            logger.info(
                "No new commits on {branch}", branch=state.job.ready_branch
            )
            state.controller.phase = Phase.IDLE
            return End(StartResult(proceed=False))

        logger.info(
            "Selected {count} candidate(s) from {branch}",
            count=len(candidates),
            branch=state.job.ready_branch,
            first=candidates[0].short_id,
            last=candidates[-1].short_id,
        )
        return Prepare(candidates=candidates, ready_head=ready_head)
