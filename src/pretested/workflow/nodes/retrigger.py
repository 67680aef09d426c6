"""Retrigger node - decide whether another cycle should be scheduled."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from pretested.core.errors import HistoryDivergedError
from pretested.core.log import logger
from pretested.core.model import CompleteResult, FinalizeResult
from pretested.workflow.state import CycleState


@dataclass
class Retrigger(BaseNode[CycleState, None, CompleteResult]):
    """Re-evaluate the queue against the (possibly advanced) marker."""

    result: FinalizeResult

    async def run(
        self, ctx: GraphRunContext[CycleState]
    ) -> End[CompleteResult]:
        state = ctx.state
        attempt = state.attempt
        marker = self.result.record.last_integrated

        state.gateway.fetch()
        ready_head = state.gateway.branch_head(state.job.ready_branch)

        if self.result.integrated:
            try:
                pending = state.queue.compute_candidates(ready_head, marker)
            except HistoryDivergedError as e:
                # The next cycle reports it from on_build_start()
                logger.warn("Ready branch rewritten during build: {error}",
                            error=str(e))
                pending = [ready_head]
            retrigger = bool(pending)
        else:
            # A failed range is only worth another cycle if it grew
            retrigger = (
                ready_head is not None and ready_head != attempt.ready_head
            )

        if retrigger:
            logger.info("More candidates pending, requesting another build")

        return End(CompleteResult(
            retrigger=retrigger,
            integrated=self.result.integrated,
            new_head=self.result.new_head,
            marker=marker,
        ))
