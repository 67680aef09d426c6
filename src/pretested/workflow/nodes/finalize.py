"""Finalize node - push or roll back according to the build verdict."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from pretested.core.errors import ConcurrentUpdateError, PushError
from pretested.core.log import logger
from pretested.core.model import BuildVerdict, Phase
from pretested.workflow.nodes.retrigger import Retrigger
from pretested.workflow.state import CycleState


@dataclass
class Finalize(BaseNode[CycleState]):
    """Hand the verdict to the BuildOutcomeHandler."""

    verdict: BuildVerdict

    async def run(self, ctx: GraphRunContext[CycleState]) -> Retrigger:
        state = ctx.state
        attempt = state.attempt
        state.controller.phase = Phase.FINALIZING
        attempt.verdict = self.verdict

        record = state.record or state.load_record()
        try:
            result = state.outcome.finalize(attempt, self.verdict, record)
        except ConcurrentUpdateError:
            # Retried by a fresh cycle, the range itself is fine
            raise
        except PushError:
            state.set_rejected(attempt.ready_head)
            raise

        if not result.integrated:
            state.set_rejected(attempt.ready_head)
            return Retrigger(result=result)

        state.set_rejected(None)
        state.record = result.record
        state.controller.record_integration(result.new_head)

        if state.job.delete_ready_branch:
            self.delete_ready_branch(state, result.record.last_integrated)

        return Retrigger(result=result)

    def delete_ready_branch(self, state: CycleState, marker: str) -> None:
        """Delete the ready branch if nothing landed on it past marker.

        The deletion is leased on marker, so commits pushed to the
        ready branch during the build keep it alive for Retrigger.
        """
        ready_branch = state.job.ready_branch
        if state.gateway.branch_head(ready_branch) != marker:
            return

        logger.info("Ready branch fully integrated, deleting it")
        try:
            state.gateway.delete_branch(ready_branch, marker)
        except ConcurrentUpdateError:
            logger.info(
                "Ready branch {branch} received new commits, keeping it",
                branch=ready_branch,
            )
        except PushError as e:
            logger.warn(
                "Could not delete ready branch {branch}: {error}",
                branch=ready_branch,
                error=str(e),
            )
