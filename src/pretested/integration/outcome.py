"""Commit or roll back a prepared attempt once the build is done."""

from __future__ import annotations

from pretested.core.errors import PushError
from pretested.core.log import logger
from pretested.core.model import (
    BuildVerdict,
    FinalizeResult,
    IntegrationAttempt,
    JobRecord,
)
from pretested.core.store import JobStore
from pretested.git.gateway import VcsGateway
from pretested.strategy.base import IntegrationStrategy


class BuildOutcomeHandler:
    """Applies a build verdict to the target branch and the job record."""

    def __init__(
        self,
        gateway: VcsGateway,
        strategy: IntegrationStrategy,
        store: JobStore | None = None,
        job_name: str = "default",
        unstable_is_success: bool = False,
    ):
        self.gateway = gateway
        self.strategy = strategy
        self.store = store
        self.job_name = job_name
        self.unstable_is_success = unstable_is_success

    def is_success(self, verdict: BuildVerdict) -> bool:
        if verdict is BuildVerdict.UNSTABLE:
            return self.unstable_is_success
        return verdict is BuildVerdict.SUCCESS

    def finalize(
        self,
        attempt: IntegrationAttempt,
        verdict: BuildVerdict,
        record: JobRecord,
    ) -> FinalizeResult:
        """Push on success, discard otherwise.

        The marker advances only after the push succeeded, to the
        last candidate (a ready-branch commit).

        Raises:
            PushError: Push failed; nothing was recorded
            ConcurrentUpdateError: Target moved since preparation
        """
        verdict = BuildVerdict(verdict)
        if not self.is_success(verdict):
            logger.warn(
                "Build {verdict}, rolling back {range}",
                verdict=verdict.value,
                range=f"{attempt.candidates[0].short_id}.."
                f"{attempt.last_candidate.short_id}",
            )
            self.gateway.discard()
            return FinalizeResult(integrated=False, record=record)

        try:
            new_head = self.strategy.finalize(attempt.prepared, self.gateway)
        except PushError as e:
            logger.error("Finalize failed: {error}", error=str(e))
            self.gateway.discard()
            if not e.commits:
                e.commits = list(attempt.candidates)
            raise

        updated = record.model_copy(
            update={"last_integrated": attempt.last_candidate.id}
        )
        if self.store is not None:
            self.store.save(self.job_name, updated)
        self.gateway.discard()

        logger.info(
            "Integrated {count} commit(s) into {branch} at {head}",
            count=len(attempt.candidates),
            branch=attempt.prepared.target_branch,
            head=new_head[:12],
        )
        return FinalizeResult(integrated=True, new_head=new_head, record=updated)
