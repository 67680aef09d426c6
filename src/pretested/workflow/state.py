"""State carried through the integration workflow graphs."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from pretested.core.base import BaseState
from pretested.core.config import ControllerState, JobConfig
from pretested.core.log import logger
from pretested.core.model import (
    Commit,
    FailurePolicy,
    IntegrationAttempt,
    JobRecord,
    JobRuntime,
)


class CycleState(BaseState):
    """Everything one job's build cycle reads and mutates.

    One instance per job; jobs share nothing.
    """

    job: JobConfig
    gateway: Any = Field(description="VcsGateway for the workspace")
    strategy: Any = Field(description="IntegrationStrategy for the job")
    queue: Any = Field(description="CommitQueue")
    preparer: Any = Field(description="WorkspacePreparer")
    outcome: Any = Field(description="BuildOutcomeHandler")
    store: Any = Field(default=None, description="JobStore, if persisted")
    controller: ControllerState = Field(default_factory=ControllerState)

    record: JobRecord | None = Field(
        default=None,
        description="Job record read at the start of the cycle",
    )
    attempt: IntegrationAttempt | None = Field(
        default=None,
        description="Attempt in flight between the two hooks",
    )
    rejected_head: str | None = Field(
        default=None,
        description=(
            "Ready head of the most recent failed attempt, mirrored in "
            "the store's runtime record"
        ),
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def load_record(self) -> JobRecord:
        if self.store is None:
            if self.record is None:
                self.record = JobRecord(
                    target_branch=self.job.target_branch,
                    strategy=self.job.strategy,
                )
            return self.record
        self.record = self.store.load(
            self.job.name, self.job.target_branch, self.job.strategy
        )
        return self.record

    def load_rejected(self) -> str | None:
        if self.store is not None:
            runtime = self.store.load_runtime(self.job.name)
            self.rejected_head = runtime.rejected_head
        return self.rejected_head

    def set_rejected(self, ready_head: str | None) -> None:
        """Remember the ready head that failed, or forget it with None."""
        if ready_head == self.rejected_head:
            return
        self.rejected_head = ready_head
        if self.store is not None:
            self.store.save_runtime(
                self.job.name, JobRuntime(rejected_head=ready_head)
            )

    def select_candidates(self) -> tuple[str | None, list[Commit]]:
        """Ready head and the candidates pending against the marker.

        A ready head that already failed yields no candidates under
        the skip policy.
        """
        job = self.job
        self.gateway.fetch()
        record = self.load_record()
        rejected = self.load_rejected()
        ready_head = self.gateway.branch_head(job.ready_branch)

        if (
            job.failure_policy is FailurePolicy.SKIP
            and ready_head is not None
            and ready_head == rejected
        ):
            logger.info(
                "Ready head {head} already failed; waiting for new commits",
                head=ready_head[:12],
            )
            return ready_head, []

        baseline = None
        if record.last_integrated is None:
            baseline = self.gateway.branch_head(job.target_branch)

        return ready_head, self.queue.compute_candidates(
            ready_head, record.last_integrated, baseline
        )
