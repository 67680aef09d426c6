"""Integration controller: the two lifecycle hooks of a build job."""

from __future__ import annotations

from pathlib import Path

from pretested.core.config import ControllerState, JobConfig
from pretested.core.errors import (
    AttemptInProgressError,
    IntegrationError,
    NoActiveAttemptError,
    WorkspaceMismatchError,
)
from pretested.core.log import logger
from pretested.core.model import (
    BuildVerdict,
    Commit,
    CompleteResult,
    Phase,
    StartResult,
)
from pretested.core.store import JobStore
from pretested.git.gateway import VcsGateway
from pretested.integration.outcome import BuildOutcomeHandler
from pretested.integration.preparer import WorkspacePreparer
from pretested.integration.queue import CommitQueue
from pretested.strategy import IntegrationStrategy, create_strategy
from pretested.workflow.graph import (
    create_complete_workflow,
    create_start_workflow,
)
from pretested.workflow.state import CycleState


class IntegrationController:
    """Drives select → prepare → [build] → finalize for one job.

    The host build runtime calls on_build_start() before its build
    steps and on_build_complete() after them. Between the two calls
    the controller holds only the prepared attempt, no locks; at most
    one attempt is in flight at a time. The controller never
    schedules builds itself: on_build_complete() tells the host
    whether another cycle is wanted.
    """

    def __init__(
        self,
        job: JobConfig,
        gateway: VcsGateway,
        store: JobStore | None = None,
        state: ControllerState | None = None,
        strategy: IntegrationStrategy | None = None,
    ):
        strategy = strategy or create_strategy(job.strategy, job.squash_message)
        self._state = CycleState(
            job=job,
            gateway=gateway,
            strategy=strategy,
            queue=CommitQueue(gateway),
            preparer=WorkspacePreparer(gateway),
            outcome=BuildOutcomeHandler(
                gateway,
                strategy,
                store=store,
                job_name=job.name,
                unstable_is_success=job.unstable_is_success,
            ),
            store=store,
            controller=state or ControllerState(),
        )
        self._start = create_start_workflow()
        self._complete = create_complete_workflow()

    @property
    def phase(self) -> Phase:
        return self._state.controller.phase

    @property
    def cycle(self) -> CycleState:
        return self._state

    @property
    def marker(self) -> str | None:
        return self._state.load_record().last_integrated

    def on_build_start(self, workspace: Path | None = None) -> StartResult:
        """Select candidates and prepare the workspace.

        The workspace is the job's workdir, owned by the gateway. A
        host that passes its build directory must pass that same
        directory.

        Returns:
            StartResult; proceed is False when there is nothing to
            build and the host should skip the build

        Raises:
            AttemptInProgressError: An attempt is already in flight
            WorkspaceMismatchError: workspace is not the job's workdir
            HistoryDivergedError, ConflictError, RepositoryError:
                Preparation failed; no build should run
        """
        from pretested.workflow.nodes.select import Select

        if self.phase is not Phase.IDLE:
            raise AttemptInProgressError(
                f"Job '{self._state.job.name}' already has an attempt "
                f"in phase {self.phase.value}",
                commits=self._attempt_commits(),
            )

        job = self._state.job
        if workspace is not None and (
            Path(workspace).resolve() != Path(job.workdir).resolve()
        ):
            raise WorkspaceMismatchError(
                f"Job '{job.name}' prepares {job.workdir}, "
                f"but the build runs in {workspace}"
            )

        self._state.controller.cycles += 1
        with logger.span(
            "Build start for {job}",
            job=self._state.job.name,
            workspace=str(workspace or ""),
        ):
            try:
                run = self._start.run_sync(Select(), state=self._state)
            except IntegrationError as e:
                self._reset(e)
                logger.error(
                    "Preparation aborted: {error}",
                    error=str(e),
                    range=e.commit_range,
                )
                raise
            except Exception:
                self._reset()
                raise

        return run.output

    def on_build_complete(
        self, verdict: BuildVerdict | str
    ) -> CompleteResult:
        """Finalize the attempt in flight and decide on a retrigger.

        Raises:
            NoActiveAttemptError: No attempt is in flight
            ConcurrentUpdateError: Target moved; re-run the cycle
            PushError: Push failed; the marker did not move
        """
        from pretested.workflow.nodes.finalize import Finalize

        if self._state.attempt is None or self.phase is not Phase.AWAITING_BUILD:
            raise NoActiveAttemptError(
                f"Job '{self._state.job.name}' has no attempt awaiting "
                f"a build verdict"
            )

        verdict = BuildVerdict(verdict)
        with logger.span(
            "Build complete for {job}: {verdict}",
            job=self._state.job.name,
            verdict=verdict.value,
        ):
            try:
                run = self._complete.run_sync(
                    Finalize(verdict=verdict), state=self._state
                )
            except IntegrationError as e:
                logger.error(
                    "Finalize aborted: {error}",
                    error=str(e),
                    range=e.commit_range,
                )
                self._reset(e)
                raise
            except Exception:
                self._reset()
                raise

        self._reset()
        return run.output

    def cancel(self) -> None:
        """Abandon the attempt in flight without touching the target."""
        if self._state.attempt is None and self.phase is Phase.IDLE:
            return
        logger.warn(
            "Cancelling attempt for {job}", job=self._state.job.name
        )
        self._state.gateway.discard()
        self._reset()

    def pending(self) -> list[Commit]:
        """Candidates the next on_build_start() would select."""
        _, candidates = self._state.select_candidates()
        return candidates

    def _attempt_commits(self) -> list[Commit]:
        attempt = self._state.attempt
        return list(attempt.candidates) if attempt else []

    def _reset(self, error: Exception | None = None) -> None:
        self._state.attempt = None
        self._state.controller.phase = Phase.IDLE
        if error is not None:
            self._state.controller.last_error = str(error)
