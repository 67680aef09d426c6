"""Integrate command - run build cycles until the ready branch drains."""

from __future__ import annotations

from pydantic import BaseModel, Field

from pretested.core.errors import (
    ConcurrentUpdateError,
    ConflictError,
    IntegrationError,
)
from pretested.core.log import logger
from pretested.runner.check import CheckRunner, attempt_label


def build_controller(state: "State"):
    """Wire an IntegrationController from loaded settings."""
    from pretested.core.store import JobStore
    from pretested.git.gateway import GitGateway
    from pretested.integration.controller import IntegrationController

    job = state.config.job
    gateway = GitGateway(
        job.workdir,
        remote=job.remote,
        commands=state.config.commands.get("git"),
    )
    return IntegrationController(
        job,
        gateway,
        store=JobStore(state.config.state_dir),
        state=state.runtime.controller,
    )


class IntegrateCommand(BaseModel):
    """Test and integrate pending ready-branch commits.

    Acts as a local build host: prepares the workspace, runs the
    check commands, then integrates or rolls back, repeating while
    more candidates are pending.
    """

    max_cycles: int = Field(
        default=100,
        alias="max-cycles",
        description="Stop after this many build cycles",
    )

    def run_workflow(self, state: "State") -> int:
        """Run build cycles.

        Returns:
            Exit code: 0 when every attempted build integrated,
            1 on failed builds or preparation errors
        """
        controller = build_controller(state)
        check = state.config.check
        runner = CheckRunner(
            state.config.job.workdir, check.output_dir, check.timeout
        )
        exit_code = 0

        for _ in range(self.max_cycles):
            try:
                start = controller.on_build_start(state.config.job.workdir)
                if not start.proceed:
                    break

                label = attempt_label(
                    state.runtime.controller.cycles, start.candidates
                )
                verdict = runner.build(label, check.commands)
                result = controller.on_build_complete(verdict)
            except ConcurrentUpdateError as e:
                logger.warn("Target moved, re-running cycle: {error}",
                            error=str(e))
                continue
            except ConflictError as e:
                logger.error("Candidates do not apply: {error}", error=str(e))
                return 1
            except IntegrationError as e:
                logger.error("Integration failed: {error}", error=str(e))
                return 1

            if not result.integrated:
                exit_code = 1
            if not result.retrigger:
                break
        else:
            logger.warn(
                "Stopped after {cycles} cycles", cycles=self.max_cycles
            )

        return exit_code
