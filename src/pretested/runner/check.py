"""Build checks run by the local host between the two controller hooks."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from pretested.core.log import logger
from pretested.core.model import BuildVerdict, Commit
from pretested.core.runner import Runner


def attempt_label(cycle: int, candidates: list[Commit]) -> str:
    """Log name prefix for one attempt, e.g. ``cycle-3-1a2b..3c4d``."""
    if not candidates:
        return f"cycle-{cycle}"
    first, last = candidates[0].short_id, candidates[-1].short_id
    if first == last:
        return f"cycle-{cycle}-{first}"
    return f"cycle-{cycle}-{first}..{last}"


class CheckOutcome(BaseModel):
    """One check command run against a prepared workspace."""

    name: str
    returncode: int
    log_file: Path

    @property
    def passed(self) -> bool:
        return self.returncode == 0

    @property
    def timed_out(self) -> bool:
        return self.returncode == -1


class CheckRunner:
    """Runs the configured checks in the workspace and reduces them to
    a build verdict.

    Each check writes ``{label}-{check}.log`` under output_dir, where
    the label names the cycle and the candidate range under test.
    """

    def __init__(self, workdir: Path, output_dir: Path, timeout: int = 3600):
        self.workdir = Path(workdir)
        self.output_dir = Path(output_dir)
        self.timeout = timeout
        self.runner = Runner()
        self.outcomes: list[CheckOutcome] = []

    def log_path(self, label: str, name: str) -> Path:
        return self.output_dir / f"{label}-{name}.log"

    def run_check(self, label: str, name: str, command: str) -> CheckOutcome:
        """Run one check; a timed out check has returncode -1."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        log_file = self.log_path(label, name)

        logger.info("Running check: {name}", name=name, label=label)
        result = self.runner.execute(
            command,
            cwd=self.workdir,
            timeout=self.timeout,
            log_file=log_file,
            log_level="debug",
            check=False,
        )
        outcome = CheckOutcome(
            name=name, returncode=result.exited, log_file=log_file
        )
        self.outcomes.append(outcome)
        return outcome

    def build(self, label: str, commands: dict[str, str]) -> BuildVerdict:
        """Run commands in order, stopping at the first failure.

        Returns:
            SUCCESS when every check passes (or none are configured),
            FAILURE otherwise
        """
        self.outcomes = []
        if not commands:
            logger.warn("No check commands configured, treating build as passed")
            return BuildVerdict.SUCCESS

        for name, command in commands.items():
            outcome = self.run_check(label, name, command)
            if not outcome.passed:
                logger.error(
                    "Check '{name}' {how} (exit {code}). See log: {log}",
                    name=name,
                    how="timed out" if outcome.timed_out else "failed",
                    code=outcome.returncode,
                    log=str(outcome.log_file),
                )
                return BuildVerdict.FAILURE

        return BuildVerdict.SUCCESS
