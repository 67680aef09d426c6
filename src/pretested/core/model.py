"""Data model shared by the integration components."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StrategyKind(str, Enum):
    """How candidates are turned into target-branch history."""

    FAST_FORWARD = "fast-forward"
    SQUASH = "squash"
    ACCUMULATE = "accumulate"


class BuildVerdict(str, Enum):
    """Outcome reported by the external build runtime."""

    SUCCESS = "success"
    FAILURE = "failure"
    UNSTABLE = "unstable"


class FailurePolicy(str, Enum):
    """What happens to a range whose build failed."""

    SKIP = "skip"
    RETRY = "retry"


class Phase(str, Enum):
    """Controller state machine phases."""

    IDLE = "idle"
    SELECTING = "selecting"
    PREPARING = "preparing"
    AWAITING_BUILD = "awaiting-build"
    FINALIZING = "finalizing"


class Commit(BaseModel):
    """One change in repository history. Never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str
    parents: tuple[str, ...] = ()
    author: str = ""
    message: str = ""
    timestamp: datetime | None = None

    @property
    def short_id(self) -> str:
        return self.id[:12]

    @property
    def subject(self) -> str:
        return self.message.splitlines()[0] if self.message else ""

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


class JobRecord(BaseModel):
    """Persisted per-job state.

    ``last_integrated`` is the marker: the id of the most recent
    ready-branch commit that reached the target branch, or None
    when nothing has been integrated yet.
    """

    target_branch: str
    last_integrated: str | None = None
    strategy: StrategyKind = StrategyKind.FAST_FORWARD


class JobRuntime(BaseModel):
    """Per-job state that outlives a process but is not the marker.

    ``rejected_head`` is the ready head of the most recent failed
    attempt, cleared by the next successful integration.
    """

    rejected_head: str | None = None


class PreparedState(BaseModel):
    """Workspace state produced by a strategy's prepare step."""

    strategy: StrategyKind
    target_branch: str = ""
    base: str = Field(
        description="Target head the workspace was prepared from"
    )
    head: str = Field(
        description="Workspace HEAD after preparation"
    )
    candidates: list[Commit] = Field(default_factory=list)
    created: list[str] = Field(
        default_factory=list,
        description="New commit ids created in the workspace",
    )


class IntegrationAttempt(BaseModel):
    """One in-flight cycle. Discarded on completion."""

    candidates: list[Commit]
    strategy: StrategyKind
    prepared: PreparedState
    ready_head: str
    verdict: BuildVerdict | None = None

    @property
    def last_candidate(self) -> Commit:
        return self.candidates[-1]


class FinalizeResult(BaseModel):
    """Outcome of BuildOutcomeHandler.finalize()."""

    integrated: bool
    new_head: str | None = None
    record: JobRecord


class StartResult(BaseModel):
    """Returned by on_build_start() to the host runtime."""

    proceed: bool
    prepared_ref: str | None = None
    candidates: list[Commit] = Field(default_factory=list)


class CompleteResult(BaseModel):
    """Returned by on_build_complete() to the host runtime."""

    retrigger: bool
    integrated: bool = False
    new_head: str | None = None
    marker: str | None = None


__all__ = [
    "StrategyKind",
    "BuildVerdict",
    "FailurePolicy",
    "Phase",
    "Commit",
    "JobRecord",
    "PreparedState",
    "IntegrationAttempt",
    "FinalizeResult",
    "StartResult",
    "CompleteResult",
]
