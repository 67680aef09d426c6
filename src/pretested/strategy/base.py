"""Base integration strategy."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from pretested.core.errors import ConflictError
from pretested.core.model import Commit, PreparedState, StrategyKind
from pretested.git.gateway import VcsGateway


class IntegrationStrategy(ABC):
    """Turns candidates into a prepared workspace, then into target history.

    prepare() runs against a workspace already checked out at the
    target head ``base``. finalize() publishes the prepared head with
    a compare-and-swap update of the target branch.
    """

    kind: ClassVar[StrategyKind]

    @property
    def name(self) -> str:
        return self.kind.value

    @abstractmethod
    def prepare(
        self,
        candidates: list[Commit],
        gateway: VcsGateway,
        base: str,
    ) -> PreparedState:
        """Apply candidates to the workspace.

        Raises:
            ConflictError: If the candidates do not apply cleanly
        """

    def finalize(self, prepared: PreparedState, gateway: VcsGateway) -> str:
        """Move the target branch to the prepared head.

        Returns:
            The commit id now at the tip of the target branch
        """
        gateway.push_ref(prepared.target_branch, prepared.head, prepared.base)
        return prepared.head

    def _require_candidates(self, candidates: list[Commit]) -> None:
        if not candidates:
            raise ConflictError(f"{self.name}: no candidates to integrate")
