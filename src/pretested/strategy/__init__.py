"""Integration strategy implementations."""

from pretested.core.model import StrategyKind
from pretested.strategy.accumulate import AccumulateStrategy
from pretested.strategy.base import IntegrationStrategy
from pretested.strategy.fast_forward import FastForwardStrategy
from pretested.strategy.squash import SquashStrategy

STRATEGIES: dict[StrategyKind, type[IntegrationStrategy]] = {
    StrategyKind.FAST_FORWARD: FastForwardStrategy,
    StrategyKind.SQUASH: SquashStrategy,
    StrategyKind.ACCUMULATE: AccumulateStrategy,
}


def create_strategy(
    kind: StrategyKind | str, squash_header: str | None = None
) -> IntegrationStrategy:
    """Instantiate the strategy for a kind."""
    kind = StrategyKind(kind)
    if kind is StrategyKind.SQUASH:
        return SquashStrategy(header=squash_header)
    return STRATEGIES[kind]()


__all__ = [
    "IntegrationStrategy",
    "FastForwardStrategy",
    "SquashStrategy",
    "AccumulateStrategy",
    "STRATEGIES",
    "create_strategy",
]
