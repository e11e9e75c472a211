"""Installation strategies and the single dispatch point that selects them."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict

from ..models import InstallTargets, Strategy
from .base import ApplyOutcome, StrategyHandler, logger
from .copy import CopyStrategy
from .merge import MergeStrategy, deep_merge
from .replace import ReplaceStrategy

_HANDLERS: Dict[Strategy, Callable[[], StrategyHandler]] = {
    Strategy.COPY: CopyStrategy,
    Strategy.MERGE: MergeStrategy,
    Strategy.REPLACE: ReplaceStrategy,
}


def get_handler(strategy: Strategy) -> StrategyHandler:
    return _HANDLERS[strategy]()


def apply_strategy(
    source: Path,
    unit_name: str,
    strategy: Strategy,
    targets: InstallTargets,
) -> ApplyOutcome:
    """Install the unit at ``source`` into ``targets`` using ``strategy``.

    Merge and replace need settings-file targets; when none of the configured
    tools has one, the unit is copied into the directory targets instead and
    the outcome reports ``Strategy.COPY``.
    """
    handler = get_handler(strategy)
    if not handler.supports(targets) and strategy is not Strategy.COPY:
        logger.info(
            "No configured tool accepts a settings file; installing %s with copy instead of %s",
            unit_name,
            strategy.value,
        )
        handler = get_handler(Strategy.COPY)

    paths = handler.apply(source, unit_name, targets)
    return ApplyOutcome(strategy=handler.strategy, paths=paths)


__all__ = [
    "ApplyOutcome",
    "CopyStrategy",
    "MergeStrategy",
    "ReplaceStrategy",
    "StrategyHandler",
    "apply_strategy",
    "deep_merge",
    "get_handler",
]
