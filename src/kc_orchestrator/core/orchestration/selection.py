"""Statistics-driven provider selection."""

import logging
from typing import Dict, Optional

from kc_orchestrator.core.providers.registry import ProviderRegistry
from kc_orchestrator.core.providers.stats import ProviderStats

logger = logging.getLogger(__name__)

RECENT_SUCCESS_BONUS = 0.1


def score_provider(stats: ProviderStats) -> float:
    """Success rate plus a small bonus for providers that have ever succeeded."""
    score = stats.success_rate
    if stats.last_success is not None:
        score += RECENT_SUCCESS_BONUS
    return score


class ScoredSelector:
    """Picks the single best provider from registry statistics."""

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    def scores(self) -> Dict[str, float]:
        """Score of every configured provider, in registry order."""
        return {
            name: score_provider(stats)
            for name, stats in self.registry.get_stats().items()
            if name in self.registry
        }

    def best_provider(self) -> Optional[str]:
        """Return the highest-scoring provider, or None for an empty registry.

        Ties go to the provider that comes first in registry order.
        """
        best_name: Optional[str] = None
        best_score = -1.0
        for name in self.registry.names():
            stats = self.registry.stats_for(name)
            if stats is None:
                continue
            score = score_provider(stats)
            if score > best_score:
                best_name, best_score = name, score

        if best_name is not None:
            logger.debug("Scored selection chose %s (score %.2f)", best_name, best_score)
        return best_name


__all__ = ["RECENT_SUCCESS_BONUS", "ScoredSelector", "score_provider"]
