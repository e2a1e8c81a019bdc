"""
In-memory cache for provider-selection advice.

Entries are keyed by task id and the sorted set of candidate providers,
so asking about the same task with the same candidates reuses the
previous recommendation until it expires. Expiry is checked lazily on
lookup; there is no background eviction.
"""

from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Optional, Tuple

if TYPE_CHECKING:
    from kc_orchestrator.core.orchestration.advisory import ProviderRecommendation

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Tuple[str, ...]]


def make_cache_key(task_id: str, candidates: Iterable[str]) -> CacheKey:
    """Build the cache key for a task and its candidate providers."""
    return (str(task_id), tuple(sorted(candidates)))


@dataclass
class AdviceCacheEntry:
    """A cached recommendation and the time it was stored."""

    recommendation: "ProviderRecommendation"
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl


class AdviceCache:
    """
    TTL cache for provider recommendations.

    Attributes:
        default_ttl: Default time-to-live in seconds (default: 3600 = 1 hour)
    """

    def __init__(
        self,
        default_ttl: float = 3600,
        *,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._entries: Dict[CacheKey, AdviceCacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def get(self, task_id: str, candidates: Iterable[str]) -> Optional["ProviderRecommendation"]:
        """
        Retrieve a cached recommendation.

        Returns:
            A copy of the cached recommendation if present and not expired,
            None otherwise
        """
        key = make_cache_key(task_id, candidates)
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if entry.is_expired(self._clock()):
            # Expired - drop entry
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return copy.deepcopy(entry.recommendation)

    def set(
        self,
        task_id: str,
        candidates: Iterable[str],
        recommendation: "ProviderRecommendation",
        ttl: Optional[float] = None,
    ) -> None:
        """Store a recommendation under ``(task_id, sorted(candidates))``."""
        self._entries[make_cache_key(task_id, candidates)] = AdviceCacheEntry(
            recommendation=copy.deepcopy(recommendation),
            stored_at=self._clock(),
            ttl=ttl if ttl is not None else self.default_ttl,
        )

    def invalidate(self, task_id: Optional[str] = None) -> int:
        """
        Invalidate cache entries.

        Args:
            task_id: If provided, only invalidate entries for this task

        Returns:
            Number of entries removed
        """
        if task_id is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            keys = [key for key in self._entries if key[0] == str(task_id)]
            for key in keys:
                del self._entries[key]
            removed = len(keys)
        logger.debug("Invalidated %d advice cache entries", removed)
        return removed

    def stats(self) -> Dict[str, int]:
        """
        Return cache statistics.

        Returns:
            Dict with total, live and expired entry counts plus hits/misses
        """
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
        return {
            "total_entries": len(self._entries),
            "valid_entries": len(self._entries) - expired,
            "expired_entries": expired,
            "hits": self._hits,
            "misses": self._misses,
        }

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["AdviceCache", "AdviceCacheEntry", "CacheKey", "make_cache_key"]
