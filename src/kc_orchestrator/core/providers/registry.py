"""Provider registry: configured order, alias normalization, instances and stats.

The registry owns exactly one provider instance and one ProviderStats
record per configured provider. Names are normalized through a fixed
alias table so that "codex", " CODEX " and "Codex" all resolve to the
same provider.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from kc_orchestrator.core.providers.base import Provider
from kc_orchestrator.core.providers.stats import ProviderStats

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., Provider]
"""Callable building a provider; invoked as ``factory(timeout=seconds)``."""

DEFAULT_PROVIDER_ORDER = ("Codex", "Claude", "Vibe", "CursorAgent")
DEFAULT_TIMEOUT_SECONDS = 120.0

PROVIDER_ALIASES: Dict[str, str] = {
    "codex": "Codex",
    "claude": "Claude",
    "vibe": "Vibe",
    "cursor-agent": "CursorAgent",
    "cursoragent": "CursorAgent",
    "cursor": "CursorAgent",
}


def normalize_provider_name(name: str) -> str:
    """Normalize a provider name to its canonical form.

    Known aliases map to their canonical name; anything else is
    capitalized ("gemini" -> "Gemini"). Non-string or blank values are
    returned unchanged.

    Examples:
        >>> normalize_provider_name("cursor-agent")
        'CursorAgent'
        >>> normalize_provider_name("GEMINI")
        'Gemini'
    """
    if not isinstance(name, str) or not name.strip():
        return name
    stripped = name.strip()
    alias = PROVIDER_ALIASES.get(stripped.lower())
    if alias is not None:
        return alias
    return stripped[0].upper() + stripped[1:].lower()


class ProviderRegistry:
    """Ordered set of configured providers with their statistics.

    Attributes:
        timeout: Timeout in seconds handed to provider factories
    """

    def __init__(
        self,
        provider_order: Optional[Iterable[str]] = None,
        *,
        factories: Optional[Mapping[str, ProviderFactory]] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._order: List[str] = list(
            provider_order if provider_order is not None else DEFAULT_PROVIDER_ORDER
        )
        self._factories: Dict[str, ProviderFactory] = {
            normalize_provider_name(name): factory
            for name, factory in (factories or {}).items()
        }
        self.timeout = timeout
        self._instances: Dict[str, Provider] = {}
        self._stats: Dict[str, ProviderStats] = {}
        self._initialize_providers()

    def _initialize_providers(self) -> None:
        for configured in self._order:
            name = normalize_provider_name(configured)
            if name in self._instances:
                continue
            factory = self._factories.get(name)
            if factory is None:
                logger.warning(
                    "Unknown provider in configuration: %s (normalized: %s)",
                    configured,
                    name,
                )
                continue
            try:
                provider = factory(timeout=self.timeout)
            except Exception as exc:
                logger.warning("Failed to initialize provider %s: %s", name, exc)
                continue
            self._instances[name] = provider
            self._stats[name] = ProviderStats()

        logger.debug(
            "Provider registry initialized with %d providers (order: %s)",
            len(self._instances),
            " > ".join(self._order),
        )

    # ── Lookup ─────────────────────────────────────────────────────────

    @property
    def provider_order(self) -> List[str]:
        """Configured provider order, as given (not normalized)."""
        return list(self._order)

    def normalize(self, name: str) -> str:
        return normalize_provider_name(name)

    def names(self) -> List[str]:
        """Names of instantiated providers, in registry order."""
        return list(self._instances.keys())

    def get(self, name: str) -> Optional[Provider]:
        return self._instances.get(normalize_provider_name(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_provider_name(name) in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def register(self, name: str, provider: Provider) -> str:
        """Add or replace a provider instance at runtime.

        A new name is appended to the configured order. Existing stats are
        kept when an instance is replaced.

        Returns:
            The normalized provider name
        """
        normalized = normalize_provider_name(name)
        if normalized not in self._instances and normalized not in (
            normalize_provider_name(n) for n in self._order
        ):
            self._order.append(normalized)
        self._instances[normalized] = provider
        self._stats.setdefault(normalized, ProviderStats())
        return normalized

    # ── Statistics ─────────────────────────────────────────────────────

    def stats_for(self, name: str) -> Optional[ProviderStats]:
        return self._stats.get(normalize_provider_name(name))

    def get_stats(self, name: Optional[str] = None):
        """Return stats for one provider, or a name -> stats mapping for all.

        Returns None when a single unknown provider is requested.
        """
        if name is not None:
            return self.stats_for(name)
        return dict(self._stats)

    def reset_stats(self, name: Optional[str] = None) -> None:
        """Reset stats for one provider, or for all providers."""
        if name is not None:
            stats = self.stats_for(name)
            if stats is not None:
                stats.reset()
            return
        for stats in self._stats.values():
            stats.reset()


__all__ = [
    "DEFAULT_PROVIDER_ORDER",
    "PROVIDER_ALIASES",
    "ProviderFactory",
    "ProviderRegistry",
    "normalize_provider_name",
]
