"""
Provider manager: caller-facing facade over the orchestration layer.

Every execution entry point returns an ExecutionOutcome; provider errors
are never raised to the caller.

Example usage:
    from kc_orchestrator.config import load_config
    from kc_orchestrator.core.orchestration import ProviderManager

    manager = ProviderManager.from_config(load_config())
    outcome = await manager.execute_with_circuit_breaker(task)
    if not outcome.success:
        print(outcome.error_code, outcome.fallback_log)
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

from kc_orchestrator.core.advisory.base import AdvisoryBackend
from kc_orchestrator.core.advisory.ollama import OllamaAdvisoryClient
from kc_orchestrator.core.errors.orchestration import NoProvidersAvailableError
from kc_orchestrator.core.orchestration.advisory import (
    AdvisedSelector,
    ProviderRecommendation,
)
from kc_orchestrator.core.orchestration.cache import AdviceCache
from kc_orchestrator.core.orchestration.circuit import CircuitBreaker
from kc_orchestrator.core.orchestration.fallback import FallbackExecutor
from kc_orchestrator.core.orchestration.models import (
    CircuitBreakerConfig,
    ErrorCode,
    ExecutionOutcome,
)
from kc_orchestrator.core.orchestration.selection import ScoredSelector
from kc_orchestrator.core.providers.base import Task, task_id_of
from kc_orchestrator.core.providers.cli import RunnerProtocol, default_provider_factories
from kc_orchestrator.core.providers.registry import ProviderFactory, ProviderRegistry
from kc_orchestrator.core.providers.stats import utc_now

if TYPE_CHECKING:
    from kc_orchestrator.config import OrchestratorConfig

logger = logging.getLogger(__name__)


class ProviderManager:
    """Selects, executes and falls back across the configured providers."""

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        advisory_backend: Optional[AdvisoryBackend] = None,
        ai_selection_enabled: bool = True,
        ai_selection_cache_ttl: float = 3600,
        circuit_config: Optional[CircuitBreakerConfig] = None,
        max_retries: int = 3,
        clock: Optional[Callable[[], datetime]] = None,
        cache_clock: Optional[Callable[[], float]] = None,
    ):
        self.registry = registry
        self.max_retries = max_retries
        self.circuit_config = circuit_config or CircuitBreakerConfig(max_retries=max_retries)
        self._clock = clock or utc_now

        self.executor = FallbackExecutor(registry, clock=self._clock)
        self.circuit_breaker = CircuitBreaker(registry, self.executor, clock=self._clock)
        self.scored_selector = ScoredSelector(registry)
        self.advised_selector = AdvisedSelector(
            registry,
            advisory_backend,
            enabled=ai_selection_enabled,
            cache=AdviceCache(ai_selection_cache_ttl, clock=cache_clock),
            scored_selector=self.scored_selector,
        )

    @classmethod
    def from_config(
        cls,
        config: "OrchestratorConfig",
        *,
        factories: Optional[Mapping[str, ProviderFactory]] = None,
        advisory_backend: Optional[AdvisoryBackend] = None,
        runner: Optional[RunnerProtocol] = None,
    ) -> "ProviderManager":
        """Wire a manager from configuration.

        Args:
            config: Validated orchestrator configuration
            factories: Provider factories (defaults to the built-in CLI providers)
            advisory_backend: Advisory backend (defaults to an Ollama client
                when advised selection is enabled)
            runner: Subprocess runner shared by the built-in CLI providers
        """
        config.validate()
        if factories is None:
            factories = default_provider_factories(config.provider_overrides, runner=runner)
        registry = ProviderRegistry(
            config.provider_order,
            factories=factories,
            timeout=config.provider_timeout,
        )
        if advisory_backend is None and config.ai_selection_enabled:
            advisory_backend = OllamaAdvisoryClient(
                config.advisory_base_url,
                config.advisory_model,
                config.advisory_timeout,
            )
        return cls(
            registry,
            advisory_backend=advisory_backend,
            ai_selection_enabled=config.ai_selection_enabled,
            ai_selection_cache_ttl=config.ai_selection_cache_ttl,
            circuit_config=CircuitBreakerConfig(
                failure_threshold=config.circuit_failure_threshold,
                reset_timeout=config.circuit_reset_timeout,
                max_retries=config.max_retries,
            ),
            max_retries=config.max_retries,
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_with_fallback(
        self,
        task: Task,
        context: Optional[Mapping[str, Any]] = None,
        max_retries: Optional[int] = None,
    ) -> ExecutionOutcome:
        """Try every configured provider in order until one succeeds."""
        return await self.executor.execute(
            task,
            context,
            max_retries=self.max_retries if max_retries is None else max_retries,
        )

    async def execute_with_circuit_breaker(
        self,
        task: Task,
        context: Optional[Mapping[str, Any]] = None,
        config: Optional[CircuitBreakerConfig] = None,
    ) -> ExecutionOutcome:
        """Fallback execution restricted to providers whose circuit is closed."""
        return await self.circuit_breaker.execute(task, context, config or self.circuit_config)

    async def execute_with_best_provider(
        self, task: Task, context: Optional[Mapping[str, Any]] = None
    ) -> ExecutionOutcome:
        """Execute on the single highest-scoring provider."""
        return await self._execute_single(task, context, self.get_best_available_provider())

    async def execute_with_ai_assisted_provider(
        self, task: Task, context: Optional[Mapping[str, Any]] = None
    ) -> ExecutionOutcome:
        """Execute on the provider chosen by advised selection."""
        provider = await self.get_best_provider_with_ai(task)
        return await self._execute_single(task, context, provider, ai_assisted=True)

    async def _execute_single(
        self,
        task: Task,
        context: Optional[Mapping[str, Any]],
        provider: Optional[str],
        *,
        ai_assisted: bool = False,
    ) -> ExecutionOutcome:
        if provider is None:
            error = NoProvidersAvailableError()
            logger.error("Cannot execute task %s: %s", task_id_of(task), error)
            return ExecutionOutcome(
                success=False,
                error=str(error),
                error_code=ErrorCode.NO_PROVIDERS,
                ai_assisted=ai_assisted,
            )

        logger.info("Selected provider %s for task %s", provider, task_id_of(task))
        outcome = await self.executor.execute(
            task,
            context,
            max_retries=self.max_retries,
            provider_order=[provider],
        )
        outcome.ai_assisted = ai_assisted
        if not outcome.success:
            outcome.error_code = ErrorCode.PROVIDER_FAILED
        return outcome

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def get_available_providers(self) -> List[str]:
        """Names of instantiated providers, in configured order."""
        return self.registry.names()

    def get_best_available_provider(self) -> Optional[str]:
        return self.scored_selector.best_provider()

    async def get_best_provider_with_ai(self, task: Task) -> Optional[str]:
        return await self.advised_selector.best_provider(task)

    async def get_ai_provider_recommendation(
        self, task: Task, candidates: Optional[List[str]] = None
    ) -> ProviderRecommendation:
        """Raw advisory recommendation for a task (never raises)."""
        return await self.advised_selector.recommend(
            task, candidates if candidates is not None else self.registry.names()
        )

    async def check_advisory_availability(self) -> bool:
        return await self.advised_selector.is_backend_available()

    # ------------------------------------------------------------------
    # Stats & health
    # ------------------------------------------------------------------

    def get_provider_stats(self, name: Optional[str] = None):
        """Stats for one provider (None if unknown) or a name -> stats mapping."""
        return self.registry.get_stats(name)

    def reset_provider_stats(self, name: Optional[str] = None) -> None:
        """Reset stats for one provider, or all providers when name is None."""
        self.registry.reset_stats(name)
        logger.info("Reset provider stats for %s", name or "all providers")

    async def check_all_provider_health(self) -> Dict[str, Dict[str, Any]]:
        """Run every provider's health check, one at a time."""
        results: Dict[str, Dict[str, Any]] = {}
        for name in self.registry.names():
            provider = self.registry.get(name)
            timestamp = datetime.now(timezone.utc).isoformat()
            try:
                healthy = bool(await provider.health_check())
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Health check for %s raised: %s", name, exc)
                results[name] = {"healthy": False, "error": str(exc), "timestamp": timestamp}
                continue
            logger.debug("Health check for %s: %s", name, "PASS" if healthy else "FAIL")
            results[name] = {"healthy": healthy, "timestamp": timestamp}
        return results


__all__ = ["ProviderManager"]
