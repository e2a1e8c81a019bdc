"""Circuit breaker over the provider registry.

Circuit state is derived from ProviderStats on every call, never stored:
a provider is open while its consecutive-failure streak is at or above
the threshold and its last failure is younger than the reset timeout.
Once the reset timeout has elapsed the streak is cleared lazily on the
next evaluation.
"""

import logging
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional

from kc_orchestrator.core.errors.orchestration import AllProvidersCircuitOpenError
from kc_orchestrator.core.observability import audit_log, get_metrics
from kc_orchestrator.core.orchestration.fallback import FallbackExecutor
from kc_orchestrator.core.orchestration.models import (
    CircuitBreakerConfig,
    CircuitState,
    ErrorCode,
    ExecutionOutcome,
)
from kc_orchestrator.core.providers.base import Task, task_id_of
from kc_orchestrator.core.providers.registry import ProviderRegistry
from kc_orchestrator.core.providers.stats import utc_now

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Excludes repeatedly failing providers for a cooldown window."""

    def __init__(
        self,
        registry: ProviderRegistry,
        executor: FallbackExecutor,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.registry = registry
        self.executor = executor
        self._clock = clock or utc_now

    def state(self, name: str, config: Optional[CircuitBreakerConfig] = None) -> CircuitState:
        """Evaluate the circuit for one provider, applying the lazy reset."""
        config = config or CircuitBreakerConfig()
        stats = self.registry.stats_for(name)
        if (
            stats is None
            or stats.last_failure is None
            or stats.consecutive_failures < config.failure_threshold
        ):
            return CircuitState.CLOSED
        since_failure = (self._clock() - stats.last_failure).total_seconds()
        if since_failure < config.reset_timeout:
            return CircuitState.OPEN

        logger.info(
            "Circuit reset for provider %s after %.0fs cooldown",
            self.registry.normalize(name),
            config.reset_timeout,
        )
        stats.consecutive_failures = 0
        audit_log("circuit_reset", provider=self.registry.normalize(name))
        return CircuitState.CLOSED

    def eligible_providers(self, config: Optional[CircuitBreakerConfig] = None) -> List[str]:
        """Configured providers whose circuit is closed, in registry order.

        Raises:
            ValueError: If the config is invalid
        """
        config = config or CircuitBreakerConfig()
        config.validate()
        eligible = []
        for name in self.registry.names():
            if self.state(name, config) is CircuitState.CLOSED:
                eligible.append(name)
            else:
                logger.debug("Provider %s excluded by circuit breaker", name)
        return eligible

    def retry_after(self, config: CircuitBreakerConfig) -> Optional[float]:
        """Seconds until the earliest open circuit closes."""
        now = self._clock()
        remaining = []
        for stats in self.registry.get_stats().values():
            if stats.last_failure is None:
                continue
            if stats.consecutive_failures >= config.failure_threshold:
                elapsed = (now - stats.last_failure).total_seconds()
                remaining.append(max(0.0, config.reset_timeout - elapsed))
        return min(remaining) if remaining else None

    async def execute(
        self,
        task: Task,
        context: Optional[Mapping[str, Any]] = None,
        config: Optional[CircuitBreakerConfig] = None,
    ) -> ExecutionOutcome:
        """Execute a task through the providers whose circuit is closed.

        The eligible list is handed to the fallback executor as an explicit
        order; registry state is never narrowed. When every provider is
        open the call fails fast with ``error_code="circuit_open"``.

        Raises:
            ValueError: If the config is invalid
        """
        config = config or CircuitBreakerConfig()
        eligible = self.eligible_providers(config)

        if not eligible:
            error = AllProvidersCircuitOpenError(retry_after=self.retry_after(config))
            logger.warning("Task %s rejected: %s", task_id_of(task), error)
            audit_log(
                "circuit_open",
                task_id=task_id_of(task),
                retry_after=error.retry_after,
            )
            get_metrics().counter("circuit.rejections")
            return ExecutionOutcome(
                success=False,
                error=str(error),
                error_code=ErrorCode.CIRCUIT_OPEN,
            )

        return await self.executor.execute(
            task,
            context,
            max_retries=config.max_retries,
            provider_order=eligible,
        )


__all__ = ["CircuitBreaker"]
