"""Sequential fallback-chain execution.

Providers are tried strictly one at a time in the effective order. The
first success wins; every failure is classified into a FallbackLogEntry
and the loop moves on to the next provider. Provider errors never
propagate out of the executor.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from kc_orchestrator.core.errors.provider import (
    ProviderExecutionError,
    ProviderTimeoutError,
)
from kc_orchestrator.core.observability import audit_log, get_metrics
from kc_orchestrator.core.orchestration.models import (
    ErrorCode,
    ExecutionOutcome,
    FailureType,
    FallbackLogEntry,
)
from kc_orchestrator.core.providers.base import Provider, Task, task_id_of
from kc_orchestrator.core.providers.registry import ProviderRegistry
from kc_orchestrator.core.providers.stats import utc_now

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def classify_failure(
    error: BaseException, provider: Provider
) -> FallbackLogEntry:
    """Map a provider error onto a fallback log entry."""
    name = getattr(provider, "name", None) or type(provider).__name__
    if isinstance(error, ProviderTimeoutError):
        timeout = error.timeout if error.timeout is not None else provider.timeout
        return FallbackLogEntry(
            provider=name,
            error=str(error),
            type=FailureType.TIMEOUT,
            details={"timeout": timeout, "elapsed": error.elapsed},
        )
    if isinstance(error, ProviderExecutionError):
        return FallbackLogEntry(
            provider=name,
            error=str(error),
            type=FailureType.EXECUTION,
            details=error.to_details(),
        )
    return FallbackLogEntry(
        provider=name,
        error=str(error) or type(error).__name__,
        type=FailureType.UNKNOWN,
        details={"error_type": type(error).__name__},
    )


class FallbackExecutor:
    """Runs a task through an ordered chain of providers."""

    def __init__(self, registry: ProviderRegistry, *, clock: Optional[Clock] = None):
        self.registry = registry
        self._clock = clock or utc_now

    def _resolve_order(self, provider_order: Optional[Iterable[str]]) -> List[str]:
        names = self.registry.provider_order if provider_order is None else provider_order
        resolved: List[str] = []
        for configured in names:
            name = self.registry.normalize(configured)
            if name in resolved:
                continue
            if name not in self.registry:
                logger.debug("Skipping unconfigured provider %s", configured)
                continue
            resolved.append(name)
        return resolved

    async def execute(
        self,
        task: Task,
        context: Optional[Mapping[str, Any]] = None,
        max_retries: int = 3,
        provider_order: Optional[Iterable[str]] = None,
    ) -> ExecutionOutcome:
        """Execute a task with provider fallback.

        Args:
            task: Task mapping handed to each provider
            context: Extra execution context forwarded to providers
            max_retries: Forwarded to providers as ``context["max_retries"]``
            provider_order: Effective order for this call (defaults to the
                registry order). Unknown names are skipped silently.

        Returns:
            ExecutionOutcome describing the winning provider or the
            complete fallback log.
        """
        start = time.monotonic()
        task_id = task_id_of(task)
        provider_context: Dict[str, Any] = {**(context or {}), "max_retries": max_retries}
        fallback_log: List[FallbackLogEntry] = []
        last_error: Optional[str] = None
        metrics = get_metrics()

        for name in self._resolve_order(provider_order):
            provider = self.registry.get(name)
            stats = self.registry.stats_for(name)
            if provider is None or stats is None:
                continue

            logger.info("Attempting task %s with provider %s", task_id, name)
            audit_log("provider_attempt", provider=name, task_id=task_id)
            stats.record_attempt(self._clock())
            try:
                result = await provider.execute(task, provider_context)
            except Exception as exc:
                stats.record_failure(self._clock())
                entry = classify_failure(exc, provider)
                entry.provider = name
                fallback_log.append(entry)
                last_error = entry.error
                logger.warning(
                    "Provider %s failed for task %s (%s): %s",
                    name,
                    task_id,
                    entry.type.value,
                    entry.error,
                )
                audit_log(
                    "provider_failure",
                    provider=name,
                    task_id=task_id,
                    failure_type=entry.type.value,
                    error=entry.error,
                )
                metrics.counter(
                    "provider.failures",
                    labels={"provider": name, "type": entry.type.value},
                )
                continue
            except BaseException:
                # Cancellation still completes the attempt in the stats.
                stats.record_failure(self._clock())
                logger.warning("Provider %s cancelled for task %s", name, task_id)
                raise

            stats.record_success(self._clock())
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.info(
                "Task %s completed by provider %s after %d fallback(s)",
                task_id,
                name,
                len(fallback_log),
            )
            audit_log("provider_success", provider=name, task_id=task_id)
            metrics.counter("provider.successes", labels={"provider": name})
            metrics.timer("execution.duration_ms", elapsed_ms, labels={"provider": name})
            return ExecutionOutcome(
                success=True,
                provider=name,
                result=result,
                fallback_log=fallback_log,
                execution_time_ms=elapsed_ms,
            )

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.error(
            "All providers failed for task %s (%d attempted)", task_id, len(fallback_log)
        )
        metrics.counter("execution.exhausted")
        return ExecutionOutcome(
            success=False,
            fallback_log=fallback_log,
            execution_time_ms=elapsed_ms,
            error=last_error or "All providers failed",
            error_code=ErrorCode.ALL_PROVIDERS_FAILED,
        )


__all__ = ["FallbackExecutor", "classify_failure"]
