"""Strategy-based error recovery.

``RecoveryManager.handle_error`` classifies an error, dispatches the
matching recovery strategy and reports the result as a RecoveryOutcome.
Lifecycle hooks fire around every recovery regardless of strategy; a hook
that raises is logged and skipped.

Strategies:
    retry_with_fallback        retry ``max_retries`` times with a fixed delay,
                               then call the fallback once
    retry_with_backoff         retry ``max_retries`` times, doubling the delay
                               from ``initial_delay`` up to ``max_delay``
    retry_once                 exactly one retry
    skip_and_continue          handled without retrying
    fail_fast                  report the original error
    fallback_to_next_provider  call the fallback once
    continue_without_ollama    handled in degraded mode
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from kc_orchestrator.core.observability import audit_log, get_metrics
from kc_orchestrator.core.recovery.classifier import ErrorClassifier
from kc_orchestrator.core.recovery.models import (
    ClassificationResult,
    RecoveryContext,
    RecoveryOutcome,
    RecoveryStrategy,
)

logger = logging.getLogger(__name__)

HOOK_EVENTS = ("pre_recovery", "post_recovery", "recovery_success", "recovery_failure")

Hook = Callable[..., Any]
SleepFunc = Callable[[float], Awaitable[Any]]


def _strategy_counters() -> Dict[str, int]:
    return {"attempts": 0, "successes": 0, "failures": 0}


class RecoveryManager:
    """Classifies errors and executes the matching recovery strategy."""

    def __init__(
        self,
        classifier: Optional[ErrorClassifier] = None,
        *,
        sleep_func: Optional[SleepFunc] = None,
    ):
        self.classifier = classifier or ErrorClassifier()
        self._sleep = sleep_func or asyncio.sleep
        self._hooks: Dict[str, List[Hook]] = {event: [] for event in HOOK_EVENTS}
        self._handlers = {
            RecoveryStrategy.RETRY_WITH_FALLBACK: self._retry_with_fallback,
            RecoveryStrategy.RETRY_WITH_BACKOFF: self._retry_with_backoff,
            RecoveryStrategy.RETRY_ONCE: self._retry_once,
            RecoveryStrategy.SKIP_AND_CONTINUE: self._skip_and_continue,
            RecoveryStrategy.FAIL_FAST: self._fail_fast,
            RecoveryStrategy.FALLBACK_TO_NEXT_PROVIDER: self._fallback_to_next_provider,
            RecoveryStrategy.CONTINUE_WITHOUT_OLLAMA: self._continue_without_ollama,
        }
        self.reset_recovery_statistics()

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def add_recovery_hook(self, event: str, hook: Hook) -> None:
        """Register a sync or async hook for a lifecycle event.

        Raises:
            ValueError: If the event name is unknown
        """
        if event not in self._hooks:
            raise ValueError(f"Unknown recovery hook event '{event}'; expected one of {HOOK_EVENTS}")
        self._hooks[event].append(hook)

    async def _fire(self, event: str, *args: Any) -> None:
        for hook in self._hooks[event]:
            try:
                result = hook(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self._stats["hook_errors"] += 1
                logger.warning("Recovery hook %s raised: %s", event, exc)
                audit_log("recovery_hook_error", hook_event=event, error=str(exc))

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def handle_error(
        self,
        error: BaseException,
        context: Optional[RecoveryContext] = None,
    ) -> RecoveryOutcome:
        """Recover from an error using the strategy its classification selects."""
        context = context or RecoveryContext()
        classification = self.classifier.classify_error(error)
        strategy = classification.recovery_strategy

        logger.info(
            "Handling %s (%s/%s) with strategy %s",
            classification.error_type,
            classification.classification.value,
            classification.severity.value,
            strategy.value,
        )
        audit_log(
            "recovery_attempt",
            error_type=classification.error_type,
            strategy=strategy.value,
        )
        self._stats["total_recoveries"] += 1
        self._stats["by_strategy"][strategy.value]["attempts"] += 1

        await self._fire("pre_recovery", error, context)
        outcome = await self._handlers[strategy](error, context, classification)

        if outcome.success:
            self._stats["successful_recoveries"] += 1
            self._stats["by_strategy"][strategy.value]["successes"] += 1
        else:
            self._stats["failed_recoveries"] += 1
            self._stats["by_strategy"][strategy.value]["failures"] += 1
        get_metrics().counter(
            "recovery.outcomes",
            labels={"strategy": strategy.value, "success": str(outcome.success).lower()},
        )

        await self._fire("post_recovery", error, context, outcome)
        await self._fire(
            "recovery_success" if outcome.success else "recovery_failure",
            error,
            context,
            outcome,
        )
        return outcome

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _retry_with_fallback(
        self, error: BaseException, context: RecoveryContext, classification: ClassificationResult
    ) -> RecoveryOutcome:
        outcome = RecoveryOutcome(
            success=False, strategy=classification.recovery_strategy, classification=classification
        )
        last_error: BaseException = error

        if context.retry_operation is not None:
            for attempt in range(1, context.max_retries + 1):
                if attempt > 1 and context.retry_delay > 0:
                    await self._sleep(context.retry_delay)
                    outcome.delays.append(context.retry_delay)
                outcome.attempts += 1
                try:
                    outcome.recovery_result = await context.retry_operation(attempt)
                except Exception as exc:
                    last_error = exc
                    logger.debug("Retry %d/%d failed: %s", attempt, context.max_retries, exc)
                    continue
                outcome.success = True
                return outcome

        if context.fallback_operation is not None:
            outcome.attempts += 1
            try:
                outcome.recovery_result = await context.fallback_operation()
            except Exception as exc:
                last_error = exc
                logger.debug("Fallback operation failed: %s", exc)
            else:
                outcome.success = True
                return outcome

        outcome.recovery_error = last_error
        return outcome

    async def _retry_with_backoff(
        self, error: BaseException, context: RecoveryContext, classification: ClassificationResult
    ) -> RecoveryOutcome:
        outcome = RecoveryOutcome(
            success=False, strategy=classification.recovery_strategy, classification=classification
        )
        if context.retry_operation is None:
            outcome.recovery_error = error
            return outcome

        last_error: BaseException = error
        delay = context.initial_delay
        for attempt in range(1, context.max_retries + 1):
            wait = min(delay, context.max_delay)
            await self._sleep(wait)
            outcome.delays.append(wait)
            outcome.attempts += 1
            try:
                outcome.recovery_result = await context.retry_operation(attempt)
            except Exception as exc:
                last_error = exc
                logger.debug(
                    "Backoff retry %d/%d failed after %.2fs wait: %s",
                    attempt,
                    context.max_retries,
                    wait,
                    exc,
                )
                delay = wait * 2
                continue
            outcome.success = True
            return outcome

        outcome.recovery_error = last_error
        return outcome

    async def _retry_once(
        self, error: BaseException, context: RecoveryContext, classification: ClassificationResult
    ) -> RecoveryOutcome:
        outcome = RecoveryOutcome(
            success=False, strategy=classification.recovery_strategy, classification=classification
        )
        if context.retry_operation is None:
            outcome.recovery_error = error
            return outcome

        outcome.attempts = 1
        try:
            outcome.recovery_result = await context.retry_operation(1)
        except Exception as exc:
            outcome.recovery_error = exc
            return outcome
        outcome.success = True
        return outcome

    async def _skip_and_continue(
        self, error: BaseException, context: RecoveryContext, classification: ClassificationResult
    ) -> RecoveryOutcome:
        logger.info("Skipping after %s: %s", classification.error_type, error)
        return RecoveryOutcome(
            success=True,
            strategy=classification.recovery_strategy,
            classification=classification,
            recovery_result={
                "skipped": True,
                "error_type": classification.error_type,
                "reason": str(error),
            },
        )

    async def _fail_fast(
        self, error: BaseException, context: RecoveryContext, classification: ClassificationResult
    ) -> RecoveryOutcome:
        logger.error("Unrecoverable %s: %s", classification.error_type, error)
        return RecoveryOutcome(
            success=False,
            strategy=classification.recovery_strategy,
            classification=classification,
            recovery_error=error,
        )

    async def _fallback_to_next_provider(
        self, error: BaseException, context: RecoveryContext, classification: ClassificationResult
    ) -> RecoveryOutcome:
        outcome = RecoveryOutcome(
            success=False, strategy=classification.recovery_strategy, classification=classification
        )
        if context.fallback_operation is None:
            outcome.recovery_error = error
            return outcome

        outcome.attempts = 1
        try:
            outcome.recovery_result = await context.fallback_operation()
        except Exception as exc:
            outcome.recovery_error = exc
            return outcome
        outcome.success = True
        return outcome

    async def _continue_without_ollama(
        self, error: BaseException, context: RecoveryContext, classification: ClassificationResult
    ) -> RecoveryOutcome:
        logger.warning("Advisory backend unavailable, continuing without it: %s", error)
        return RecoveryOutcome(
            success=True,
            strategy=classification.recovery_strategy,
            classification=classification,
            recovery_result={
                "degraded": True,
                "error_type": classification.error_type,
                "reason": str(error),
            },
        )

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_recovery_statistics(self) -> Dict[str, Any]:
        """Aggregate recovery counts, overall and per strategy."""
        return {
            "total_recoveries": self._stats["total_recoveries"],
            "successful_recoveries": self._stats["successful_recoveries"],
            "failed_recoveries": self._stats["failed_recoveries"],
            "hook_errors": self._stats["hook_errors"],
            "by_strategy": {
                name: dict(counters) for name, counters in self._stats["by_strategy"].items()
            },
        }

    def reset_recovery_statistics(self) -> None:
        self._stats: Dict[str, Any] = {
            "total_recoveries": 0,
            "successful_recoveries": 0,
            "failed_recoveries": 0,
            "hook_errors": 0,
            "by_strategy": {strategy.value: _strategy_counters() for strategy in RecoveryStrategy},
        }


__all__ = ["HOOK_EVENTS", "RecoveryManager"]
