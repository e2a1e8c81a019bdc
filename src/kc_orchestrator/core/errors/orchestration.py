"""Orchestration-level error classes.

These describe failures of the fallback chain as a whole rather than of a
single provider.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from kc_orchestrator.core.orchestration.models import ExecutionOutcome


class AllProvidersFailedError(Exception):
    """Every configured provider was attempted and failed.

    Attributes:
        fallback_log: Serialized fallback log entries, in attempt order.
        task_id: Identifier of the task, if known.
    """

    def __init__(
        self,
        message: str = "All providers failed",
        *,
        fallback_log: Optional[List[Dict[str, Any]]] = None,
        task_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.fallback_log = fallback_log or []
        self.task_id = task_id

    @classmethod
    def from_outcome(
        cls,
        outcome: "ExecutionOutcome",
        task_id: Optional[str] = None,
    ) -> "AllProvidersFailedError":
        """Build the error from a failed execution outcome."""
        return cls(
            outcome.error or "All providers failed",
            fallback_log=[entry.to_dict() for entry in outcome.fallback_log],
            task_id=task_id,
        )


class AllProvidersCircuitOpenError(Exception):
    """Every configured provider is currently excluded by the circuit breaker.

    Attributes:
        retry_after: Seconds until the earliest provider becomes eligible.
    """

    def __init__(
        self,
        message: str = "All providers in circuit breaker state",
        *,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.retry_after = retry_after


class NoProvidersAvailableError(Exception):
    """No provider is configured or none could be instantiated."""

    def __init__(self, message: str = "No available providers"):
        super().__init__(message)
