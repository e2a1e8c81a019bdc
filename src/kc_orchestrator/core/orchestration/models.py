"""Orchestration data models.

Defines the result and log types shared by the fallback executor,
circuit breaker and selectors:
- FailureType enum for fallback log entries
- FallbackLogEntry for one failed provider attempt
- ExecutionOutcome for the structured result of every entry point
- CircuitState / CircuitBreakerConfig for the circuit breaker
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FailureType(str, Enum):
    """Classification of a failed provider attempt."""

    TIMEOUT = "timeout"
    EXECUTION = "execution"
    UNKNOWN = "unknown"


class ErrorCode(str, Enum):
    """Machine-readable reason attached to failed outcomes."""

    ALL_PROVIDERS_FAILED = "all_providers_failed"
    CIRCUIT_OPEN = "circuit_open"
    NO_PROVIDERS = "no_providers"
    PROVIDER_FAILED = "provider_failed"


@dataclass
class FallbackLogEntry:
    """One failed provider attempt within a fallback chain."""

    provider: str
    error: str
    type: FailureType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "provider": self.provider,
            "error": self.error,
            "type": self.type.value,
            "details": self.details,
            "timestamp": self.timestamp,
        }


@dataclass
class ExecutionOutcome:
    """
    Structured result of executing a task through the orchestration layer.

    Attributes:
        success: Whether some provider completed the task
        provider: Name of the winning provider (None on failure)
        result: The provider's result object (None on failure)
        fallback_log: Failed attempts, in order
        execution_time_ms: Wall-clock time across all attempts
        error: Message of the most recent error on failure
        error_code: Reason for failure (see ErrorCode)
        ai_assisted: True when the provider was chosen by advisory selection
        timestamp: Completion time (ISO-8601, UTC)
    """

    success: bool
    provider: Optional[str] = None
    result: Any = None
    fallback_log: List[FallbackLogEntry] = field(default_factory=list)
    execution_time_ms: float = 0.0
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    ai_assisted: bool = False
    timestamp: str = field(default_factory=_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = self.result
        if hasattr(result, "to_dict"):
            result = result.to_dict()
        return {
            "success": self.success,
            "provider": self.provider,
            "result": result,
            "fallback_log": [entry.to_dict() for entry in self.fallback_log],
            "execution_time_ms": self.execution_time_ms,
            "error": self.error,
            "error_code": self.error_code.value if self.error_code else None,
            "ai_assisted": self.ai_assisted,
            "timestamp": self.timestamp,
        }


class CircuitState(str, Enum):
    """Derived circuit state of a provider."""

    CLOSED = "closed"
    OPEN = "open"


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker thresholds.

    Attributes:
        failure_threshold: Consecutive failures that open the circuit
        reset_timeout: Seconds after the last failure before the circuit closes
        max_retries: Forwarded to providers through the fallback executor
    """

    failure_threshold: int = 3
    reset_timeout: float = 300.0
    max_retries: int = 3

    def validate(self) -> None:
        """Validate thresholds.

        Raises:
            ValueError: If a threshold is out of range
        """
        if self.failure_threshold < 1:
            raise ValueError(
                f"failure_threshold must be at least 1, got {self.failure_threshold}"
            )
        if self.reset_timeout < 0:
            raise ValueError(
                f"reset_timeout must be non-negative, got {self.reset_timeout}"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")


__all__ = [
    "CircuitBreakerConfig",
    "CircuitState",
    "ErrorCode",
    "ExecutionOutcome",
    "FailureType",
    "FallbackLogEntry",
]
