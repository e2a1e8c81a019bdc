"""Error classification and recovery models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Classification(str, Enum):
    """Whether an error can be recovered from locally."""

    RECOVERABLE = "recoverable"
    CRITICAL = "critical"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecoveryStrategy(str, Enum):
    """Recovery strategies dispatched by the RecoveryManager."""

    RETRY_WITH_FALLBACK = "retry_with_fallback"
    RETRY_WITH_BACKOFF = "retry_with_backoff"
    RETRY_ONCE = "retry_once"
    SKIP_AND_CONTINUE = "skip_and_continue"
    FAIL_FAST = "fail_fast"
    FALLBACK_TO_NEXT_PROVIDER = "fallback_to_next_provider"
    CONTINUE_WITHOUT_OLLAMA = "continue_without_ollama"


class ClassificationRule(BaseModel):
    """Maps an error type name to its classification and recovery strategy."""

    model_config = ConfigDict(frozen=True)

    error_type: str = Field(..., min_length=1, description="Exception class name")
    classification: Classification = Field(..., description="recoverable or critical")
    severity: Severity = Field(..., description="low, medium or high")
    recovery_strategy: RecoveryStrategy = Field(..., description="Strategy to dispatch")

    @field_validator("error_type")
    @classmethod
    def validate_error_type(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank names."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("error_type must not be blank")
        return stripped


@dataclass(frozen=True)
class ClassificationResult:
    """Classification of a single error."""

    error_type: str
    classification: Classification
    severity: Severity
    recovery_strategy: RecoveryStrategy

    @property
    def is_recoverable(self) -> bool:
        return self.classification is Classification.RECOVERABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.error_type,
            "classification": self.classification.value,
            "severity": self.severity.value,
            "recovery_strategy": self.recovery_strategy.value,
            "is_recoverable": self.is_recoverable,
        }


RetryOperation = Callable[[int], Awaitable[Any]]
FallbackOperation = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class RecoveryContext:
    """
    Caller-supplied inputs for one recovery attempt.

    Delays are in seconds.

    Attributes:
        max_retries: Maximum calls to ``retry_operation``
        retry_delay: Fixed delay between retries (retry_with_fallback)
        initial_delay: First backoff delay (retry_with_backoff)
        max_delay: Upper bound for any backoff delay
        retry_operation: Called with the 1-based attempt number
        fallback_operation: Called once when retries are exhausted or a
            fallback is the strategy
        metadata: Free-form data passed through to hooks and results
    """

    max_retries: int = 3
    retry_delay: float = 1.0
    initial_delay: float = 1.0
    max_delay: float = 30.0
    retry_operation: Optional[RetryOperation] = None
    fallback_operation: Optional[FallbackOperation] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RecoveryOutcome:
    """
    Result of handling one error.

    Attributes:
        success: Whether the error was recovered from (or deliberately skipped)
        strategy: Strategy that was dispatched
        classification: Classification that selected the strategy
        recovery_result: Value returned by the successful operation, or a
            marker dict for skip/degraded strategies
        recovery_error: Last error seen when recovery failed
        attempts: Number of retry/fallback operations invoked
        delays: Seconds slept before each retry, in order
    """

    success: bool
    strategy: RecoveryStrategy
    classification: ClassificationResult
    recovery_result: Any = None
    recovery_error: Optional[BaseException] = None
    attempts: int = 0
    delays: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "strategy": self.strategy.value,
            "classification": self.classification.to_dict(),
            "recovery_result": self.recovery_result,
            "recovery_error": str(self.recovery_error) if self.recovery_error else None,
            "attempts": self.attempts,
            "delays": list(self.delays),
        }


__all__ = [
    "Classification",
    "ClassificationResult",
    "ClassificationRule",
    "FallbackOperation",
    "RecoveryContext",
    "RecoveryOutcome",
    "RecoveryStrategy",
    "RetryOperation",
    "Severity",
]
