"""
Provider orchestration for kc-orchestrator.

Fallback execution, circuit breaking and provider selection (scored and
advised), exposed through the ProviderManager facade.
"""

from kc_orchestrator.core.orchestration.advisory import (
    AdvisedSelector,
    ProviderRecommendation,
    describe_task,
    parse_recommendation,
)
from kc_orchestrator.core.orchestration.cache import AdviceCache
from kc_orchestrator.core.orchestration.circuit import CircuitBreaker
from kc_orchestrator.core.orchestration.fallback import FallbackExecutor
from kc_orchestrator.core.orchestration.manager import ProviderManager
from kc_orchestrator.core.orchestration.models import (
    CircuitBreakerConfig,
    CircuitState,
    ErrorCode,
    ExecutionOutcome,
    FailureType,
    FallbackLogEntry,
)
from kc_orchestrator.core.orchestration.selection import ScoredSelector

__all__ = [
    # Facade
    "ProviderManager",
    # Execution
    "FallbackExecutor",
    "CircuitBreaker",
    # Selection
    "ScoredSelector",
    "AdvisedSelector",
    "AdviceCache",
    "ProviderRecommendation",
    "describe_task",
    "parse_recommendation",
    # Models
    "CircuitBreakerConfig",
    "CircuitState",
    "ErrorCode",
    "ExecutionOutcome",
    "FailureType",
    "FallbackLogEntry",
]
