"""Core orchestration, provider and recovery operations for kc-orchestrator."""

from kc_orchestrator.core.orchestration import (
    CircuitBreakerConfig,
    ExecutionOutcome,
    ProviderManager,
)
from kc_orchestrator.core.providers import ProviderRegistry, ProviderResult
from kc_orchestrator.core.recovery import (
    ErrorClassifier,
    RecoveryContext,
    RecoveryManager,
)

__all__ = [
    "CircuitBreakerConfig",
    "ErrorClassifier",
    "ExecutionOutcome",
    "ProviderManager",
    "ProviderRegistry",
    "ProviderResult",
    "RecoveryContext",
    "RecoveryManager",
]
