"""
Error classification and recovery for kc-orchestrator.

Example usage:
    from kc_orchestrator.core.recovery import RecoveryContext, RecoveryManager

    manager = RecoveryManager()
    outcome = await manager.handle_error(
        exc,
        RecoveryContext(max_retries=3, retry_operation=lambda attempt: run(task)),
    )
"""

from kc_orchestrator.core.recovery.classifier import (
    DEFAULT_RULE,
    DEFAULT_RULES,
    ErrorClassifier,
)
from kc_orchestrator.core.recovery.manager import HOOK_EVENTS, RecoveryManager
from kc_orchestrator.core.recovery.models import (
    Classification,
    ClassificationResult,
    ClassificationRule,
    RecoveryContext,
    RecoveryOutcome,
    RecoveryStrategy,
    Severity,
)

__all__ = [
    "Classification",
    "ClassificationResult",
    "ClassificationRule",
    "DEFAULT_RULE",
    "DEFAULT_RULES",
    "ErrorClassifier",
    "HOOK_EVENTS",
    "RecoveryContext",
    "RecoveryManager",
    "RecoveryOutcome",
    "RecoveryStrategy",
    "Severity",
]
