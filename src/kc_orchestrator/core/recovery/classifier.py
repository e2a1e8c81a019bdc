"""Rule-table error classification.

Errors are classified by the name of their type. The table is an ordered
mapping that can be extended at runtime; anything without a rule falls
through to the critical/fail_fast default.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from kc_orchestrator.core.recovery.models import (
    Classification,
    ClassificationResult,
    ClassificationRule,
    RecoveryStrategy,
    Severity,
)

logger = logging.getLogger(__name__)

DEFAULT_RULE_NAME = "default"

DEFAULT_RULE = ClassificationRule(
    error_type=DEFAULT_RULE_NAME,
    classification=Classification.CRITICAL,
    severity=Severity.HIGH,
    recovery_strategy=RecoveryStrategy.FAIL_FAST,
)


def _rule(
    error_type: str,
    classification: Classification,
    severity: Severity,
    strategy: RecoveryStrategy,
) -> ClassificationRule:
    return ClassificationRule(
        error_type=error_type,
        classification=classification,
        severity=severity,
        recovery_strategy=strategy,
    )


_R = Classification.RECOVERABLE
_C = Classification.CRITICAL

DEFAULT_RULES = (
    _rule("ProviderTimeoutError", _R, Severity.MEDIUM, RecoveryStrategy.RETRY_WITH_BACKOFF),
    _rule("ProviderExecutionError", _R, Severity.MEDIUM, RecoveryStrategy.FALLBACK_TO_NEXT_PROVIDER),
    _rule("ProviderUnavailableError", _R, Severity.HIGH, RecoveryStrategy.FALLBACK_TO_NEXT_PROVIDER),
    _rule("AllProvidersFailedError", _C, Severity.HIGH, RecoveryStrategy.FAIL_FAST),
    _rule("AllProvidersCircuitOpenError", _R, Severity.HIGH, RecoveryStrategy.RETRY_WITH_BACKOFF),
    _rule("NoProvidersAvailableError", _C, Severity.HIGH, RecoveryStrategy.FAIL_FAST),
    _rule("AdvisoryClientError", _R, Severity.LOW, RecoveryStrategy.CONTINUE_WITHOUT_OLLAMA),
    _rule("AdvisoryRequestError", _R, Severity.LOW, RecoveryStrategy.CONTINUE_WITHOUT_OLLAMA),
    _rule("AdvisoryResponseError", _R, Severity.LOW, RecoveryStrategy.CONTINUE_WITHOUT_OLLAMA),
    _rule("TaskValidationError", _R, Severity.LOW, RecoveryStrategy.SKIP_AND_CONTINUE),
    _rule("TaskExecutionError", _R, Severity.MEDIUM, RecoveryStrategy.RETRY_WITH_FALLBACK),
    _rule("ConfigurationError", _C, Severity.HIGH, RecoveryStrategy.FAIL_FAST),
    _rule("TimeoutError", _R, Severity.MEDIUM, RecoveryStrategy.RETRY_ONCE),
    _rule("ConnectionError", _R, Severity.MEDIUM, RecoveryStrategy.RETRY_WITH_BACKOFF),
)


class ErrorClassifier:
    """Classifies errors by type name against an extensible rule table."""

    def __init__(self, rules: Optional[Mapping[str, ClassificationRule]] = None):
        if rules is None:
            self._rules: Dict[str, ClassificationRule] = {
                rule.error_type: rule for rule in DEFAULT_RULES
            }
        else:
            self._rules = dict(rules)

    def classify_error(self, error: Union[BaseException, str]) -> ClassificationResult:
        """Classify an exception (or an exception type name)."""
        error_type = error if isinstance(error, str) else type(error).__name__
        rule = self._rules.get(error_type)
        if rule is None:
            logger.debug("No classification rule for %s; using default", error_type)
            rule = DEFAULT_RULE
        return ClassificationResult(
            error_type=error_type,
            classification=rule.classification,
            severity=rule.severity,
            recovery_strategy=rule.recovery_strategy,
        )

    def add_classification_rule(
        self, rule: Union[ClassificationRule, Mapping[str, Any]]
    ) -> ClassificationRule:
        """Add or replace the rule for an error type.

        Raises:
            ValueError: If a required field is missing or invalid
        """
        if not isinstance(rule, ClassificationRule):
            if not isinstance(rule, Mapping):
                raise ValueError(
                    f"Classification rule must be a mapping, got {type(rule).__name__}"
                )
            try:
                rule = ClassificationRule.model_validate(dict(rule))
            except ValidationError as exc:
                raise ValueError(f"Invalid classification rule: {exc}") from exc
        self._rules[rule.error_type] = rule
        logger.debug(
            "Registered classification rule %s -> %s",
            rule.error_type,
            rule.recovery_strategy.value,
        )
        return rule

    def get_classification_rules(self) -> Dict[str, ClassificationRule]:
        """Snapshot of the rule table; changes to it do not affect the classifier."""
        return {name: rule.model_copy(deep=True) for name, rule in self._rules.items()}


__all__ = ["DEFAULT_RULE", "DEFAULT_RULES", "ErrorClassifier"]
