"""
Metrics and audit events for the orchestration layer.

Every metric and audit event is written to a child of this module's
logger (``.metrics`` at DEBUG, ``.audit`` at INFO) with the structured
payload attached under ``extra``, so the host application decides where
they go. Counters are also totalled in process and can be read back with
``MetricsCollector.snapshot()``.

Example:
    from kc_orchestrator.core.observability import audit_log, get_metrics

    audit_log("provider_attempt", provider="Codex", task_id="T1")
    get_metrics().counter("provider.successes", labels={"provider": "Codex"})
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class OrchestrationEventType(Enum):
    """Audit events emitted by the executor, breaker, selectors and recovery."""

    PROVIDER_ATTEMPT = "provider_attempt"
    PROVIDER_SUCCESS = "provider_success"
    PROVIDER_FAILURE = "provider_failure"
    CIRCUIT_OPEN = "circuit_open"
    CIRCUIT_RESET = "circuit_reset"
    ADVICE_REQUESTED = "advice_requested"
    ADVICE_CACHE_HIT = "advice_cache_hit"
    RECOVERY_ATTEMPT = "recovery_attempt"
    RECOVERY_HOOK_ERROR = "recovery_hook_error"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _counter_key(
    name: str, labels: Optional[Dict[str, str]]
) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
    return name, tuple(sorted((labels or {}).items()))


class MetricsCollector:
    """Counters and timers for provider executions.

    Counter totals are kept per (name, labels) pair; timers are only
    logged.
    """

    def __init__(self, prefix: str = "kc_orchestrator"):
        self.prefix = prefix
        self._logger = logging.getLogger(f"{__name__}.metrics")
        self._counters: Counter = Counter()

    def _emit(self, kind: str, name: str, value: float, labels: Optional[Dict[str, str]]) -> None:
        record = {
            "name": f"{self.prefix}.{name}",
            "type": kind,
            "value": value,
            "labels": dict(labels or {}),
            "timestamp": _now(),
        }
        self._logger.debug(
            "METRIC: %s=%s %s", record["name"], value, record["labels"], extra={"metric": record}
        )

    def counter(self, name: str, value: int = 1, labels: Optional[Dict[str, str]] = None) -> None:
        self._counters[_counter_key(name, labels)] += value
        self._emit("counter", name, value, labels)

    def timer(self, name: str, duration_ms: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Record a duration in milliseconds."""
        self._emit("timer", name, duration_ms, labels)

    def get_count(self, name: str, labels: Optional[Dict[str, str]] = None) -> int:
        return self._counters[_counter_key(name, labels)]

    def snapshot(self) -> Dict[str, int]:
        """Counter totals keyed by ``name{label=value,...}``."""
        result: Dict[str, int] = {}
        for (name, labels), total in self._counters.items():
            suffix = ",".join(f"{k}={v}" for k, v in labels)
            result[f"{name}{{{suffix}}}" if suffix else name] = total
        return result

    def reset(self) -> None:
        self._counters.clear()


_metrics = MetricsCollector()
_audit_logger = logging.getLogger(f"{__name__}.audit")


def get_metrics() -> MetricsCollector:
    """Process-wide metrics collector."""
    return _metrics


def audit_log(event_type: str, **details: Any) -> None:
    """Write one audit event.

    Args:
        event_type: An OrchestrationEventType value
        **details: Event payload (provider, task_id, error, ...)

    Raises:
        ValueError: If event_type is not a known event
    """
    event = OrchestrationEventType(event_type)
    payload = {"event_type": event.value, "timestamp": _now(), "details": details}
    _audit_logger.info("AUDIT: %s", event.value, extra={"audit": payload})


__all__ = [
    "MetricsCollector",
    "OrchestrationEventType",
    "audit_log",
    "get_metrics",
]
