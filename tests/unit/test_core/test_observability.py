"""Tests for metrics and audit events."""

import logging

import pytest

from kc_orchestrator.core.errors import ProviderTimeoutError
from kc_orchestrator.core.observability import MetricsCollector, audit_log
from kc_orchestrator.core.orchestration import FallbackExecutor
from tests.unit.test_core.fakes import FakeProvider, make_registry

AUDIT_LOGGER = "kc_orchestrator.core.observability.audit"


class TestMetricsCollector:
    def test_counters_totalled_per_label_set(self):
        metrics = MetricsCollector()
        metrics.counter("provider.failures", labels={"provider": "Codex"})
        metrics.counter("provider.failures", labels={"provider": "Codex"})
        metrics.counter("provider.failures", labels={"provider": "Vibe"})
        metrics.timer("execution.duration_ms", 12.5)

        assert metrics.get_count("provider.failures", {"provider": "Codex"}) == 2
        assert metrics.snapshot() == {
            "provider.failures{provider=Codex}": 2,
            "provider.failures{provider=Vibe}": 1,
        }

        metrics.reset()
        assert metrics.snapshot() == {}


class TestAuditLog:
    def test_unknown_event_rejected(self):
        with pytest.raises(ValueError):
            audit_log("provider_exploded")

    @pytest.mark.asyncio
    async def test_fallback_emits_attempt_failure_success(self, task, caplog):
        """Each provider attempt is audited in order."""
        caplog.set_level(logging.INFO, logger=AUDIT_LOGGER)
        registry = make_registry(
            FakeProvider("Codex", ProviderTimeoutError("slow", timeout=1.0)),
            FakeProvider("Claude"),
        )

        await FallbackExecutor(registry).execute(task)

        events = [
            (r.audit["event_type"], r.audit["details"]["provider"])
            for r in caplog.records
            if r.name == AUDIT_LOGGER
        ]
        assert events == [
            ("provider_attempt", "Codex"),
            ("provider_failure", "Codex"),
            ("provider_attempt", "Claude"),
            ("provider_success", "Claude"),
        ]
