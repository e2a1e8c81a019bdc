"""Tests for the circuit breaker."""

import logging

import pytest

from kc_orchestrator.core.errors import ProviderTimeoutError
from kc_orchestrator.core.orchestration import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    ErrorCode,
    FallbackExecutor,
)
from tests.unit.test_core.fakes import FakeProvider, make_registry

AUDIT_LOGGER = "kc_orchestrator.core.observability.audit"


def _breaker(registry, clock):
    return CircuitBreaker(registry, FallbackExecutor(registry, clock=clock), clock=clock)


def _fail(registry, name, times, clock):
    stats = registry.get_stats(name)
    for _ in range(times):
        stats.record_attempt(clock())
        stats.record_failure(clock())


class TestCircuitState:
    """Derived circuit state and the lazy reset."""

    def test_closed_below_threshold(self, clock):
        """Fewer consecutive failures than the threshold keep the circuit closed."""
        registry = make_registry(FakeProvider("Codex"))
        _fail(registry, "Codex", 2, clock)

        assert _breaker(registry, clock).state("Codex") is CircuitState.CLOSED

    def test_open_at_threshold_within_window(self, clock):
        """Reaching the threshold opens the circuit inside the reset window."""
        registry = make_registry(FakeProvider("Codex"))
        _fail(registry, "Codex", 3, clock)
        clock.advance(299)

        assert _breaker(registry, clock).state("Codex") is CircuitState.OPEN

    def test_lazy_reset_after_timeout(self, clock):
        """After the reset timeout the streak is cleared without manual action."""
        registry = make_registry(FakeProvider("Codex"))
        _fail(registry, "Codex", 3, clock)
        clock.advance(300)

        breaker = _breaker(registry, clock)

        assert breaker.state("Codex") is CircuitState.CLOSED
        assert registry.get_stats("Codex").consecutive_failures == 0
        assert registry.get_stats("Codex").failures == 3

    def test_success_breaks_streak(self, clock):
        """A success between failures resets the consecutive count."""
        registry = make_registry(FakeProvider("Codex"))
        _fail(registry, "Codex", 2, clock)
        registry.get_stats("Codex").record_success(clock())
        _fail(registry, "Codex", 2, clock)

        assert _breaker(registry, clock).state("Codex") is CircuitState.CLOSED

    def test_healthy_provider_never_reset(self, clock, caplog):
        """A provider that has never failed stays closed without reset events."""
        caplog.set_level(logging.INFO, logger=AUDIT_LOGGER)
        registry = make_registry(FakeProvider("Codex"))

        state = _breaker(registry, clock).state("Codex", CircuitBreakerConfig(failure_threshold=0))

        assert state is CircuitState.CLOSED
        assert [r for r in caplog.records if r.name == AUDIT_LOGGER] == []

    @pytest.mark.parametrize(
        "config",
        [
            CircuitBreakerConfig(failure_threshold=0),
            CircuitBreakerConfig(reset_timeout=-1),
            CircuitBreakerConfig(max_retries=-1),
        ],
    )
    def test_invalid_config_rejected(self, clock, config):
        registry = make_registry(FakeProvider("Codex"))

        with pytest.raises(ValueError):
            _breaker(registry, clock).eligible_providers(config)

    def test_eligible_providers_in_registry_order(self, clock):
        """Open providers are excluded from the eligible list."""
        registry = make_registry(
            FakeProvider("Codex"), FakeProvider("Claude"), FakeProvider("Vibe")
        )
        _fail(registry, "Claude", 3, clock)

        assert _breaker(registry, clock).eligible_providers() == ["Codex", "Vibe"]


class TestCircuitBreakerExecution:
    """Execution through the breaker."""

    @pytest.mark.asyncio
    async def test_open_provider_never_called(self, task, clock):
        """An open provider is skipped by the fallback chain."""
        codex = FakeProvider("Codex")
        claude = FakeProvider("Claude")
        registry = make_registry(codex, claude)
        _fail(registry, "Codex", 3, clock)

        outcome = await _breaker(registry, clock).execute(task)

        assert outcome.success is True
        assert outcome.provider == "Claude"
        assert codex.calls == []
        assert registry.provider_order == ["Codex", "Claude"]

    @pytest.mark.asyncio
    async def test_all_open_fails_fast(self, task, clock):
        """With every circuit open, no provider is invoked."""
        codex = FakeProvider("Codex")
        registry = make_registry(codex)
        _fail(registry, "Codex", 3, clock)
        clock.advance(100)

        outcome = await _breaker(registry, clock).execute(task)

        assert outcome.success is False
        assert outcome.error_code == ErrorCode.CIRCUIT_OPEN
        assert outcome.error == "All providers in circuit breaker state"
        assert outcome.fallback_log == []
        assert codex.calls == []

    @pytest.mark.asyncio
    async def test_provider_eligible_again_after_timeout(self, task, clock):
        """A provider rejoins the chain once its cooldown has elapsed."""
        codex = FakeProvider("Codex")
        registry = make_registry(codex)
        _fail(registry, "Codex", 3, clock)
        breaker = _breaker(registry, clock)
        clock.advance(301)

        outcome = await breaker.execute(task)

        assert outcome.success is True
        assert outcome.provider == "Codex"

    @pytest.mark.asyncio
    async def test_failures_during_execution_open_circuit(self, task, clock):
        """Repeated timeouts through the breaker eventually open the circuit."""
        codex = FakeProvider("Codex", ProviderTimeoutError("slow", provider="Codex"))
        registry = make_registry(codex)
        breaker = _breaker(registry, clock)
        config = CircuitBreakerConfig(failure_threshold=2, reset_timeout=60)

        await breaker.execute(task, config=config)
        await breaker.execute(task, config=config)
        outcome = await breaker.execute(task, config=config)

        assert len(codex.calls) == 2
        assert outcome.error_code == ErrorCode.CIRCUIT_OPEN

    @pytest.mark.asyncio
    async def test_zero_threshold_rejected_before_execution(self, task, clock):
        """An invalid config raises instead of running providers."""
        codex = FakeProvider("Codex")
        registry = make_registry(codex)

        with pytest.raises(ValueError, match="failure_threshold"):
            await _breaker(registry, clock).execute(
                task, config=CircuitBreakerConfig(failure_threshold=0)
            )

        assert codex.calls == []

    @pytest.mark.asyncio
    async def test_max_retries_forwarded(self, task, clock):
        """The config's max_retries reaches the provider context."""
        codex = FakeProvider("Codex")
        registry = make_registry(codex)

        await _breaker(registry, clock).execute(task, config=CircuitBreakerConfig(max_retries=7))

        assert codex.calls[0]["context"]["max_retries"] == 7
