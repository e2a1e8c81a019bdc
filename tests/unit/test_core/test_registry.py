"""Tests for provider name normalization, the registry and ProviderStats."""

import pytest

from kc_orchestrator.core.providers import (
    ProviderRegistry,
    ProviderStats,
    normalize_provider_name,
)
from tests.unit.test_core.fakes import FakeProvider, make_registry


class TestNormalizeProviderName:
    """Alias table and capitalization."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("codex", "Codex"),
            (" CODEX ", "Codex"),
            ("claude", "Claude"),
            ("vibe", "Vibe"),
            ("cursor-agent", "CursorAgent"),
            ("cursor", "CursorAgent"),
            ("CursorAgent", "CursorAgent"),
            ("gemini", "Gemini"),
            ("GEMINI", "Gemini"),
        ],
    )
    def test_normalization(self, raw, expected):
        assert normalize_provider_name(raw) == expected

    def test_blank_and_non_string_returned_unchanged(self):
        assert normalize_provider_name("") == ""
        assert normalize_provider_name(None) is None


class TestProviderRegistry:
    """Instantiation, lookup and runtime registration."""

    def test_aliases_resolve_to_one_instance(self):
        """Configured aliases and lookups share the same provider."""
        codex = FakeProvider("Codex")
        registry = make_registry(codex, order=["codex", "Codex", " CODEX "])

        assert registry.names() == ["Codex"]
        assert registry.get("CODEX") is codex
        assert "codex" in registry
        assert len(registry) == 1

    def test_unknown_provider_skipped(self, caplog):
        """Names with no factory are logged and skipped."""
        registry = make_registry(FakeProvider("Codex"), order=["Gemini", "Codex"])

        assert registry.names() == ["Codex"]
        assert registry.provider_order == ["Gemini", "Codex"]
        assert "Unknown provider" in caplog.text

    def test_failing_factory_skipped(self):
        def broken(*, timeout):
            raise RuntimeError("binary missing")

        registry = ProviderRegistry(
            ["Codex", "Claude"],
            factories={"Codex": broken, "Claude": lambda *, timeout: FakeProvider("Claude")},
        )

        assert registry.names() == ["Claude"]

    def test_factory_receives_timeout(self):
        seen = []

        def factory(*, timeout):
            seen.append(timeout)
            return FakeProvider("Codex", timeout=timeout)

        ProviderRegistry(["Codex"], factories={"codex": factory}, timeout=45.0)

        assert seen == [45.0]

    def test_register_appends_and_keeps_stats(self, clock):
        registry = make_registry(FakeProvider("Codex"))
        registry.get_stats("Codex").record_attempt(clock())

        assert registry.register("gemini", FakeProvider("Gemini")) == "Gemini"
        registry.register("codex", FakeProvider("Codex"))

        assert registry.names() == ["Codex", "Gemini"]
        assert registry.provider_order == ["Codex", "Gemini"]
        assert registry.get_stats("Codex").attempts == 1

    def test_get_stats_single_and_all(self):
        registry = make_registry(FakeProvider("Codex"), FakeProvider("Claude"))

        assert isinstance(registry.get_stats("codex"), ProviderStats)
        assert registry.get_stats("Gemini") is None
        assert set(registry.get_stats()) == {"Codex", "Claude"}

    def test_reset_stats(self, clock):
        registry = make_registry(FakeProvider("Codex"), FakeProvider("Claude"))
        for name in ("Codex", "Claude"):
            registry.get_stats(name).record_attempt(clock())

        registry.reset_stats("Codex")
        assert registry.get_stats("Codex").attempts == 0
        assert registry.get_stats("Claude").attempts == 1

        registry.reset_stats()
        assert registry.get_stats("Claude").attempts == 0


class TestProviderStats:
    """Counters, streak and serialization."""

    def test_counts_and_success_rate(self, clock):
        stats = ProviderStats()
        stats.record_attempt(clock())
        stats.record_success(clock())
        stats.record_attempt(clock())
        stats.record_failure(clock())

        assert stats.attempts == stats.successes + stats.failures == 2
        assert stats.success_rate == 0.5
        assert stats.last_used == clock()

    def test_no_attempts_rate_is_zero(self):
        assert ProviderStats().success_rate == 0.0

    def test_success_clears_streak(self, clock):
        stats = ProviderStats()
        stats.record_failure(clock())
        stats.record_failure(clock())
        assert stats.consecutive_failures == 2

        stats.record_success(clock())
        assert stats.consecutive_failures == 0
        assert stats.failures == 2

    def test_to_dict_and_reset(self, clock):
        stats = ProviderStats()
        stats.record_attempt(clock())
        stats.record_failure(clock())

        data = stats.to_dict()
        assert data["failures"] == 1
        assert data["last_failure"] == clock().isoformat()
        assert data["last_success"] is None

        stats.reset()
        assert stats.to_dict()["attempts"] == 0
        assert stats.last_failure is None
