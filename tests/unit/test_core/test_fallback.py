"""Tests for the sequential fallback executor.

Tests cover:
- First success wins and later providers are never called
- Failure classification into timeout/execution/unknown log entries
- Stats bookkeeping around each attempt
- Unknown names in the effective order are skipped silently
- Exhausted chains report the last error
"""

import asyncio

import pytest

from kc_orchestrator.core.errors import (
    AllProvidersFailedError,
    ProviderExecutionError,
    ProviderTimeoutError,
)
from kc_orchestrator.core.orchestration import (
    ErrorCode,
    FailureType,
    FallbackExecutor,
)
from kc_orchestrator.core.providers.base import ProviderResult
from tests.unit.test_core.fakes import FakeProvider, make_registry


def _ok(output="ok"):
    return ProviderResult(success=True, output=output)


def _timeout(name):
    return ProviderTimeoutError(f"{name} timed out", provider=name, timeout=120.0)


class TestFirstSuccessWins:
    """The first provider to succeed ends the chain."""

    @pytest.mark.asyncio
    async def test_first_provider_success_has_empty_log(self, task):
        """A successful first provider produces no fallback entries."""
        codex = FakeProvider("Codex", _ok())
        claude = FakeProvider("Claude", _ok())
        executor = FallbackExecutor(make_registry(codex, claude))

        outcome = await executor.execute(task)

        assert outcome.success is True
        assert outcome.provider == "Codex"
        assert outcome.fallback_log == []
        assert claude.calls == []

    @pytest.mark.asyncio
    async def test_log_length_matches_failures_before_success(self, task):
        """When provider i succeeds, the log holds providers 0..i-1 in order."""
        for winner in range(3):
            providers = [
                FakeProvider(name, _timeout(name) if i < winner else _ok())
                for i, name in enumerate(["Codex", "Claude", "Vibe"])
            ]
            executor = FallbackExecutor(make_registry(*providers))

            outcome = await executor.execute(task)

            assert outcome.success is True
            assert outcome.provider == providers[winner].name
            assert [e.provider for e in outcome.fallback_log] == [
                p.name for p in providers[:winner]
            ]

    @pytest.mark.asyncio
    async def test_end_to_end_mixed_failures(self, task):
        """Timeout, then execution error, then success on the third provider."""
        codex = FakeProvider("Codex", _timeout("Codex"))
        claude = FakeProvider(
            "Claude",
            ProviderExecutionError(
                "bad input", provider="Claude", stdout="partial", stderr="boom", exit_code=2
            ),
        )
        vibe = FakeProvider("Vibe", _ok("ok"))
        executor = FallbackExecutor(make_registry(codex, claude, vibe))

        outcome = await executor.execute(task)

        assert outcome.success is True
        assert outcome.provider == "Vibe"
        assert outcome.result.output == "ok"
        assert [(e.provider, e.type) for e in outcome.fallback_log] == [
            ("Codex", FailureType.TIMEOUT),
            ("Claude", FailureType.EXECUTION),
        ]
        assert outcome.fallback_log[0].details["timeout"] == 120.0
        assert outcome.fallback_log[1].error == "bad input"
        assert outcome.fallback_log[1].details == {
            "stdout": "partial",
            "stderr": "boom",
            "exit_code": 2,
        }


class TestFailureHandling:
    """Failures are logged and never raised."""

    @pytest.mark.asyncio
    async def test_unknown_errors_are_classified_unknown(self, task):
        """Arbitrary exceptions become 'unknown' entries."""
        codex = FakeProvider("Codex", KeyError("missing"))
        claude = FakeProvider("Claude", _ok())
        executor = FallbackExecutor(make_registry(codex, claude))

        outcome = await executor.execute(task)

        assert outcome.success is True
        assert outcome.fallback_log[0].type == FailureType.UNKNOWN
        assert outcome.fallback_log[0].details["error_type"] == "KeyError"

    @pytest.mark.asyncio
    async def test_all_fail_reports_last_error(self, task):
        """Exhausting every provider returns the last error and full log."""
        codex = FakeProvider("Codex", _timeout("Codex"))
        claude = FakeProvider("Claude", RuntimeError("claude crashed"))
        executor = FallbackExecutor(make_registry(codex, claude))

        outcome = await executor.execute(task)

        assert outcome.success is False
        assert outcome.provider is None
        assert outcome.error == "claude crashed"
        assert outcome.error_code == ErrorCode.ALL_PROVIDERS_FAILED
        assert len(outcome.fallback_log) == 2

    @pytest.mark.asyncio
    async def test_unknown_names_are_skipped_without_log(self, task):
        """Unconfigured names in the order produce no log entry or stats."""
        codex = FakeProvider("Codex", _timeout("Codex"))
        registry = make_registry(codex)
        executor = FallbackExecutor(registry)

        outcome = await executor.execute(task, provider_order=["Gemini", "codex"])

        assert outcome.success is False
        assert [e.provider for e in outcome.fallback_log] == ["Codex"]
        assert registry.get_stats("Gemini") is None

    @pytest.mark.asyncio
    async def test_nothing_attempted_uses_default_message(self, task):
        """An order with no configured providers reports a generic failure."""
        executor = FallbackExecutor(make_registry(FakeProvider("Codex")))

        outcome = await executor.execute(task, provider_order=["Gemini"])

        assert outcome.success is False
        assert outcome.error == "All providers failed"
        assert outcome.fallback_log == []

    @pytest.mark.asyncio
    async def test_failed_outcome_converts_to_error(self, task):
        """A failed outcome can be raised as AllProvidersFailedError."""
        executor = FallbackExecutor(make_registry(FakeProvider("Codex", _timeout("Codex"))))
        outcome = await executor.execute(task)

        error = AllProvidersFailedError.from_outcome(outcome, task_id="T1")

        assert str(error) == "Codex timed out"
        assert error.task_id == "T1"
        assert error.fallback_log[0]["type"] == "timeout"


class TestStatsAndContext:
    """Stats and forwarded context around provider calls."""

    @pytest.mark.asyncio
    async def test_stats_recorded_per_attempt(self, task, clock):
        """Attempts equal successes plus failures after the call."""
        codex = FakeProvider("Codex", _timeout("Codex"))
        claude = FakeProvider("Claude", _ok())
        registry = make_registry(codex, claude)
        executor = FallbackExecutor(registry, clock=clock)

        await executor.execute(task)

        codex_stats = registry.get_stats("Codex")
        claude_stats = registry.get_stats("Claude")
        assert (codex_stats.attempts, codex_stats.successes, codex_stats.failures) == (1, 0, 1)
        assert (claude_stats.attempts, claude_stats.successes, claude_stats.failures) == (1, 1, 0)
        assert codex_stats.last_failure == clock.now
        assert claude_stats.last_success == clock.now
        assert codex_stats.consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_cancellation_completes_attempt_stats(self, task, clock):
        """A cancelled provider call propagates and is counted as a failure."""
        codex = FakeProvider("Codex", asyncio.CancelledError())
        claude = FakeProvider("Claude", _ok())
        registry = make_registry(codex, claude)

        with pytest.raises(asyncio.CancelledError):
            await FallbackExecutor(registry, clock=clock).execute(task)

        stats = registry.get_stats("Codex")
        assert stats.attempts == stats.successes + stats.failures == 1
        assert claude.calls == []

    @pytest.mark.asyncio
    async def test_max_retries_forwarded_in_context(self, task):
        """max_retries is passed through to providers, not looped on."""
        codex = FakeProvider("Codex", _ok())
        executor = FallbackExecutor(make_registry(codex))

        await executor.execute(task, {"cwd": "/repo"}, max_retries=5)

        assert len(codex.calls) == 1
        assert codex.calls[0]["context"] == {"cwd": "/repo", "max_retries": 5}

    @pytest.mark.asyncio
    async def test_outcome_serializes(self, task):
        """to_dict renders enums and nested results."""
        executor = FallbackExecutor(
            make_registry(FakeProvider("Codex", _timeout("Codex")), FakeProvider("Claude"))
        )

        data = (await executor.execute(task)).to_dict()

        assert data["provider"] == "Claude"
        assert data["result"]["output"] == "ok"
        assert data["fallback_log"][0]["type"] == "timeout"
        assert data["error_code"] is None
        assert data["execution_time_ms"] >= 0
