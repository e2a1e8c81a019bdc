"""Tests for the CLI provider adapter with an injected runner."""

import subprocess

import pytest

from kc_orchestrator.core.errors import (
    ProviderExecutionError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from kc_orchestrator.core.providers import (
    CLIProvider,
    ProviderRegistry,
    build_task_prompt,
    default_provider_factories,
)


class FakeRunner:
    """Runner double returning a canned CompletedProcess or raising."""

    def __init__(self, returncode=0, stdout="done\n", stderr="", error=None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.calls = []

    def __call__(self, command, *, timeout=None, env=None, input_data=None, cwd=None):
        self.calls.append(
            {"command": list(command), "timeout": timeout, "input": input_data, "cwd": cwd, "env": env}
        )
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(
            list(command), self.returncode, stdout=self.stdout, stderr=self.stderr
        )


class TestBuildTaskPrompt:
    def test_sections(self):
        prompt = build_task_prompt(
            {
                "id": "T4",
                "title": "Add cache",
                "description": "Cache advice per task",
                "acceptanceCriteria": ["expires after an hour"],
                "checkSteps": "pytest -q",
            },
            {"prompt_context": "repo uses httpx"},
        )

        assert prompt.startswith("Task T4: Add cache")
        assert "Description:\nCache advice per task" in prompt
        assert "Acceptance criteria:\n- expires after an hour" in prompt
        assert "Check steps:\n- pytest -q" in prompt
        assert prompt.endswith("Context:\nrepo uses httpx")

    def test_minimal_task(self):
        assert build_task_prompt({}, {}) == "Task unknown: Untitled"


class TestCLIProviderExecute:
    """Subprocess outcomes map onto provider errors."""

    @pytest.mark.asyncio
    async def test_success(self, task):
        runner = FakeRunner()
        provider = CLIProvider("Codex", "codex", args=["exec", "-"], timeout=30, runner=runner)

        result = await provider.execute(task, {"cwd": "/tmp/work"})

        assert result.success is True
        assert result.output == "done"
        assert result.provider == "Codex"
        assert result.raw["exit_code"] == 0
        call = runner.calls[0]
        assert call["command"] == ["codex", "exec", "-"]
        assert call["timeout"] == 30
        assert call["cwd"] == "/tmp/work"
        assert "Add retry logic" in call["input"]

    @pytest.mark.asyncio
    async def test_context_timeout_overrides_default(self, task):
        runner = FakeRunner()
        provider = CLIProvider("Codex", "codex", timeout=30, runner=runner)

        await provider.execute(task, {"timeout": 5})

        assert runner.calls[0]["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_execution_error(self, task):
        runner = FakeRunner(returncode=2, stdout="partial", stderr="syntax error")
        provider = CLIProvider("Claude", "claude", runner=runner)

        with pytest.raises(ProviderExecutionError) as exc_info:
            await provider.execute(task, {})

        error = exc_info.value
        assert error.exit_code == 2
        assert error.stdout == "partial"
        assert "syntax error" in str(error)
        assert error.provider == "Claude"

    @pytest.mark.asyncio
    async def test_exit_124_is_timeout(self, task):
        provider = CLIProvider("Vibe", "vibe", timeout=10, runner=FakeRunner(returncode=124))

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await provider.execute(task, {})

        assert exc_info.value.timeout == 10

    @pytest.mark.asyncio
    async def test_timeout_expired_is_timeout(self, task):
        runner = FakeRunner(error=subprocess.TimeoutExpired(["vibe"], 10))
        provider = CLIProvider("Vibe", "vibe", timeout=10, runner=runner)

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await provider.execute(task, {})

        assert exc_info.value.elapsed == 10.0

    @pytest.mark.asyncio
    async def test_missing_binary_is_unavailable(self, task):
        provider = CLIProvider("Codex", "codex", runner=FakeRunner(error=FileNotFoundError("codex")))

        with pytest.raises(ProviderUnavailableError):
            await provider.execute(task, {})


class TestCLIProviderHealth:
    @pytest.mark.asyncio
    async def test_healthy(self):
        runner = FakeRunner()

        assert await CLIProvider("Codex", "codex", runner=runner).health_check() is True
        assert runner.calls[0]["command"] == ["codex", "--version"]

    @pytest.mark.asyncio
    async def test_nonzero_exit_unhealthy(self):
        provider = CLIProvider("Codex", "codex", runner=FakeRunner(returncode=1))

        assert await provider.health_check() is False

    @pytest.mark.asyncio
    async def test_missing_binary_unhealthy(self):
        provider = CLIProvider("Codex", "codex", runner=FakeRunner(error=FileNotFoundError()))

        assert await provider.health_check() is False


class TestDefaultProviderFactories:
    """Built-in factories and per-provider overrides."""

    def test_builtin_providers(self):
        registry = ProviderRegistry(
            ["codex", "claude", "vibe", "cursor-agent"],
            factories=default_provider_factories(runner=FakeRunner()),
            timeout=60,
        )

        assert registry.names() == ["Codex", "Claude", "Vibe", "CursorAgent"]
        cursor = registry.get("CursorAgent")
        assert cursor.binary == "cursor-agent"
        assert cursor.timeout == 60

    def test_overrides(self):
        factories = default_provider_factories(
            {"codex": {"binary": "/opt/codex", "args": ["run"], "timeout": 15}},
            runner=FakeRunner(),
        )

        provider = factories["Codex"](timeout=60)

        assert provider.binary == "/opt/codex"
        assert provider.args == ["run"]
        assert provider.timeout == 15.0

    def test_binary_from_environment(self, monkeypatch):
        monkeypatch.setenv("CLAUDE_CLI_BINARY", "/usr/local/bin/claude-dev")

        provider = default_provider_factories()["Claude"](timeout=60)

        assert provider.binary == "/usr/local/bin/claude-dev"

    @pytest.mark.asyncio
    async def test_override_env_passed_to_runner(self, task):
        runner = FakeRunner()
        factories = default_provider_factories(
            {"Vibe": {"env": {"VIBE_MODE": "fast"}}}, runner=runner
        )

        await factories["Vibe"](timeout=60).execute(task, {})

        assert runner.calls[0]["env"]["VIBE_MODE"] == "fast"
