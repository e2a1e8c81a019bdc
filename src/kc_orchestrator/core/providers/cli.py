"""Generic CLI provider adapter.

Bridges an external command-line AI tool (codex, claude, vibe,
cursor-agent) to the Provider contract: builds a plain-text prompt from
the task, feeds it to the tool on stdin, and maps subprocess outcomes
onto the typed provider errors. Tool-specific prompt formats and output
parsers are intentionally not part of this adapter.
"""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from kc_orchestrator.core.errors.provider import (
    ProviderExecutionError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from kc_orchestrator.core.providers.base import ProviderResult, Task, task_id_of
from kc_orchestrator.core.providers.registry import normalize_provider_name

logger = logging.getLogger(__name__)

HEALTH_CHECK_TIMEOUT_SECONDS = 5
TIMEOUT_EXIT_CODE = 124  # exit status used by coreutils `timeout`


# ── Runner protocol ────────────────────────────────────────────────────────

class RunnerProtocol(Protocol):
    """Callable signature used for executing CLI commands."""

    def __call__(
        self,
        command: Sequence[str],
        *,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
        input_data: Optional[str] = None,
        cwd: Optional[str] = None,
    ) -> subprocess.CompletedProcess[str]:
        raise NotImplementedError


def default_runner(
    command: Sequence[str],
    *,
    timeout: Optional[float] = None,
    env: Optional[Dict[str, str]] = None,
    input_data: Optional[str] = None,
    cwd: Optional[str] = None,
) -> subprocess.CompletedProcess[str]:
    """Invoke a CLI binary via subprocess."""
    return subprocess.run(  # noqa: S603 - intentional CLI invocation
        list(command),
        capture_output=True,
        text=True,
        input=input_data,
        timeout=timeout,
        env=env,
        cwd=cwd,
        check=False,
    )


# ── Prompt construction ────────────────────────────────────────────────────

def _as_lines(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def build_task_prompt(task: Task, context: Mapping[str, Any]) -> str:
    """Render a task as a plain-text prompt."""
    sections = [f"Task {task_id_of(task)}: {task.get('title') or 'Untitled'}"]
    if task.get("description"):
        sections.append(f"Description:\n{task['description']}")
    criteria = _as_lines(task.get("acceptanceCriteria") or task.get("acceptance_criteria"))
    if criteria:
        sections.append("Acceptance criteria:\n" + "\n".join(f"- {c}" for c in criteria))
    steps = _as_lines(task.get("checkSteps") or task.get("check_steps"))
    if steps:
        sections.append("Check steps:\n" + "\n".join(f"- {s}" for s in steps))
    extra = context.get("prompt_context")
    if extra:
        sections.append(f"Context:\n{extra}")
    return "\n\n".join(sections)


# ── Provider definitions ───────────────────────────────────────────────────

@dataclass(frozen=True)
class CLIProviderSpec:
    """Static description of a CLI tool.

    Attributes:
        name: Canonical provider name
        binary: Default executable name
        args: Arguments placed after the binary
        binary_env: Environment variable that overrides the binary path
    """

    name: str
    binary: str
    args: Tuple[str, ...] = ()
    binary_env: Optional[str] = None


BUILTIN_PROVIDERS: Dict[str, CLIProviderSpec] = {
    "Codex": CLIProviderSpec("Codex", "codex", ("exec", "-"), "CODEX_CLI_BINARY"),
    "Claude": CLIProviderSpec("Claude", "claude", ("--print",), "CLAUDE_CLI_BINARY"),
    "Vibe": CLIProviderSpec("Vibe", "vibe", ("--prompt", "-"), "VIBE_CLI_BINARY"),
    "CursorAgent": CLIProviderSpec(
        "CursorAgent", "cursor-agent", ("--print",), "CURSOR_AGENT_CLI_BINARY"
    ),
}


class CLIProvider:
    """Provider backed by a subprocess invocation of a CLI tool."""

    def __init__(
        self,
        name: str,
        binary: str,
        *,
        args: Sequence[str] = (),
        timeout: float = 120.0,
        runner: Optional[RunnerProtocol] = None,
        env: Optional[Dict[str, str]] = None,
        prompt_builder: Optional[Callable[[Task, Mapping[str, Any]], str]] = None,
    ):
        self.name = name
        self.binary = binary
        self.args = list(args)
        self.timeout = timeout
        self._runner = runner or default_runner
        self._env = env
        self._prompt_builder = prompt_builder or build_task_prompt

    def _run(
        self,
        command: Sequence[str],
        *,
        timeout: float,
        input_data: Optional[str] = None,
        cwd: Optional[str] = None,
    ) -> subprocess.CompletedProcess[str]:
        try:
            return self._runner(
                command,
                timeout=timeout,
                env=self._env,
                input_data=input_data,
                cwd=cwd,
            )
        except FileNotFoundError as exc:
            raise ProviderUnavailableError(
                f"{self.name} CLI '{self.binary}' is not available on PATH.",
                provider=self.name,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ProviderTimeoutError(
                f"Provider {self.name} timed out after {timeout}s",
                provider=self.name,
                elapsed=float(exc.timeout) if exc.timeout else None,
                timeout=timeout,
            ) from exc

    async def execute(self, task: Task, context: Mapping[str, Any]) -> ProviderResult:
        prompt = self._prompt_builder(task, context)
        timeout = float(context.get("timeout") or self.timeout)
        command = [self.binary, *self.args]
        logger.debug(
            "Executing provider %s for task %s (%d prompt chars)",
            self.name,
            task_id_of(task),
            len(prompt),
        )
        completed = await asyncio.to_thread(
            self._run,
            command,
            timeout=timeout,
            input_data=prompt,
            cwd=context.get("cwd"),
        )

        stdout = completed.stdout or ""
        stderr = completed.stderr or ""
        if completed.returncode == TIMEOUT_EXIT_CODE:
            raise ProviderTimeoutError(
                f"Provider {self.name} timed out after {timeout}s",
                provider=self.name,
                timeout=timeout,
            )
        if completed.returncode != 0:
            message = f"Provider {self.name} exited with code {completed.returncode}"
            if stderr.strip():
                message += f": {stderr.strip()[:500]}"
            raise ProviderExecutionError(
                message,
                provider=self.name,
                stdout=stdout,
                stderr=stderr,
                exit_code=completed.returncode,
            )

        return ProviderResult(
            success=True,
            output=stdout.strip(),
            raw={"stdout": stdout, "stderr": stderr, "exit_code": completed.returncode},
            provider=self.name,
        )

    async def health_check(self) -> bool:
        try:
            completed = await asyncio.to_thread(
                self._run,
                [self.binary, "--version"],
                timeout=HEALTH_CHECK_TIMEOUT_SECONDS,
            )
        except (ProviderUnavailableError, ProviderTimeoutError, OSError) as exc:
            logger.warning("Health check failed for %s: %s", self.name, exc)
            return False
        return completed.returncode == 0


@dataclass
class CLIProviderOverrides:
    """Per-provider settings taken from configuration."""

    binary: Optional[str] = None
    args: Optional[List[str]] = None
    timeout: Optional[float] = None
    env: Dict[str, str] = field(default_factory=dict)


def create_cli_provider(
    spec: CLIProviderSpec,
    *,
    timeout: float,
    overrides: Optional[CLIProviderOverrides] = None,
    runner: Optional[RunnerProtocol] = None,
) -> CLIProvider:
    """Build a CLIProvider from a CLIProviderSpec and optional overrides."""
    overrides = overrides or CLIProviderOverrides()
    binary = overrides.binary or (
        os.environ.get(spec.binary_env) if spec.binary_env else None
    ) or spec.binary
    env = {**os.environ, **overrides.env} if overrides.env else None
    return CLIProvider(
        spec.name,
        binary,
        args=overrides.args if overrides.args is not None else spec.args,
        timeout=overrides.timeout or timeout,
        runner=runner,
        env=env,
    )


def default_provider_factories(
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    *,
    runner: Optional[RunnerProtocol] = None,
) -> Dict[str, Callable[..., CLIProvider]]:
    """Registry factories for the built-in CLI providers.

    Args:
        overrides: Provider name -> {"binary", "args", "timeout", "env"}
        runner: Optional runner shared by all providers (tests inject one)
    """
    normalized: Dict[str, CLIProviderOverrides] = {}
    for name, values in (overrides or {}).items():
        normalized[normalize_provider_name(name)] = CLIProviderOverrides(
            binary=values.get("binary"),
            args=list(values["args"]) if values.get("args") is not None else None,
            timeout=float(values["timeout"]) if values.get("timeout") else None,
            env={str(k): str(v) for k, v in (values.get("env") or {}).items()},
        )

    def _factory(spec: CLIProviderSpec) -> Callable[..., CLIProvider]:
        def build(*, timeout: float) -> CLIProvider:
            return create_cli_provider(
                spec, timeout=timeout, overrides=normalized.get(spec.name), runner=runner
            )

        return build

    return {name: _factory(spec) for name, spec in BUILTIN_PROVIDERS.items()}


__all__ = [
    "BUILTIN_PROVIDERS",
    "CLIProvider",
    "CLIProviderOverrides",
    "CLIProviderSpec",
    "RunnerProtocol",
    "build_task_prompt",
    "create_cli_provider",
    "default_provider_factories",
    "default_runner",
]
