"""
Base provider contract for kc-orchestrator.

A provider wraps one external command-line AI tool behind a uniform
execute/health-check capability. The orchestration layer only ever talks
to providers through this contract, so adapters can be plain classes,
closures bound into an object, or test doubles.

Design principles:
- Structural typing (Protocol) instead of an inheritance hierarchy
- Typed errors (see kc_orchestrator.core.errors.provider) for failures
- Tasks are plain mappings; their on-disk format is owned elsewhere
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

Task = Mapping[str, Any]
"""A task as handed to providers (id, title, description, context, ...)."""


@dataclass
class ProviderResult:
    """
    Normalized result returned by a provider on success.

    Attributes:
        success: Whether the tool reported success
        output: Primary textual output of the tool
        raw: Provider-specific payload (exit code, stderr, parsed data...)
        provider: Name of the provider that produced the result
    """

    success: bool
    output: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)
    provider: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "output": self.output,
            "raw": self.raw,
            "provider": self.provider,
        }


@runtime_checkable
class Provider(Protocol):
    """Capability implemented by every provider adapter.

    Failures must surface as ``ProviderTimeoutError`` or
    ``ProviderExecutionError``; anything else is treated as an unknown
    adapter failure by the fallback executor.
    """

    name: str
    timeout: float

    async def execute(
        self, task: Task, context: Mapping[str, Any]
    ) -> ProviderResult: ...

    async def health_check(self) -> bool: ...


def task_id_of(task: Task) -> str:
    """Return a printable identifier for a task."""
    task_id = task.get("id") if isinstance(task, Mapping) else None
    return str(task_id) if task_id is not None else "unknown"


__all__ = ["Provider", "ProviderResult", "Task", "task_id_of"]
