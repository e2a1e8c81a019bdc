"""
Provider abstractions for kc-orchestrator.

Providers wrap external command-line AI tools behind a uniform
execute/health-check contract. The registry owns one instance and one
statistics record per configured provider.

Example usage:
    from kc_orchestrator.core.providers import (
        ProviderRegistry,
        default_provider_factories,
    )

    registry = ProviderRegistry(
        ["codex", "claude"], factories=default_provider_factories()
    )
    provider = registry.get("Codex")
"""

from kc_orchestrator.core.providers.base import (
    Provider,
    ProviderResult,
    Task,
    task_id_of,
)
from kc_orchestrator.core.providers.cli import (
    BUILTIN_PROVIDERS,
    CLIProvider,
    CLIProviderSpec,
    RunnerProtocol,
    build_task_prompt,
    default_provider_factories,
    default_runner,
)
from kc_orchestrator.core.providers.registry import (
    DEFAULT_PROVIDER_ORDER,
    PROVIDER_ALIASES,
    ProviderFactory,
    ProviderRegistry,
    normalize_provider_name,
)
from kc_orchestrator.core.providers.stats import ProviderStats, utc_now

__all__ = [
    # Contract
    "Provider",
    "ProviderResult",
    "Task",
    "task_id_of",
    # CLI adapter
    "BUILTIN_PROVIDERS",
    "CLIProvider",
    "CLIProviderSpec",
    "RunnerProtocol",
    "build_task_prompt",
    "default_provider_factories",
    "default_runner",
    # Registry
    "DEFAULT_PROVIDER_ORDER",
    "PROVIDER_ALIASES",
    "ProviderFactory",
    "ProviderRegistry",
    "normalize_provider_name",
    # Stats
    "ProviderStats",
    "utc_now",
]
