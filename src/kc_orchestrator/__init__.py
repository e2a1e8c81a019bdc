"""kc-orchestrator: provider orchestration and resilience for CLI AI tools."""

__version__ = "0.1.0"
