"""Advisory backend contract.

The advisory backend is an LLM service asked which provider suits a
task. Only two calls are needed: a cheap availability probe and a single
provider-selection request returning free text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, runtime_checkable


@dataclass(frozen=True)
class AdvisoryResponse:
    """
    Raw response from the advisory backend.

    Attributes:
        text: Free-form response text
        model: Model identifier that produced the text
        duration: Total generation time in seconds, if reported
    """

    text: str
    model: str
    duration: Optional[float] = None


@runtime_checkable
class AdvisoryBackend(Protocol):
    """Service consulted for provider-selection advice."""

    async def is_available(self) -> bool: ...

    async def select_provider(
        self,
        task_description: str,
        candidate_providers: Sequence[str],
        temperature: float = 0.0,
    ) -> AdvisoryResponse: ...


__all__ = ["AdvisoryBackend", "AdvisoryResponse"]
