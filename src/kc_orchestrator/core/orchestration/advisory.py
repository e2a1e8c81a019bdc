"""LLM-advised provider selection.

An advisory backend is asked which provider suits a task. Its free-text
answer is parsed best-effort into a ProviderRecommendation and cached per
(task, candidates). The advice is only ever a hint: any failure, an
unparseable answer or a recommendation naming an unconfigured provider
falls back to the scored selector.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from kc_orchestrator.core.advisory.base import AdvisoryBackend
from kc_orchestrator.core.observability import audit_log, get_metrics
from kc_orchestrator.core.orchestration.cache import AdviceCache
from kc_orchestrator.core.orchestration.selection import ScoredSelector
from kc_orchestrator.core.providers.base import Task, task_id_of
from kc_orchestrator.core.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 70

_PROVIDER_RE = re.compile(r"Recommended\s+provider\W*:\W*([A-Za-z][\w-]*)", re.IGNORECASE)
_REASONING_RE = re.compile(
    r"Reasoning[^:]*:\s*(.*?)(?=\n\s*\n|\nAlternative|\Z)", re.IGNORECASE | re.DOTALL
)
_ALTERNATIVES_RE = re.compile(
    r"Alternative\s+options[^:]*:\s*(.*?)(?=\n\s*\n|\nSpecific|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_CONFIGURATION_RE = re.compile(
    r"Specific\s+configuration[^:]*:\s*(.*?)(?=\n\s*\n|\Z)", re.IGNORECASE | re.DOTALL
)
_CONFIDENCE_RE = re.compile(r"Confidence\s+score:\s*(\d+)\s*%", re.IGNORECASE)


@dataclass
class ProviderRecommendation:
    """
    Structured provider-selection advice.

    ``success=True`` with ``recommended_provider=None`` means the backend
    answered but no provider could be extracted from its text.

    Attributes:
        success: Whether advice was obtained
        recommended_provider: Provider named by the backend, as written
        reasoning: Explanation given by the backend
        alternatives: Providers suggested as fallbacks
        configuration: Configuration hints given by the backend
        confidence: Confidence score, 0-100
        model: Model that produced the advice
        duration: Generation time in seconds
        message: Reason advice is missing (when success is False)
        error: Underlying error message, if any
    """

    success: bool
    recommended_provider: Optional[str] = None
    reasoning: str = ""
    alternatives: List[str] = field(default_factory=list)
    configuration: str = ""
    confidence: int = DEFAULT_CONFIDENCE
    model: Optional[str] = None
    duration: Optional[float] = None
    message: Optional[str] = None
    error: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @classmethod
    def unavailable(cls, message: str, error: Optional[str] = None) -> "ProviderRecommendation":
        return cls(success=False, message=message, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "recommended_provider": self.recommended_provider,
            "reasoning": self.reasoning,
            "alternatives": list(self.alternatives),
            "configuration": self.configuration,
            "confidence": self.confidence,
            "model": self.model,
            "duration": self.duration,
            "message": self.message,
            "error": self.error,
            "timestamp": self.timestamp,
        }


def parse_recommendation(
    text: str,
    *,
    model: Optional[str] = None,
    duration: Optional[float] = None,
) -> ProviderRecommendation:
    """Extract a recommendation from free-form advisory text."""
    provider_match = _PROVIDER_RE.search(text)
    reasoning_match = _REASONING_RE.search(text)
    alternatives_match = _ALTERNATIVES_RE.search(text)
    configuration_match = _CONFIGURATION_RE.search(text)
    confidence_match = _CONFIDENCE_RE.search(text)

    alternatives: List[str] = []
    if alternatives_match:
        alternatives = [
            part.strip(" \t\n*-.")
            for part in alternatives_match.group(1).split(",")
            if part.strip(" \t\n*-.")
        ]

    confidence = DEFAULT_CONFIDENCE
    if confidence_match:
        confidence = max(0, min(100, int(confidence_match.group(1))))

    return ProviderRecommendation(
        success=True,
        recommended_provider=provider_match.group(1) if provider_match else None,
        reasoning=(
            reasoning_match.group(1).strip() if reasoning_match else "No reasoning provided"
        ),
        alternatives=alternatives,
        configuration=configuration_match.group(1).strip() if configuration_match else "",
        confidence=confidence,
        model=model,
        duration=duration,
    )


def describe_task(task: Task) -> str:
    """Natural-language description of a task for the advisory backend."""
    description = task.get("description") or task.get("title") or f"Task {task_id_of(task)}"
    parts = [str(description)]
    if task.get("context"):
        parts.append(f"Context: {task['context']}")
    requirements = task.get("requirements")
    if requirements:
        if isinstance(requirements, str):
            requirements = [requirements]
        parts.append("Requirements: " + ", ".join(str(r) for r in requirements))
    return "\n".join(parts)


class AdvisedSelector:
    """Provider selection guided by an advisory backend."""

    def __init__(
        self,
        registry: ProviderRegistry,
        backend: Optional[AdvisoryBackend],
        *,
        enabled: bool = True,
        cache: Optional[AdviceCache] = None,
        scored_selector: Optional[ScoredSelector] = None,
    ):
        self.registry = registry
        self.backend = backend
        self.enabled = enabled
        self.cache = cache if cache is not None else AdviceCache()
        self.scored_selector = scored_selector or ScoredSelector(registry)

    async def is_backend_available(self) -> bool:
        if self.backend is None:
            return False
        try:
            return bool(await self.backend.is_available())
        except Exception as exc:
            logger.warning("Advisory availability probe failed: %s", exc)
            return False

    async def recommend(
        self, task: Task, candidates: Sequence[str]
    ) -> ProviderRecommendation:
        """Ask the advisory backend which candidate suits the task.

        Never raises; failures are reported with ``success=False``.
        """
        if not self.enabled:
            return ProviderRecommendation.unavailable("AI provider selection is disabled")
        if not await self.is_backend_available():
            return ProviderRecommendation.unavailable(
                "Advisory backend not available for AI provider selection"
            )

        task_id = task_id_of(task)
        cached = self.cache.get(task_id, candidates)
        if cached is not None:
            logger.debug("Using cached provider advice for task %s", task_id)
            audit_log("advice_cache_hit", task_id=task_id)
            get_metrics().counter("advice.cache_hits")
            return cached

        audit_log("advice_requested", task_id=task_id, candidates=list(candidates))
        try:
            response = await self.backend.select_provider(
                describe_task(task), list(candidates), temperature=0.0
            )
            recommendation = parse_recommendation(
                response.text, model=response.model, duration=response.duration
            )
        except Exception as exc:
            logger.warning("AI provider selection failed for task %s: %s", task_id, exc)
            return ProviderRecommendation.unavailable(
                f"AI provider selection failed: {exc}", error=str(exc)
            )

        # Unparsed advice is not cached so the next call asks again.
        if recommendation.recommended_provider is None:
            logger.info("No provider could be parsed from advice for task %s", task_id)
            return recommendation

        self.cache.set(task_id, candidates, recommendation)
        logger.info(
            "Advisory backend recommends %s for task %s (confidence %d%%)",
            recommendation.recommended_provider,
            task_id,
            recommendation.confidence,
        )
        return recommendation

    async def best_provider(self, task: Task) -> Optional[str]:
        """Advised provider when it is configured, else the scored choice."""
        candidates = self.registry.names()
        if not candidates:
            return None

        if self.enabled:
            try:
                recommendation = await self.recommend(task, candidates)
                if recommendation.success and recommendation.recommended_provider:
                    name = self.registry.normalize(recommendation.recommended_provider)
                    if name in candidates:
                        return name
                    logger.info(
                        "Advised provider %s is not configured; using scored selection",
                        recommendation.recommended_provider,
                    )
            except Exception as exc:
                logger.warning(
                    "AI provider selection failed, falling back to scored selection: %s",
                    exc,
                )

        return self.scored_selector.best_provider()


__all__ = [
    "AdvisedSelector",
    "DEFAULT_CONFIDENCE",
    "ProviderRecommendation",
    "describe_task",
    "parse_recommendation",
]
