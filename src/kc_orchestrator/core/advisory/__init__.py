"""Advisory backends used for provider-selection advice."""

from kc_orchestrator.core.advisory.base import AdvisoryBackend, AdvisoryResponse
from kc_orchestrator.core.advisory.ollama import OllamaAdvisoryClient

__all__ = ["AdvisoryBackend", "AdvisoryResponse", "OllamaAdvisoryClient"]
