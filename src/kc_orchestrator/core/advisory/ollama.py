"""Ollama advisory client.

Talks to a local Ollama server over its HTTP API to obtain
provider-selection advice.

API reference:
https://github.com/ollama/ollama/blob/main/docs/api.md

Example usage:
    client = OllamaAdvisoryClient(model="llama3")
    if await client.is_available():
        response = await client.select_provider(
            "Refactor the config loader", ["Codex", "Claude"]
        )
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from kc_orchestrator.core.advisory.base import AdvisoryResponse
from kc_orchestrator.core.errors.advisory import (
    AdvisoryRequestError,
    AdvisoryResponseError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama3"
DEFAULT_TIMEOUT = 30.0
HEALTH_CHECK_TIMEOUT = 5.0

TAGS_ENDPOINT = "/api/tags"
GENERATE_ENDPOINT = "/api/generate"

SELECTION_PROMPT = """Based on the following task description, select the most appropriate provider from the available options:

Task Description:
{task_description}

Available Providers:
{providers}

Please answer using these labels:
Recommended provider: <one provider name from the list>
Reasoning: <why this provider fits the task>
Alternative options: <comma-separated providers to try if it fails>
Specific configuration: <any configuration recommendations>
Confidence score: <0-100>%

Provider Selection:"""


def _nanos_to_seconds(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value / 1_000_000_000
    return None


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.reason_phrase


class OllamaAdvisoryClient:
    """Advisory backend backed by an Ollama server."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self.model = model
        self._timeout = timeout
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=self._transport,
        )

    async def is_available(self) -> bool:
        """Probe the server with a lightweight model listing."""
        try:
            async with self._client(HEALTH_CHECK_TIMEOUT) as client:
                response = await client.get(TAGS_ENDPOINT)
        except httpx.HTTPError as exc:
            logger.info("Ollama unavailable at %s: %s", self._base_url, exc)
            return False
        if response.status_code >= 400:
            logger.info("Ollama health check returned HTTP %d", response.status_code)
            return False
        return True

    async def list_models(self) -> List[str]:
        """Names of the models installed on the server (empty on error)."""
        try:
            async with self._client(self._timeout) as client:
                response = await client.get(TAGS_ENDPOINT)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to list Ollama models: %s", exc)
            return []
        models = data.get("models") if isinstance(data, dict) else None
        return [m["name"] for m in models or [] if isinstance(m, dict) and m.get("name")]

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.0,
        model: Optional[str] = None,
    ) -> AdvisoryResponse:
        """Run a single non-streaming completion.

        Raises:
            AdvisoryRequestError: Empty prompt or the server could not be reached
            AdvisoryResponseError: Error status or a payload without a response
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise AdvisoryRequestError(
                "Prompt must be a non-empty string", operation="generate"
            )

        model = model or self.model
        payload: Dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature},
        }
        logger.debug("Requesting Ollama completion (model=%s, %d chars)", model, len(prompt))

        try:
            async with self._client(self._timeout) as client:
                response = await client.post(GENERATE_ENDPOINT, json=payload)
        except httpx.HTTPError as exc:
            raise AdvisoryRequestError(
                f"Ollama request failed: {exc}", operation="generate"
            ) from exc

        if response.status_code >= 400:
            raise AdvisoryResponseError(
                f"Ollama API error {response.status_code}: {_error_message(response)}",
                operation="generate",
                status_code=response.status_code,
                response_data=response.text,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise AdvisoryResponseError(
                "Invalid JSON from Ollama API",
                operation="generate",
                status_code=response.status_code,
                response_data=response.text,
            ) from exc

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text:
            raise AdvisoryResponseError(
                "Invalid response from Ollama API",
                operation="generate",
                status_code=response.status_code,
                response_data=data,
            )

        return AdvisoryResponse(
            text=text,
            model=str(data.get("model") or model),
            duration=_nanos_to_seconds(data.get("total_duration")),
        )

    async def select_provider(
        self,
        task_description: str,
        candidate_providers: Sequence[str],
        temperature: float = 0.0,
    ) -> AdvisoryResponse:
        """Ask the model which of the candidate providers fits the task."""
        if not isinstance(task_description, str) or not task_description.strip():
            raise AdvisoryRequestError(
                "Task description must be a non-empty string",
                operation="select_provider",
            )
        if not candidate_providers:
            raise AdvisoryRequestError(
                "Candidate providers must be a non-empty list",
                operation="select_provider",
            )

        prompt = SELECTION_PROMPT.format(
            task_description=task_description,
            providers=", ".join(candidate_providers),
        )
        return await self.generate(prompt, temperature=temperature)


__all__ = ["OllamaAdvisoryClient", "SELECTION_PROMPT"]
