"""LLM client — the narrative collaborator behind generated room text.

The engine itself never calls a model. The narrative queue (and only it)
takes an LLM callable matching the protocol:

    async def __call__(self, stage: str, prompt: str) -> str: ...

`stage` names what the text is for ("room_event", "dialogue"). It is used
for logging and may be used for routing; the simplest implementation
ignores it.

Two implementations are provided:

    HttpLLM   — async HTTP client for KoboldCpp and OpenAI-compatible
                completion endpoints, built from the "llm" config section.
    EchoLLM   — returns the prompt unchanged. Lets the API run end to end
                without a model.

Tests drive the queue with a stub returning canned responses per stage.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol

import httpx

logger = logging.getLogger(__name__)


class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


ProviderFormat = Literal["koboldcpp", "openai"]


class HttpLLM:
    """Async HTTP client for text-completion backends.

    Supported formats:
      "koboldcpp"  — POST /api/v1/generate  {"prompt": ..., "max_length": ...}
                     Response: {"results": [{"text": "..."}]}
      "openai"     — POST /v1/completions   {"model": ..., "prompt": ..., "max_tokens": ...}
                     Response: {"choices": [{"text": "..."}]}

    Args:
        provider_url:    Base URL of the backend, e.g. "http://localhost:5001".
        api_key:         Bearer token, or empty string if not required.
        provider_format: Wire format. Defaults to "koboldcpp".
        model:           Model identifier, openai format only.
        timeout:         HTTP timeout in seconds.
        max_length:      Completion length cap sent with every request.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 60.0,
        max_length: int = 200,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout
        self._max_length = max_length

    @classmethod
    def from_config(cls, llm_config: dict[str, Any]) -> HttpLLM:
        """Build from the "llm" section of Storage.get_config()."""
        return cls(
            provider_url=llm_config["provider_url"],
            api_key=llm_config.get("api_key", ""),
            provider_format=llm_config.get("provider_format", "koboldcpp"),
            model=llm_config.get("model", ""),
            timeout=llm_config.get("timeout", 60.0),
            max_length=llm_config.get("max_length", 200),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, prompt: str) -> tuple[str, dict]:
        if self._format == "openai":
            body: dict = {"prompt": prompt, "max_tokens": self._max_length}
            if self._model:
                body["model"] = self._model
            return f"{self._base_url}/v1/completions", body
        return f"{self._base_url}/api/v1/generate", {
            "prompt": prompt,
            "max_length": self._max_length,
        }

    def _parse_response(self, data: dict) -> str:
        key = "choices" if self._format == "openai" else "results"
        items = data.get(key)
        if not items or "text" not in items[0]:
            raise LLMError(f"Unexpected response format from {self._format} backend")
        return items[0]["text"]

    async def __call__(self, stage: str, prompt: str) -> str:
        url, body = self._build_request(prompt)
        logger.debug("llm call stage=%s url=%s prompt_len=%d", stage, url, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(f"LLM backend returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("LLM backend returned a non-JSON body") from e

        text = self._parse_response(data)
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


class EchoLLM:
    """Returns the prompt as-is. No network calls."""

    async def __call__(self, stage: str, prompt: str) -> str:
        logger.debug("EchoLLM stage=%s prompt_len=%d", stage, len(prompt))
        return prompt


class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
