"""LLM client abstraction for document summarization.

Supports multiple backends:
- OpenAI-compatible chat completions API (primary)
- Ollama (local deployment)
- Mock (testing)

Every client exposes a single ``summarize(prompt, config)`` call returning
the raw model output. Clients never retry; transport errors, non-2xx
statuses and empty content all surface as ``LLMError`` and retry policy
is left to the caller.

Example:
    client = create_llm_client(LLMConfig(model="gpt-4o-mini", api_key="..."))
    response = await client.summarize(prompt)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import structlog

from pricelist_ingestion.config import LLMBackendType, LLMSettings, llm_settings
from pricelist_ingestion.errors.exceptions import LLMError

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a data extraction assistant. Return ONLY valid JSON matching the provided schema."
)

# Models known to accept response_format={"type": "json_schema"}.
JSON_SCHEMA_MODELS = ("gpt-4o-mini", "gpt-4o-2024-08-06", "gpt-4o")


@dataclass
class LLMConfig:
    """Configuration for an LLM client."""
    backend: LLMBackendType = LLMBackendType.OPENAI
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    api_endpoint: str = "https://api.openai.com/v1/chat/completions"
    base_url: str = "http://localhost:11434"
    timeout: float = 120.0
    temperature: float = 0.2

    @classmethod
    def from_settings(cls, settings: Optional[LLMSettings] = None) -> "LLMConfig":
        settings = settings or llm_settings
        return cls(
            backend=settings.backend,
            model=settings.model,
            api_key=settings.api_key,
            api_endpoint=settings.api_endpoint,
            base_url=settings.ollama_url,
            timeout=settings.timeout,
            temperature=settings.temperature,
        )


@dataclass
class LLMResponse:
    """Response from LLM."""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    raw_response: Optional[Dict[str, Any]] = None

    @property
    def tokens_used(self) -> Optional[int]:
        """Total tokens used, when the backend reports it."""
        return self.usage.get("total_tokens")


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()
        self._log = logger.bind(
            component="LLMClient",
            backend=self.config.backend.value,
            model=self.config.model,
        )

    @abstractmethod
    async def summarize(self, prompt: str, config: Optional[LLMConfig] = None) -> LLMResponse:
        """Send one structured-extraction prompt.

        Args:
            prompt: User prompt describing the document and expected JSON
            config: Per-call override of the client configuration

        Returns:
            LLMResponse with the raw model output

        Raises:
            LLMError: On transport failure, non-2xx status or empty content
        """

    async def close(self) -> None:
        """Release network resources (no-op by default)."""


class _HTTPClientMixin:
    """Lazily created shared httpx.AsyncClient."""

    _client: Optional[httpx.AsyncClient] = None

    async def _get_client(self, timeout: float) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def _json_object(response: httpx.Response) -> Dict[str, Any]:
    """Decode a response body that must be a JSON object."""
    try:
        data = response.json()
    except ValueError as e:
        raise LLMError(f"LLM API returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMError(f"LLM API returned {type(data).__name__}, expected a JSON object")
    return data


def build_response_format(model: str) -> Dict[str, Any]:
    """JSON schema response format where supported, ``json_object`` otherwise."""
    if not any(name in (model or "") for name in JSON_SCHEMA_MODELS):
        return {"type": "json_object"}

    nullable_string = {"type": ["string", "null"]}
    return {
        "type": "json_schema",
        "json_schema": {
            "name": "facility_price_list_summary",
            "strict": True,
            "schema": {
                "type": "object",
                "additionalProperties": False,
                "required": ["facilityName", "currency", "effectiveDate", "items", "documentMetadata"],
                "properties": {
                    "facilityName": {"type": "string"},
                    "currency": nullable_string,
                    "effectiveDate": nullable_string,
                    "items": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "additionalProperties": False,
                            "required": ["description", "price", "unit", "tier", "category", "notes", "rawRow"],
                            "properties": {
                                "description": {"type": "string"},
                                "price": {"type": "number"},
                                "unit": nullable_string,
                                "tier": nullable_string,
                                "category": nullable_string,
                                "notes": nullable_string,
                                "rawRow": nullable_string,
                            },
                        },
                    },
                    "documentMetadata": {
                        "type": "object",
                        "additionalProperties": False,
                        "required": ["sourceFile", "extractedAt", "model", "tokensUsed", "confidence", "warnings"],
                        "properties": {
                            "sourceFile": {"type": "string"},
                            "extractedAt": {"type": "string"},
                            "model": {"type": "string"},
                            "tokensUsed": {"type": ["number", "null"]},
                            "confidence": {"type": ["number", "null"]},
                            "warnings": {"type": ["array", "null"], "items": {"type": "string"}},
                        },
                    },
                },
            },
        },
    }


class OpenAIChatClient(_HTTPClientMixin, LLMClient):
    """OpenAI-compatible chat completions client."""

    async def summarize(self, prompt: str, config: Optional[LLMConfig] = None) -> LLMResponse:
        cfg = config or self.config
        payload = {
            "model": cfg.model,
            "temperature": cfg.temperature,
            "response_format": build_response_format(cfg.model),
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {"Authorization": f"Bearer {cfg.api_key}"}

        client = await self._get_client(cfg.timeout)
        try:
            response = await client.post(cfg.api_endpoint, json=payload, headers=headers)
        except httpx.HTTPError as e:
            self._log.warning("openai_request_failed", error=str(e))
            raise LLMError(f"LLM request failed: {e}") from e

        if not response.is_success:
            self._log.warning("openai_bad_status", status=response.status_code)
            raise LLMError(
                f"LLM API error: {response.status_code} {response.reason_phrase}: {response.text[:500]}"
            )

        data = _json_object(response)
        choices = data.get("choices")
        choice = choices[0] if isinstance(choices, list) and choices else None
        message = choice.get("message") if isinstance(choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content:
            raise LLMError("LLM API returned empty response content")

        usage = data.get("usage")
        return LLMResponse(
            content=content,
            model=data.get("model", cfg.model),
            usage=usage if isinstance(usage, dict) else {},
            raw_response=data,
        )


class OllamaClient(_HTTPClientMixin, LLMClient):
    """Ollama-based LLM client (``/api/generate`` with ``format: json``)."""

    async def summarize(self, prompt: str, config: Optional[LLMConfig] = None) -> LLMResponse:
        cfg = config or self.config
        payload = {
            "model": cfg.model,
            "prompt": prompt,
            "system": SYSTEM_PROMPT,
            "stream": False,
            "format": "json",
            "options": {"temperature": cfg.temperature},
        }

        client = await self._get_client(cfg.timeout)
        try:
            response = await client.post(f"{cfg.base_url.rstrip('/')}/api/generate", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self._log.warning("ollama_bad_status", status=e.response.status_code)
            raise LLMError(f"Ollama API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            self._log.warning("ollama_request_failed", error=str(e))
            raise LLMError(f"Ollama request failed: {e}") from e

        data = _json_object(response)
        content = data.get("response")
        if not isinstance(content, str) or not content:
            raise LLMError("Ollama returned empty response content")

        prompt_tokens = data.get("prompt_eval_count") or 0
        completion_tokens = data.get("eval_count") or 0
        return LLMResponse(
            content=content,
            model=data.get("model", cfg.model),
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
            raw_response=data,
        )


class MockLLMClient(LLMClient):
    """Mock LLM client for testing.

    ``responses`` maps a prompt substring to the content returned when the
    prompt contains it; ``default_response`` is returned otherwise. Set
    ``error`` to make every call fail.
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        responses: Optional[Dict[str, str]] = None,
        default_response: str = "{}",
        error: Optional[Exception] = None,
    ):
        super().__init__(config or LLMConfig(backend=LLMBackendType.MOCK, model="mock"))
        self.responses = responses or {}
        self.default_response = default_response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def summarize(self, prompt: str, config: Optional[LLMConfig] = None) -> LLMResponse:
        self.calls.append({"prompt": prompt, "config": config})
        if self.error is not None:
            raise self.error

        for key, response in self.responses.items():
            if key.lower() in prompt.lower():
                return LLMResponse(content=response, model="mock", usage={"total_tokens": 100})

        return LLMResponse(content=self.default_response, model="mock", usage={"total_tokens": 50})


# Global client instance
_global_client: Optional[LLMClient] = None


def create_llm_client(config: LLMConfig) -> LLMClient:
    """Build a new client for the configured backend; the caller closes it."""
    if config.backend == LLMBackendType.OLLAMA:
        return OllamaClient(config)
    if config.backend == LLMBackendType.MOCK:
        return MockLLMClient(config)
    return OpenAIChatClient(config)


def get_llm_client(config: Optional[LLMConfig] = None) -> LLMClient:
    """Get or create the global LLM client.

    ``config`` only applies when the global client is first created; use
    ``create_llm_client`` for a client with its own configuration.

    Args:
        config: Optional configuration (settings are used if not provided)

    Returns:
        LLMClient instance
    """
    global _global_client

    if _global_client is None:
        _global_client = create_llm_client(config or LLMConfig.from_settings())

    return _global_client


async def reset_llm_client() -> None:
    """Reset the global LLM client (for testing)."""
    global _global_client

    if _global_client:
        await _global_client.close()
        _global_client = None
