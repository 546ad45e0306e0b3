"""Unit tests for LLM clients (HTTP calls served by httpx.MockTransport)."""
import json

import httpx
import pytest

from pricelist_ingestion.config import LLMBackendType, LLMSettings
from pricelist_ingestion.errors.exceptions import LLMError
from pricelist_ingestion.services.llm.client import (
    LLMConfig,
    MockLLMClient,
    OllamaClient,
    OpenAIChatClient,
    build_response_format,
    create_llm_client,
    get_llm_client,
    reset_llm_client,
)


def attach_transport(client, handler):
    """Serve the client's requests from ``handler`` instead of the network."""
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


def openai_client(handler, **config):
    return attach_transport(OpenAIChatClient(LLMConfig(api_key="sk-test", **config)), handler)


class TestBuildResponseFormat:

    def test_json_schema_for_supported_models(self):
        response_format = build_response_format("gpt-4o-mini")
        assert response_format["type"] == "json_schema"
        schema = response_format["json_schema"]["schema"]
        assert schema["required"] == ["facilityName", "currency", "effectiveDate", "items", "documentMetadata"]
        assert schema["properties"]["items"]["items"]["properties"]["price"] == {"type": "number"}

    @pytest.mark.parametrize("model", ["llama3", "gpt-3.5-turbo", ""])
    def test_json_object_otherwise(self, model):
        assert build_response_format(model) == {"type": "json_object"}


class TestOpenAIChatClient:

    @pytest.mark.asyncio
    async def test_successful_completion(self):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            captured["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={
                "model": "gpt-4o-mini-2024-07-18",
                "choices": [{"message": {"content": '{"items": []}'}}],
                "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
            })

        client = openai_client(handler)
        response = await client.summarize("extract prices")
        await client.close()

        assert response.content == '{"items": []}'
        assert response.model == "gpt-4o-mini-2024-07-18"
        assert response.tokens_used == 15
        assert captured["auth"] == "Bearer sk-test"
        assert captured["body"]["messages"][1] == {"role": "user", "content": "extract prices"}
        assert captured["body"]["response_format"]["type"] == "json_schema"

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self):
        client = openai_client(lambda request: httpx.Response(429, text="rate limited"))
        with pytest.raises(LLMError) as exc_info:
            await client.summarize("extract prices")
        assert "429" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"choices": []},
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{"message": {}}]},
        {},
    ])
    async def test_empty_content_raises(self, body):
        client = openai_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(LLMError):
            await client.summarize("extract prices")

    @pytest.mark.asyncio
    async def test_invalid_json_body_raises(self):
        client = openai_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(LLMError):
            await client.summarize("extract prices")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        ["not", "an", "object"],
        {"choices": ["text"]},
        {"choices": {"message": {"content": "{}"}}},
        {"choices": [{"message": "{}"}]},
    ])
    async def test_unexpected_body_shape_raises(self, body):
        client = openai_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(LLMError):
            await client.summarize("extract prices")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = openai_client(handler)
        with pytest.raises(LLMError):
            await client.summarize("extract prices")

    @pytest.mark.asyncio
    async def test_per_call_config_override(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "{}"}}]})

        client = openai_client(handler)
        override = LLMConfig(model="llama3", api_key="other", api_endpoint="https://llm.internal/v1/chat/completions")
        response = await client.summarize("extract prices", override)

        assert captured["url"] == "https://llm.internal/v1/chat/completions"
        assert captured["body"]["response_format"] == {"type": "json_object"}
        assert response.model == "llama3"
        assert response.tokens_used is None


class TestOllamaClient:

    @pytest.mark.asyncio
    async def test_generate(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": '{"items": []}', "prompt_eval_count": 7, "eval_count": 3})

        config = LLMConfig(backend=LLMBackendType.OLLAMA, model="llama3", base_url="http://ollama:11434/")
        client = attach_transport(OllamaClient(config), handler)
        response = await client.summarize("extract prices")

        assert captured["url"] == "http://ollama:11434/api/generate"
        assert captured["body"]["format"] == "json"
        assert captured["body"]["stream"] is False
        assert response.content == '{"items": []}'
        assert response.tokens_used == 10

    @pytest.mark.asyncio
    async def test_bad_status_raises(self):
        config = LLMConfig(backend=LLMBackendType.OLLAMA, model="llama3")
        client = attach_transport(OllamaClient(config), lambda request: httpx.Response(500))
        with pytest.raises(LLMError):
            await client.summarize("extract prices")

    @pytest.mark.asyncio
    async def test_empty_response_raises(self):
        config = LLMConfig(backend=LLMBackendType.OLLAMA, model="llama3")
        client = attach_transport(OllamaClient(config), lambda request: httpx.Response(200, json={"response": ""}))
        with pytest.raises(LLMError):
            await client.summarize("extract prices")

    @pytest.mark.asyncio
    async def test_non_object_body_raises(self):
        config = LLMConfig(backend=LLMBackendType.OLLAMA, model="llama3")
        client = attach_transport(OllamaClient(config), lambda request: httpx.Response(200, json=[1, 2]))
        with pytest.raises(LLMError):
            await client.summarize("extract prices")


class TestMockLLMClient:

    @pytest.mark.asyncio
    async def test_keyed_and_default_responses(self):
        client = MockLLMClient(responses={"randle": '{"facilityName": "Randle"}'}, default_response="{}")
        keyed = await client.summarize("Document: RANDLE price list")
        default = await client.summarize("Document: other")
        assert keyed.content == '{"facilityName": "Randle"}'
        assert default.content == "{}"
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_configured_error(self):
        client = MockLLMClient(error=LLMError("boom"))
        with pytest.raises(LLMError):
            await client.summarize("anything")
        assert len(client.calls) == 1


class TestClientFactory:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("backend,expected", [
        (LLMBackendType.OPENAI, OpenAIChatClient),
        (LLMBackendType.OLLAMA, OllamaClient),
        (LLMBackendType.MOCK, MockLLMClient),
    ])
    async def test_backend_selection(self, backend, expected):
        assert isinstance(create_llm_client(LLMConfig(backend=backend)), expected)
        try:
            assert isinstance(get_llm_client(LLMConfig(backend=backend)), expected)
        finally:
            await reset_llm_client()

    @pytest.mark.asyncio
    async def test_global_client_is_reused(self):
        try:
            first = get_llm_client(LLMConfig(backend=LLMBackendType.MOCK))
            assert get_llm_client(LLMConfig(backend=LLMBackendType.OLLAMA)) is first
            assert get_llm_client() is first
        finally:
            await reset_llm_client()

    def test_create_returns_independent_clients(self):
        config = LLMConfig(backend=LLMBackendType.OLLAMA)
        assert create_llm_client(config) is not create_llm_client(config)

    def test_config_from_settings(self):
        settings = LLMSettings(backend="ollama", model="llama3", ollama_url="http://ollama:11434", timeout=30)
        config = LLMConfig.from_settings(settings)
        assert config.backend is LLMBackendType.OLLAMA
        assert config.base_url == "http://ollama:11434"
        assert config.timeout == 30
