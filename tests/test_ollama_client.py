"""Tests for the Ollama HTTP client."""

from unittest.mock import Mock, patch

import httpx
import pytest

from llm.base import GenerationRequest, MalformedResponseError
from llm.ollama import OllamaClient

from conftest import ollama_handler


@pytest.fixture
def sample_request():
    return GenerationRequest(model="llama3.2", prompt="Bonjour ?", temperature=0.2, max_tokens=64)


def client_for(handler):
    return OllamaClient("http://localhost:11436/", transport=httpx.MockTransport(handler))


class TestOllamaClient:
    def test_base_url_normalized(self):
        assert client_for(ollama_handler()).base_url == "http://localhost:11436"

    def test_build_payload(self, sample_request):
        payload = OllamaClient.build_payload(sample_request)
        assert payload == {
            "model": "llama3.2",
            "prompt": "Bonjour ?",
            "stream": False,
            "options": {"temperature": 0.2, "top_p": 0.9, "num_predict": 64},
        }

    def test_build_payload_with_stop(self):
        request = GenerationRequest(model="m", prompt="p", stop_sequences=["\n\n"])
        assert OllamaClient.build_payload(request)["options"]["stop"] == ["\n\n"]

    @pytest.mark.asyncio
    async def test_generate(self, sample_request):
        async with client_for(ollama_handler(answers={"llama3.2": "Salut"})) as client:
            response = await client.generate(sample_request)

        assert response.content == "Salut"
        assert response.model == "llama3.2"
        assert response.eval_count == 42
        assert response.metadata["done"] is True

    @pytest.mark.asyncio
    @patch('httpx.AsyncClient.post')
    async def test_generate_message_fallback(self, mock_post, sample_request):
        mock_response = Mock()
        mock_response.json.return_value = {"message": "Réponse", "eval_count": -1}
        mock_response.raise_for_status = Mock()
        mock_post.return_value = mock_response

        client = OllamaClient()
        response = await client.generate(sample_request)

        assert response.content == "Réponse"
        assert response.eval_count is None
        assert mock_post.call_args.args[0] == "/api/generate"

    @pytest.mark.asyncio
    async def test_generate_http_error(self, sample_request):
        client = client_for(ollama_handler(fail_models=("llama3.2",)))
        with pytest.raises(httpx.HTTPStatusError):
            await client.generate(sample_request)

    @pytest.mark.asyncio
    async def test_generate_non_object_body(self, sample_request):
        client = client_for(lambda request: httpx.Response(200, json=["not", "an", "object"]))
        with pytest.raises(MalformedResponseError):
            await client.generate(sample_request)

    @pytest.mark.asyncio
    async def test_list_models(self):
        client = client_for(ollama_handler(tags=("llama3.2:latest", "aya:8b")))
        assert await client.list_models() == ["llama3.2:latest", "aya:8b"]

    @pytest.mark.asyncio
    async def test_health_check(self):
        status = await client_for(ollama_handler()).health_check(timeout=5)
        assert status["healthy"] is True
        assert status["version"] == "0.5.7"
        assert status["response_time_ms"] >= 0

    @pytest.mark.asyncio
    async def test_health_check_bad_status(self):
        status = await client_for(lambda request: httpx.Response(503)).health_check(timeout=5)
        assert status["healthy"] is False
        assert status["error"] == "HTTP 503: Service Unavailable"

    @pytest.mark.asyncio
    async def test_health_check_timeout(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        status = await client_for(handler).health_check(timeout=5)
        assert status["healthy"] is False
        assert status["error"] == "Timeout (>5s)"
