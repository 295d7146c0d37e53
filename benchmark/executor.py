"""Single (model, question) test execution."""

import asyncio
import logging
import time
from typing import Callable, Dict, Optional

import httpx

from core.config import GenerationConfig
from llm.base import GenerationRequest, InferenceClient, MalformedResponseError
from llm.ollama import OllamaClient

from .models import TestResult, tokens_per_second
from .questions import BenchmarkQuestion

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, float], InferenceClient]


class SingleTestExecutor:
    """Runs one generation call and folds every outcome into a TestResult."""

    def __init__(
        self,
        generation: Optional[GenerationConfig] = None,
        default_timeout: float = 60.0,
        client_factory: Optional[ClientFactory] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            generation: Fixed sampling parameters for every call
            default_timeout: Seconds allowed per call when none is given
            client_factory: Builds a client for an endpoint URL
            transport: Optional httpx transport for the default Ollama clients
        """
        self.generation = generation or GenerationConfig()
        self.default_timeout = default_timeout
        self._transport = transport
        self._client_factory = client_factory or self._ollama_client
        self._clients: Dict[str, InferenceClient] = {}

    def _ollama_client(self, endpoint_url: str, timeout: float) -> InferenceClient:
        return OllamaClient(endpoint_url, timeout=timeout, transport=self._transport)

    def client_for(self, endpoint_url: str) -> InferenceClient:
        client = self._clients.get(endpoint_url)
        if client is None:
            client = self._client_factory(endpoint_url, self.default_timeout)
            self._clients[endpoint_url] = client
        return client

    async def execute(
        self,
        model_id: str,
        question: BenchmarkQuestion,
        endpoint_url: str,
        timeout: Optional[float] = None,
    ) -> TestResult:
        """Issue the question to the model; never raises for call failures."""
        timeout = timeout or self.default_timeout
        start = time.perf_counter()

        def elapsed_ms() -> int:
            return max(0, int((time.perf_counter() - start) * 1000))

        def failure(message: str, is_timeout: bool = False) -> TestResult:
            logger.warning(f"{model_id} / {question.id} failed: {message}")
            return TestResult(
                success=False,
                response_time_ms=elapsed_ms(),
                error_message=message,
                is_timeout=is_timeout,
                service_url=endpoint_url,
            )

        request = GenerationRequest(
            model=model_id,
            prompt=question.prompt_text,
            temperature=self.generation.temperature,
            top_p=self.generation.top_p,
            max_tokens=self.generation.max_tokens,
        )

        try:
            client = self.client_for(endpoint_url)
            response = await asyncio.wait_for(client.generate(request, timeout=timeout), timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return failure(f"Timeout after {timeout:g}s", is_timeout=True)
        except httpx.ConnectError as e:
            return failure(f"Connection refused: {endpoint_url} ({e})" if str(e) else f"Connection refused: {endpoint_url}")
        except httpx.HTTPStatusError as e:
            return failure(f"HTTP {e.response.status_code}: {e.response.reason_phrase}")
        except MalformedResponseError as e:
            return failure(f"Invalid response: {e}")
        except Exception as e:
            return failure(str(e) or f"Unknown error ({e.__class__.__name__})")

        response_time_ms = elapsed_ms()
        tokens = response.eval_count if response.eval_count is not None else len(response.content)
        return TestResult(
            success=True,
            response_text=response.content,
            response_time_ms=response_time_ms,
            tokens_generated=tokens,
            tokens_per_second=tokens_per_second(tokens, response_time_ms),
            service_url=endpoint_url,
        )

    async def aclose(self) -> None:
        clients, self._clients = self._clients, {}
        for client in clients.values():
            await client.aclose()
