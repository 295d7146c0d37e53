"""Ollama HTTP client."""

import time
import httpx
from typing import Dict, Any, List, Optional
from .base import InferenceClient, GenerationRequest, GenerationResponse, MalformedResponseError
import logging

logger = logging.getLogger(__name__)


class OllamaClient(InferenceClient):
    """Client for one Ollama-compatible endpoint."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, timeout)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        return self._client

    @staticmethod
    def build_payload(request: GenerationRequest) -> Dict[str, Any]:
        payload = {
            "model": request.model,
            "prompt": request.prompt,
            "stream": False,
            "options": {
                "temperature": request.temperature,
                "top_p": request.top_p,
                "num_predict": request.max_tokens,
            },
        }
        if request.stop_sequences:
            payload["options"]["stop"] = request.stop_sequences
        return payload

    async def generate(self, request: GenerationRequest, timeout: Optional[float] = None) -> GenerationResponse:
        """Generate a completion with ``/api/generate``."""
        response = await self.client.post(
            "/api/generate",
            json=self.build_payload(request),
            timeout=timeout if timeout is not None else self.timeout,
        )
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"body is not JSON ({e})") from e
        if not isinstance(data, dict):
            raise MalformedResponseError("body is not a JSON object")

        content = data.get("response")
        if content is None:
            content = data.get("message") or ""
        if not isinstance(content, str):
            raise MalformedResponseError("'response' is not a string")

        eval_count = data.get("eval_count")
        return GenerationResponse(
            content=content,
            model=data.get("model", request.model),
            eval_count=eval_count if isinstance(eval_count, int) and eval_count >= 0 else None,
            metadata={
                "done": data.get("done", False),
                "total_duration": data.get("total_duration"),
                "load_duration": data.get("load_duration"),
                "prompt_eval_count": data.get("prompt_eval_count"),
                "eval_duration": data.get("eval_duration"),
            },
        )

    async def list_models(self) -> List[str]:
        response = await self.client.get("/api/tags")
        response.raise_for_status()
        models = response.json().get("models", [])
        return [model.get("name", "") for model in models if model.get("name")]

    async def health_check(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Check if the Ollama server answers and count its models."""
        start = time.perf_counter()
        status: Dict[str, Any] = {"base_url": self.base_url, "healthy": False}
        try:
            response = await self.client.get("/api/version", timeout=timeout)
            status["response_time_ms"] = int((time.perf_counter() - start) * 1000)
            if response.status_code != 200:
                status["error"] = f"HTTP {response.status_code}: {response.reason_phrase}"
                return status
            status["healthy"] = True
            status["version"] = response.json().get("version")
        except httpx.TimeoutException:
            status["response_time_ms"] = int((time.perf_counter() - start) * 1000)
            status["error"] = f"Timeout (>{timeout or self.timeout:g}s)"
            return status
        except Exception as e:
            status["response_time_ms"] = int((time.perf_counter() - start) * 1000)
            status["error"] = str(e) or e.__class__.__name__
            logger.debug(f"Ollama health check failed for {self.base_url}: {e}")
            return status

        try:
            models = await self.list_models()
            status["models"] = {"total": len(models), "available": True}
        except Exception as e:
            logger.debug(f"Could not list models on {self.base_url}: {e}")
            status["models"] = {"total": 0, "available": False}
        return status

    async def aclose(self) -> None:
        await self._client.aclose()
