"""Shared fixtures: temporary storage, stub executors and a fake Ollama server."""

import asyncio
import json
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from benchmark.executor import SingleTestExecutor
from benchmark.models import TestResult, tokens_per_second
from benchmark.questions import BenchmarkQuestion, QuestionBank
from core.config import Settings


class ScriptedExecutor:
    """Executor stand-in returning canned results per (model, question)."""

    def __init__(self, script: Optional[Dict[Tuple[str, str], TestResult]] = None, delay: float = 0.0):
        self.script = script or {}
        self.delay = delay
        self.calls: List[Tuple[str, str, str]] = []

    async def execute(self, model_id, question, endpoint_url, timeout=None) -> TestResult:
        self.calls.append((model_id, question.id, endpoint_url))
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.script.get((model_id, question.id))
        if result is None:
            result = ok(100)
        return replace(result, service_url=endpoint_url)

    def client_for(self, endpoint_url):
        raise AssertionError("ScriptedExecutor does not talk to endpoints")

    async def aclose(self) -> None:
        return None


def ok(ms: int, tokens: int = 50) -> TestResult:
    return TestResult(
        success=True,
        response_text="Oui, je fonctionne correctement",
        response_time_ms=ms,
        tokens_generated=tokens,
        tokens_per_second=tokens_per_second(tokens, ms),
    )


def timed_out(ms: int = 30000, timeout: float = 30) -> TestResult:
    return TestResult(
        success=False,
        response_time_ms=ms,
        error_message=f"Timeout after {timeout:g}s",
        is_timeout=True,
    )


def ollama_handler(
    answers: Optional[Dict[str, str]] = None,
    fail_models: Tuple[str, ...] = (),
    tags: Tuple[str, ...] = ("llama3.2:latest",),
):
    """Build an httpx.MockTransport handler mimicking an Ollama server."""
    answers = answers or {}
    requests: List[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/generate":
            body = json.loads(request.content)
            requests.append(body)
            if body["model"] in fail_models:
                return httpx.Response(500, json={"error": "model crashed"})
            return httpx.Response(200, json={
                "model": body["model"],
                "response": answers.get(body["model"], "Bonjour"),
                "done": True,
                "eval_count": 42,
            })
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": t} for t in tags]})
        if request.url.path == "/api/version":
            return httpx.Response(200, json={"version": "0.5.7"})
        return httpx.Response(404)

    handler.requests = requests
    return handler


@pytest.fixture
def settings(tmp_path):
    return Settings(storage={"results_dir": str(tmp_path / "results")})


@pytest.fixture
def small_bank():
    return QuestionBank([
        BenchmarkQuestion(id="q1", text="Question un ?", category="basic"),
        BenchmarkQuestion(id="q2", text="Question deux ?", category="medical", difficulty="hard"),
    ])


@pytest.fixture
def mock_ollama():
    return ollama_handler()


@pytest.fixture
def ollama_executor(mock_ollama, settings):
    return SingleTestExecutor(
        generation=settings.benchmark.generation,
        transport=httpx.MockTransport(mock_ollama),
    )
