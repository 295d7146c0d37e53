"""Tests for the benchmark service: persistence, streaming and endpoint health checks."""

import httpx
import pytest

from benchmark.executor import SingleTestExecutor
from benchmark.service import BenchmarkService
from core.errors import InvalidRunRequestError, RunNotFoundError
from llm.base import InferenceClient

from conftest import ScriptedExecutor


@pytest.fixture
def service(settings, small_bank, ollama_executor):
    return BenchmarkService(settings, executor=ollama_executor, question_bank=small_bank)


class TestRunBenchmark:
    @pytest.mark.asyncio
    async def test_run_is_stored(self, service):
        result = await service.run_benchmark(["llama3.2"], ["q1", "q2"])

        assert result["summary"]["successful_tests"] == 2
        assert result["results"]["llama3.2"]["service_url"] == "http://localhost:11436"
        history = service.get_history()
        assert history["total"] == 1
        assert history["benchmarks"][0]["id"] == result["id"]
        assert service.get_run(result["id"])["questions_tested"] == 2
        await service.aclose()

    @pytest.mark.asyncio
    async def test_no_save(self, service):
        result = await service.run_benchmark(["llama3.2"], ["q1"], save=False)
        assert service.get_history()["total"] == 0
        with pytest.raises(RunNotFoundError):
            service.get_run(result["id"])

    @pytest.mark.asyncio
    async def test_service_urls_override(self, service):
        result = await service.run_benchmark(["aya"], ["q1"], service_urls={"aya": "http://gpu:11435"})
        assert result["results"]["aya"]["service_url"] == "http://gpu:11435"
        assert result["results"]["aya"]["questions"]["q1"]["service_url"] == "http://gpu:11435"

    @pytest.mark.asyncio
    async def test_invalid_request(self, service):
        with pytest.raises(InvalidRunRequestError):
            await service.run_benchmark([], ["q1"])
        assert service.get_history()["total"] == 0

    @pytest.mark.asyncio
    async def test_failed_calls_are_data(self, settings, small_bank):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        executor = SingleTestExecutor(transport=httpx.MockTransport(handler))
        service = BenchmarkService(settings, executor=executor, question_bank=small_bank)

        result = await service.run_benchmark(["llama3.2"], None)

        assert result["summary"]["failed_tests"] == 2
        assert result["results"]["llama3.2"]["success_rate"] == 0
        assert service.get_history()["total"] == 1


class TestStreamBenchmark:
    def test_invalid_request_raises_before_streaming(self, service):
        with pytest.raises(InvalidRunRequestError):
            service.stream_benchmark(["llama3.2"], [])

    @pytest.mark.asyncio
    async def test_stream_events_and_persistence(self, service):
        events = [e async for e in service.stream_benchmark(["m1", "m2"], ["q1", "q2"])]

        types = [e["type"] for e in events]
        assert types[0] == "start"
        assert types[-1] == "complete"
        completed = [e["completed"] for e in events if e.get("status") == "completed"]
        assert completed == [1, 2, 3, 4]

        run_id = events[-1]["result"]["id"]
        assert service.get_run(run_id)["models_tested"] == 2

    @pytest.mark.asyncio
    async def test_stream_uses_stream_timeout(self, settings, small_bank):
        seen = []

        class RecordingExecutor(ScriptedExecutor):
            async def execute(self, model_id, question, endpoint_url, timeout=None):
                seen.append(timeout)
                return await super().execute(model_id, question, endpoint_url, timeout)

        service = BenchmarkService(settings, executor=RecordingExecutor(), question_bank=small_bank)
        [e async for e in service.stream_benchmark(["m1"], ["q1"], save=False)]
        await service.run_benchmark(["m1"], ["q1"], save=False)

        assert seen == [30.0, 60.0]

    @pytest.mark.asyncio
    async def test_abandoned_stream_cancels_run(self, settings, small_bank):
        executor = ScriptedExecutor(delay=0.05)
        service = BenchmarkService(settings, executor=executor, question_bank=small_bank)

        events = service.stream_benchmark(["m1", "m2"], ["q1", "q2"])
        first = await events.__anext__()
        await events.aclose()

        assert first["type"] == "start"
        assert len(executor.calls) < 4
        assert service.get_history()["total"] == 0


class TestEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, service):
        status = await service.health()

        assert status["healthy"] is True
        assert set(status["services"]) == {"default", "medical", "translator"}
        default = status["services"]["default"]
        assert default["version"] == "0.5.7"
        assert default["models"] == {"total": 1, "available": True}
        assert default["base_url"] == "http://localhost:11436"

    @pytest.mark.asyncio
    async def test_health_unreachable(self, settings, small_bank):
        def handler(request):
            raise httpx.ConnectError("All connection attempts failed", request=request)

        executor = SingleTestExecutor(transport=httpx.MockTransport(handler))
        service = BenchmarkService(settings, executor=executor, question_bank=small_bank)

        status = await service.health()

        assert status["healthy"] is False
        assert all(s["error"] for s in status["services"].values())

    @pytest.mark.asyncio
    async def test_health_passes_configured_timeout(self, settings, small_bank):
        class StubClient(InferenceClient):
            async def generate(self, request, timeout=None):
                raise AssertionError("health must not generate")

            async def list_models(self):
                return []

            async def health_check(self, timeout=None):
                return {"healthy": True, "base_url": self.base_url, "timeout": timeout}

        settings.benchmark.health_timeout = 1.5
        executor = SingleTestExecutor(client_factory=lambda url, timeout: StubClient(url, timeout))
        service = BenchmarkService(settings, executor=executor, question_bank=small_bank)

        status = await service.health()

        assert status["healthy"] is True
        assert {s["timeout"] for s in status["services"].values()} == {1.5}

    @pytest.mark.asyncio
    async def test_list_models(self, service):
        models = await service.list_models()
        assert models["default"] == ["llama3.2:latest"]

    @pytest.mark.asyncio
    async def test_generate(self, service, mock_ollama):
        reply = await service.generate("meditron", "Bonjour ?", {"temperature": 0.1})

        assert reply["response"] == "Bonjour"
        assert reply["service_url"] == "http://localhost:11434"
        assert mock_ollama.requests[-1]["options"]["temperature"] == 0.1


class TestRatingsAndRanking:
    @pytest.mark.asyncio
    async def test_rate_and_rank(self, service):
        first = await service.run_benchmark(["llama3.2"], ["q1"])
        await service.run_benchmark(["aya"], ["q1"])

        service.rate(first["id"], "llama3.2", "q1", rating=5, comment="Parfait")

        ratings = service.get_ratings(first["id"])
        assert ratings["benchmark_id"] == first["id"]
        assert ratings["evaluations"]["llama3.2"]["q1"]["rating"] == 5

        ranking = service.ranking("user_rating")
        assert ranking["mode"] == "user_rating"
        assert [m["name"] for m in ranking["models"]] == ["llama3.2", "aya"]

    @pytest.mark.asyncio
    async def test_delete(self, service):
        result = await service.run_benchmark(["llama3.2"], ["q1"])
        await service.run_benchmark(["aya"], ["q1"])

        assert service.delete_run(result["id"]) is True
        assert service.get_history()["total"] == 1
        assert service.delete_all_runs() == 1
        assert service.get_history()["total"] == 0
