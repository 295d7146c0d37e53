"""Benchmark engine exposed as an async service for API and CLI consumers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence

from core.config import Settings, load_settings
from core.errors import BenchmarkError
from llm.base import GenerationRequest
from storage.database import Database
from storage.repository import BenchmarkRepository

from .events import Event, EventSink, QueueSink
from .executor import SingleTestExecutor
from .orchestrator import BenchmarkOrchestrator, RunPlan
from .questions import QuestionBank
from .ranking import compute_model_stats, rank_models
from .resolver import EndpointResolver

logger = logging.getLogger(__name__)


class BenchmarkService:
    """Wires question bank, resolver, executor and storage together."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        repository: Optional[BenchmarkRepository] = None,
        executor: Optional[SingleTestExecutor] = None,
        question_bank: Optional[QuestionBank] = None,
        resolver: Optional[EndpointResolver] = None,
    ):
        self.settings = settings or load_settings()
        bench = self.settings.benchmark

        if question_bank is None:
            question_bank = (
                QuestionBank.from_file(bench.questions_file) if bench.questions_file else QuestionBank()
            )
        self.question_bank = question_bank
        self.resolver = resolver or EndpointResolver.from_config(self.settings.endpoints)
        self.executor = executor or SingleTestExecutor(
            generation=bench.generation,
            default_timeout=bench.batch_timeout,
        )
        self.repository = repository or BenchmarkRepository(
            Database(self.settings.storage.results_dir),
            max_history=self.settings.storage.max_history,
        )
        self.orchestrator = BenchmarkOrchestrator(self.question_bank, self.resolver, self.executor)

    # ── Runs ──────────────────────────────────────────────────────────

    async def run_benchmark(
        self,
        models: Optional[Sequence[str]],
        question_ids: Optional[Sequence[str]] = None,
        service_urls: Optional[Mapping[str, str]] = None,
        save: bool = True,
        sink: Optional[EventSink] = None,
    ) -> Dict[str, Any]:
        """Run the whole matrix and return the stored run document."""
        run = await self.orchestrator.run(
            models,
            question_ids,
            sink=sink,
            timeout=self.settings.benchmark.batch_timeout,
            overrides=service_urls,
        )
        result = run.to_dict()
        if save:
            self.repository.save_run(result)
        return result

    def stream_benchmark(
        self,
        models: Optional[Sequence[str]],
        question_ids: Optional[Sequence[str]] = None,
        service_urls: Optional[Mapping[str, str]] = None,
        save: bool = True,
    ) -> AsyncIterator[Event]:
        """Validate now, then return an iterator over the run's events.

        Raises ``InvalidRunRequestError`` before anything is streamed. Stopping
        the iteration early cancels the run.
        """
        plan = self.orchestrator.plan(models, question_ids)
        return self._stream(plan, service_urls, save)

    async def _stream(
        self,
        plan: RunPlan,
        service_urls: Optional[Mapping[str, str]],
        save: bool,
    ) -> AsyncIterator[Event]:
        sink = QueueSink()

        async def produce() -> None:
            try:
                run = await self.orchestrator.execute(
                    plan,
                    sink=sink,
                    timeout=self.settings.benchmark.stream_timeout,
                    overrides=service_urls,
                )
                if save and not sink.closed:
                    self.repository.save_run(run.to_dict())
            except BenchmarkError:
                pass  # already reported as an error event
            except Exception as e:
                logger.error(f"Could not store streamed benchmark: {e}")
                await sink.emit({"type": "error", "error": f"Could not store benchmark: {e}"})
            finally:
                await sink.finish()

        task = asyncio.create_task(produce())
        drained = False
        try:
            async for event in sink:
                yield event
            drained = True
        finally:
            if drained:
                await task
            else:
                await sink.close()
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    # ── Catalogue & endpoints ─────────────────────────────────────────

    def list_questions(self) -> Dict[str, Any]:
        return self.question_bank.describe()

    async def health(self) -> Dict[str, Any]:
        """Probe every configured endpoint concurrently."""
        endpoints = self.resolver.endpoints()
        timeout = self.settings.benchmark.health_timeout

        async def probe(url: str) -> Dict[str, Any]:
            return await self.executor.client_for(url).health_check(timeout=timeout)

        statuses = await asyncio.gather(*(probe(url) for url in endpoints.values()))
        services = {name: status for name, status in zip(endpoints.keys(), statuses)}
        return {
            "healthy": any(s.get("healthy") for s in statuses),
            "services": services,
        }

    async def list_models(self) -> Dict[str, List[str]]:
        """Installed models per configured endpoint; unreachable ones list nothing."""
        endpoints = self.resolver.endpoints()

        async def models_at(url: str) -> List[str]:
            try:
                return await self.executor.client_for(url).list_models()
            except Exception as e:
                logger.warning(f"Could not list models on {url}: {e}")
                return []

        listed = await asyncio.gather(*(models_at(url) for url in endpoints.values()))
        return dict(zip(endpoints.keys(), listed))

    async def generate(
        self,
        model: str,
        prompt: str,
        options: Optional[Dict[str, Any]] = None,
        service_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Direct non-streaming generation through the resolved endpoint."""
        gen = self.settings.benchmark.generation
        options = options or {}
        url = service_url or self.resolver.resolve(model)
        request = GenerationRequest(
            model=model,
            prompt=prompt,
            temperature=options.get("temperature", gen.temperature),
            top_p=options.get("top_p", gen.top_p),
            max_tokens=options.get("max_tokens", gen.max_tokens),
            stop_sequences=options.get("stop"),
        )
        response = await self.executor.client_for(url).generate(
            request, timeout=self.settings.benchmark.batch_timeout
        )
        return {
            "model": response.model,
            "response": response.content,
            "eval_count": response.eval_count,
            "service_url": url,
            **response.metadata,
        }

    # ── History, ratings, ranking ─────────────────────────────────────

    def get_history(self, limit: Optional[int] = None, offset: int = 0) -> Dict[str, Any]:
        runs = self.repository.list_runs(limit=limit, offset=offset)
        return {"benchmarks": runs, "total": self.repository.count_runs()}

    def get_run(self, run_id: str) -> Dict[str, Any]:
        return self.repository.get_run(run_id)

    def delete_run(self, run_id: str) -> bool:
        return self.repository.delete_run(run_id)

    def delete_all_runs(self) -> int:
        return self.repository.delete_all()

    def rate(
        self,
        run_id: str,
        model_name: str,
        question_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.repository.update_rating(run_id, model_name, question_id, rating, comment)

    def get_ratings(self, run_id: str) -> Dict[str, Any]:
        return {"benchmark_id": run_id, "evaluations": self.repository.get_ratings(run_id)}

    def ranking(self, mode: str = "overall") -> Dict[str, Any]:
        stats = compute_model_stats(self.repository.list_runs())
        ranked = rank_models(stats, mode)
        return {"mode": mode, "models": [s.to_dict() for s in ranked]}

    async def aclose(self) -> None:
        await self.executor.aclose()
