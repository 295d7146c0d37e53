"""Benchmark orchestration across a model × question matrix."""

import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Sequence

from core.errors import BenchmarkError, InvalidRunRequestError

from .events import Event, EventSink, NullSink
from .executor import SingleTestExecutor
from .models import BenchmarkRun, ModelRunSummary, QuestionOutcome, RunSummary
from .questions import BenchmarkQuestion, QuestionBank
from .resolver import EndpointResolver

logger = logging.getLogger(__name__)


def generate_run_id() -> str:
    """Timestamp-derived id with a random suffix so runs in the same millisecond differ."""
    return f"benchmark_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


@dataclass
class RunPlan:
    """A validated run request, ready to execute."""
    models: List[str]
    questions: List[BenchmarkQuestion]
    dropped_question_ids: List[str] = field(default_factory=list)

    @property
    def total_tests(self) -> int:
        return len(self.models) * len(self.questions)


class BenchmarkOrchestrator:
    """Runs every selected question against every selected model, in order."""

    def __init__(
        self,
        question_bank: QuestionBank,
        resolver: EndpointResolver,
        executor: SingleTestExecutor,
    ):
        self.question_bank = question_bank
        self.resolver = resolver
        self.executor = executor

    def plan(self, models: Optional[Sequence[str]], question_ids: Optional[Sequence[str]] = None) -> RunPlan:
        """Validate a run request without touching any endpoint.

        ``question_ids=None`` selects the whole bank. Unknown ids are dropped
        and reported on the plan.
        """
        if not models:
            raise InvalidRunRequestError("At least one model is required")
        model_ids = [m.strip() if isinstance(m, str) else m for m in models]
        if any(not isinstance(m, str) or not m for m in model_ids):
            raise InvalidRunRequestError("Model identifiers must be non-empty strings")
        model_ids = list(dict.fromkeys(model_ids))

        if question_ids is None:
            questions, dropped = self.question_bank.all(), []
        else:
            if not question_ids:
                raise InvalidRunRequestError("At least one question is required")
            questions, dropped = self.question_bank.resolve(question_ids)

        if dropped:
            logger.warning(f"Ignoring unknown question ids: {', '.join(dropped)}")
        if not questions:
            raise InvalidRunRequestError("No valid question found")

        return RunPlan(models=model_ids, questions=questions, dropped_question_ids=dropped)

    async def run(
        self,
        models: Optional[Sequence[str]],
        question_ids: Optional[Sequence[str]] = None,
        sink: Optional[EventSink] = None,
        timeout: Optional[float] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> BenchmarkRun:
        """Validate, then execute. See ``execute`` for event semantics."""
        plan = self.plan(models, question_ids)
        return await self.execute(plan, sink=sink, timeout=timeout, overrides=overrides)

    async def execute(
        self,
        plan: RunPlan,
        sink: Optional[EventSink] = None,
        timeout: Optional[float] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> BenchmarkRun:
        """Execute a plan sequentially, emitting events into ``sink``.

        Events: ``start``; per test a ``progress`` (status ``starting``), a
        ``result`` and a ``progress`` (status ``completed``); then ``complete``.
        An unexpected fault emits ``error`` and raises ``BenchmarkError``.
        Once the sink is closed nothing more is emitted; an in-flight result is
        still recorded on the run and the loop stops before the next test.
        """
        sink = sink or NullSink()

        async def emit(event: Event) -> None:
            if not sink.closed:
                await sink.emit(event)

        run = BenchmarkRun(
            id=generate_run_id(),
            timestamp=datetime.now(timezone.utc).isoformat(),
            models_tested=len(plan.models),
            questions_tested=len(plan.questions),
            dropped_question_ids=list(plan.dropped_question_ids),
        )
        total = plan.total_tests
        completed = 0

        logger.info(f"Starting {run.id}: {len(plan.models)} model(s) x {len(plan.questions)} question(s)")

        try:
            await emit({
                "type": "start",
                "benchmark_id": run.id,
                "total_tests": total,
                "models": list(plan.models),
                "questions": [{"id": q.id, "text": q.prompt_text} for q in plan.questions],
                "dropped_question_ids": list(plan.dropped_question_ids),
            })

            for model_id in plan.models:
                if sink.closed:
                    break
                service_url = self.resolver.resolve(model_id, overrides)
                summary = ModelRunSummary(model_name=model_id, service_url=service_url)
                run.results[model_id] = summary

                for question in plan.questions:
                    if sink.closed:
                        break
                    await emit({
                        "type": "progress",
                        "status": "starting",
                        "model": model_id,
                        "question": question.id,
                        "question_text": question.prompt_text,
                    })

                    result = await self.executor.execute(model_id, question, service_url, timeout=timeout)
                    outcome = QuestionOutcome(
                        question_id=question.id,
                        question_text=question.prompt_text,
                        category=question.category,
                        difficulty=question.difficulty.value,
                        result=result,
                    )
                    summary.questions_results[question.id] = outcome
                    completed += 1
                    if sink.closed:
                        break

                    await emit({
                        "type": "result",
                        "model": model_id,
                        "question": question.id,
                        "result": outcome.to_dict(),
                    })
                    await emit({
                        "type": "progress",
                        "status": "completed",
                        "completed": completed,
                        "total": total,
                        "percentage": round(completed / total * 100),
                    })

                summary.finalize()

            run.summary = RunSummary.from_models(list(run.results.values()))

            if sink.closed:
                logger.info(f"{run.id} abandoned by consumer after {completed}/{total} tests")
                return run

            logger.info(
                f"Finished {run.id}: {run.summary.successful_tests}/{run.summary.total_tests} successful"
            )
            await emit({"type": "complete", "result": run.to_dict()})
            return run

        except Exception as e:
            logger.error(f"Benchmark {run.id} failed: {e}")
            await emit({"type": "error", "error": str(e) or e.__class__.__name__})
            raise BenchmarkError(f"Benchmark {run.id} failed: {e}") from e
