"""Benchmark harness for locally hosted LLM endpoints."""

from .questions import QuestionBank, BenchmarkQuestion, Difficulty, DEFAULT_QUESTIONS
from .resolver import EndpointResolver, EndpointRule
from .models import TestResult, QuestionOutcome, ModelRunSummary, RunSummary, BenchmarkRun
from .executor import SingleTestExecutor
from .events import EventSink, NullSink, CollectingSink, QueueSink, format_sse
from .orchestrator import BenchmarkOrchestrator, RunPlan, generate_run_id
from .ranking import ModelStats, compute_model_stats, rank_models, RANKING_MODES
from .service import BenchmarkService

__all__ = [
    "QuestionBank",
    "BenchmarkQuestion",
    "Difficulty",
    "DEFAULT_QUESTIONS",
    "EndpointResolver",
    "EndpointRule",
    "TestResult",
    "QuestionOutcome",
    "ModelRunSummary",
    "RunSummary",
    "BenchmarkRun",
    "SingleTestExecutor",
    "EventSink",
    "NullSink",
    "CollectingSink",
    "QueueSink",
    "format_sse",
    "BenchmarkOrchestrator",
    "RunPlan",
    "generate_run_id",
    "ModelStats",
    "compute_model_stats",
    "rank_models",
    "RANKING_MODES",
    "BenchmarkService",
]
