"""Result records produced by a benchmark run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def tokens_per_second(tokens_generated: int, response_time_ms: int) -> float:
    """Throughput estimate; 0 when no time elapsed."""
    if response_time_ms <= 0 or tokens_generated <= 0:
        return 0.0
    return tokens_generated / (response_time_ms / 1000)


@dataclass
class TestResult:
    """Outcome of one (model, question) call."""
    success: bool
    response_text: str = ""
    response_time_ms: int = 0
    tokens_generated: int = 0
    tokens_per_second: float = 0.0
    error_message: Optional[str] = None
    is_timeout: bool = False
    service_url: Optional[str] = None
    user_rating: Optional[int] = None
    user_comment: Optional[str] = None

    __test__ = False  # not a pytest class

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "response": self.response_text,
            "response_time": self.response_time_ms,
            "tokens_generated": self.tokens_generated,
            "tokens_per_second": self.tokens_per_second,
            "error": self.error_message,
            "is_timeout": self.is_timeout,
            "service_url": self.service_url,
            "user_rating": self.user_rating,
            "user_comment": self.user_comment,
        }


@dataclass
class QuestionOutcome:
    """A TestResult together with the question it answered."""
    question_id: str
    question_text: str
    category: str
    difficulty: str
    result: TestResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question_text,
            "category": self.category,
            "difficulty": self.difficulty,
            **self.result.to_dict(),
        }


@dataclass
class ModelRunSummary:
    """Per-model results and aggregates within a run."""
    model_name: str
    service_url: str
    questions_results: Dict[str, QuestionOutcome] = field(default_factory=dict)
    total_response_time_ms: int = 0
    average_response_time_ms: float = 0.0
    average_tokens_per_second: float = 0.0
    success_rate_percent: float = 0.0

    @property
    def attempted(self) -> int:
        return len(self.questions_results)

    @property
    def successful(self) -> int:
        return sum(1 for o in self.questions_results.values() if o.result.success)

    def finalize(self) -> None:
        """Compute aggregates once every question has been recorded.

        Averages divide by the number of successful tests, whereas the success
        rate divides by the number attempted.
        """
        results = [o.result for o in self.questions_results.values()]
        successes = [r for r in results if r.success]

        self.total_response_time_ms = sum(r.response_time_ms for r in results)
        if successes:
            self.average_response_time_ms = sum(r.response_time_ms for r in successes) / len(successes)
            self.average_tokens_per_second = sum(r.tokens_per_second for r in successes) / len(successes)
        else:
            self.average_response_time_ms = 0.0
            self.average_tokens_per_second = 0.0
        self.success_rate_percent = (len(successes) / len(results)) * 100 if results else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model_name": self.model_name,
            "service_url": self.service_url,
            "total_response_time": self.total_response_time_ms,
            "average_response_time": self.average_response_time_ms,
            "average_tokens_per_second": self.average_tokens_per_second,
            "success_rate": self.success_rate_percent,
            "questions": {qid: o.to_dict() for qid, o in self.questions_results.items()},
        }


@dataclass
class RunSummary:
    """Global aggregates across every model of a run."""
    total_tests: int = 0
    successful_tests: int = 0
    failed_tests: int = 0
    timeout_tests: int = 0
    average_response_time_ms: float = 0.0
    average_tokens_per_second: float = 0.0
    total_duration_ms: int = 0

    @classmethod
    def from_models(cls, summaries: List[ModelRunSummary]) -> "RunSummary":
        results = [o.result for s in summaries for o in s.questions_results.values()]
        total = len(results)
        successes = [r for r in results if r.success]
        successful = len(successes)
        duration = sum(r.response_time_ms for r in results)
        # Response time is averaged over all tests, failures included. Per-model
        # averages and throughput only count successes; stored runs depend on
        # both definitions.
        return cls(
            total_tests=total,
            successful_tests=successful,
            failed_tests=total - successful,
            timeout_tests=sum(1 for r in results if r.is_timeout),
            average_response_time_ms=duration / total if total else 0.0,
            average_tokens_per_second=(
                sum(r.tokens_per_second for r in successes) / successful if successful else 0.0
            ),
            total_duration_ms=duration,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_tests": self.total_tests,
            "successful_tests": self.successful_tests,
            "failed_tests": self.failed_tests,
            "timeout_tests": self.timeout_tests,
            "average_response_time": self.average_response_time_ms,
            "average_tokens_per_second": self.average_tokens_per_second,
            "total_duration": self.total_duration_ms,
        }


@dataclass
class BenchmarkRun:
    """Top-level record of one orchestrator execution."""
    id: str
    timestamp: str
    models_tested: int
    questions_tested: int
    results: Dict[str, ModelRunSummary] = field(default_factory=dict)
    summary: RunSummary = field(default_factory=RunSummary)
    dropped_question_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "benchmark_id": self.id,
            "timestamp": self.timestamp,
            "models_tested": self.models_tested,
            "questions_tested": self.questions_tested,
            "dropped_question_ids": list(self.dropped_question_ids),
            "results": {name: s.to_dict() for name, s in self.results.items()},
            "summary": self.summary.to_dict(),
        }
