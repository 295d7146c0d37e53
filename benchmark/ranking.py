"""Cross-run model statistics and ranking."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List

RANKING_MODES = ("overall", "speed", "accuracy", "user_rating")


@dataclass
class ModelStats:
    """Aggregate of every stored answer for one model."""
    name: str
    total_tests: int = 0
    successful_tests: int = 0
    avg_response_time: float = 0.0
    avg_tokens_per_second: float = 0.0
    avg_user_rating: float = 0.0
    total_ratings: int = 0
    categories: Dict[str, int] = field(default_factory=dict)
    last_tested: str = ""
    last_benchmark_id: str = ""

    @property
    def success_rate(self) -> float:
        if self.total_tests == 0:
            return 0.0
        return self.successful_tests / self.total_tests * 100

    @property
    def overall_score(self) -> float:
        """Weighted score: 40% success rate, 30% speed, 30% reviewer rating."""
        speed_score = min(self.avg_tokens_per_second / 10, 100) if self.avg_tokens_per_second > 0 else 0.0
        user_score = (self.avg_user_rating / 5) * 100 if self.avg_user_rating > 0 else 0.0
        return self.success_rate * 0.4 + speed_score * 0.3 + user_score * 0.3

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total_tests": self.total_tests,
            "successful_tests": self.successful_tests,
            "success_rate": self.success_rate,
            "avg_response_time": self.avg_response_time,
            "avg_tokens_per_second": self.avg_tokens_per_second,
            "avg_user_rating": self.avg_user_rating,
            "total_ratings": self.total_ratings,
            "overall_score": self.overall_score,
            "categories": dict(self.categories),
            "last_tested": self.last_tested,
            "last_benchmark_id": self.last_benchmark_id,
        }


def compute_model_stats(runs: Iterable[Dict[str, Any]]) -> List[ModelStats]:
    """Fold stored runs into one ModelStats per model."""
    stats: Dict[str, ModelStats] = {}
    response_time_sums: Dict[str, float] = {}
    tps_sums: Dict[str, float] = {}
    rating_sums: Dict[str, float] = {}

    for run in runs:
        timestamp = run.get("timestamp", "")
        for model_name, model in (run.get("results") or {}).items():
            entry = stats.get(model_name)
            if entry is None:
                entry = stats[model_name] = ModelStats(name=model_name)
                response_time_sums[model_name] = tps_sums[model_name] = rating_sums[model_name] = 0.0

            for answer in (model.get("questions") or {}).values():
                entry.total_tests += 1
                if answer.get("success"):
                    entry.successful_tests += 1
                    response_time_sums[model_name] += answer.get("response_time") or 0
                    tps_sums[model_name] += answer.get("tokens_per_second") or 0

                rating = answer.get("user_rating")
                if isinstance(rating, (int, float)) and rating > 0:
                    rating_sums[model_name] += rating
                    entry.total_ratings += 1

                category = answer.get("category") or "unknown"
                entry.categories[category] = entry.categories.get(category, 0) + 1

            if timestamp >= entry.last_tested:
                entry.last_tested = timestamp
                entry.last_benchmark_id = run.get("id", "")

    for name, entry in stats.items():
        if entry.successful_tests:
            entry.avg_response_time = response_time_sums[name] / entry.successful_tests
            entry.avg_tokens_per_second = tps_sums[name] / entry.successful_tests
        if entry.total_ratings:
            entry.avg_user_rating = rating_sums[name] / entry.total_ratings

    return list(stats.values())


_SORT_KEYS: Dict[str, Callable[[ModelStats], float]] = {
    "overall": lambda s: s.overall_score,
    "speed": lambda s: s.avg_tokens_per_second,
    "accuracy": lambda s: s.success_rate,
    "user_rating": lambda s: s.avg_user_rating,
}


def rank_models(stats: Iterable[ModelStats], mode: str = "overall") -> List[ModelStats]:
    """Sort best first according to ``mode``."""
    if mode not in _SORT_KEYS:
        raise ValueError(f"Unknown ranking mode: {mode}. Available: {', '.join(RANKING_MODES)}")
    return sorted(stats, key=_SORT_KEYS[mode], reverse=True)
