"""Repository pattern for CRUD operations on benchmark runs."""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.errors import ResultNotFoundError, RunNotFoundError

from .database import Database

logger = logging.getLogger(__name__)


def _matches(run: Dict[str, Any], run_id: str) -> bool:
    return run.get("id") == run_id or run.get("benchmark_id") == run_id


class BenchmarkRepository:
    """CRUD operations for stored benchmark runs and reviewer ratings."""

    def __init__(self, db: Database, max_history: int = 1000):
        self.db = db
        self.max_history = max_history
        self._lock = threading.Lock()

    # ── Runs ──────────────────────────────────────────────────────────

    def save_run(self, run: Dict[str, Any]) -> str:
        """Insert a run at the head of the history. Returns the run id."""
        if not run.get("id") or not run.get("timestamp"):
            raise ValueError("A stored run needs an id and a timestamp")

        with self._lock:
            history = [b for b in self.db.load_history() if not _matches(b, run["id"])]
            history.insert(0, run)
            evicted = history[self.max_history:]
            history = history[: self.max_history]
            self.db.save_history(history)
            self.db.save_detail(run)
            for old in evicted:
                self.db.delete_detail(old["id"])

        if evicted:
            logger.info(f"History capped at {self.max_history}, evicted {len(evicted)} run(s)")
        logger.info(f"Saved benchmark {run['id']}")
        return run["id"]

    def list_runs(self, limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
        """Runs sorted newest first."""
        history = sorted(self.db.load_history(), key=lambda b: b.get("timestamp", ""), reverse=True)
        end = offset + limit if limit is not None else None
        return history[offset:end]

    def count_runs(self) -> int:
        return len(self.db.load_history())

    def get_run(self, run_id: str) -> Dict[str, Any]:
        for run in self.db.load_history():
            if _matches(run, run_id):
                return run
        detail = self.db.load_detail(run_id)
        if detail is None:
            raise RunNotFoundError(f"Benchmark '{run_id}' not found")
        return detail

    def delete_run(self, run_id: str) -> bool:
        with self._lock:
            history = self.db.load_history()
            remaining = [b for b in history if not _matches(b, run_id)]
            found = len(remaining) < len(history)
            if found:
                self.db.save_history(remaining)
            found = self.db.delete_detail(run_id) or found
        if found:
            logger.info(f"Deleted benchmark {run_id}")
        return found

    def delete_all(self) -> int:
        with self._lock:
            history = self.db.load_history()
            ids = {b["id"] for b in history} | set(self.db.list_detail_ids())
            self.db.save_history([])
            for run_id in ids:
                self.db.delete_detail(run_id)
        logger.info(f"Deleted {len(ids)} benchmark(s)")
        return len(ids)

    # ── Ratings ───────────────────────────────────────────────────────

    def update_rating(
        self,
        run_id: str,
        model_name: str,
        question_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Attach a reviewer rating and/or comment to one stored answer."""
        with self._lock:
            history = self.db.load_history()
            index = next((i for i, b in enumerate(history) if _matches(b, run_id)), None)
            if index is None:
                raise RunNotFoundError(f"Benchmark '{run_id}' not found")

            run = history[index]
            model = run.get("results", {}).get(model_name)
            if model is None:
                raise ResultNotFoundError(f"Model '{model_name}' not found in benchmark '{run_id}'")
            answer = model.get("questions", {}).get(question_id)
            if answer is None:
                raise ResultNotFoundError(f"Question '{question_id}' not found for model '{model_name}'")

            if rating is not None:
                answer["user_rating"] = rating
            if comment is not None:
                answer["user_comment"] = comment
            answer["last_updated"] = datetime.now(timezone.utc).isoformat()

            self.db.save_history(history)
            self.db.save_detail(run)

        return {
            "rating": answer.get("user_rating"),
            "comment": answer.get("user_comment"),
            "last_updated": answer["last_updated"],
        }

    def get_ratings(self, run_id: str) -> Dict[str, Dict[str, Dict[str, Any]]]:
        run = self.get_run(run_id)
        evaluations: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for model_name, model in (run.get("results") or {}).items():
            evaluations[model_name] = {
                question_id: {
                    "rating": answer.get("user_rating"),
                    "comment": answer.get("user_comment"),
                    "last_updated": answer.get("last_updated"),
                }
                for question_id, answer in (model.get("questions") or {}).items()
            }
        return evaluations
