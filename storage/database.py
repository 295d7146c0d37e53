"""JSON file storage for benchmark runs."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

HISTORY_FILE_NAME = "history.json"


class Database:
    """Directory of JSON documents: ``history.json`` plus one file per run."""

    def __init__(self, results_dir: str = "benchmark_results"):
        self.results_dir = Path(results_dir)

    @property
    def history_path(self) -> Path:
        return self.results_dir / HISTORY_FILE_NAME

    def detail_path(self, run_id: str) -> Path:
        safe = "".join(c for c in run_id if c.isalnum() or c in "-_.")
        if not safe or safe != run_id or safe.startswith("."):
            raise ValueError(f"Invalid run id: {run_id!r}")
        return self.results_dir / f"{safe}.json"

    def _ensure_dir(self) -> None:
        self.results_dir.mkdir(parents=True, exist_ok=True)

    def _write_json(self, path: Path, data: Any) -> None:
        self._ensure_dir()
        fd, tmp_path = tempfile.mkstemp(dir=str(self.results_dir), prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def load_history(self) -> List[Dict[str, Any]]:
        """Read the history list, dropping entries that are not valid runs."""
        if not self.history_path.exists():
            return []
        try:
            with open(self.history_path, "r", encoding="utf-8") as f:
                parsed = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read {self.history_path}: {e}")
            return []

        if not isinstance(parsed, dict) or not isinstance(parsed.get("benchmarks"), list):
            logger.warning(f"Invalid history structure in {self.history_path}, starting empty")
            return []

        benchmarks = [
            b for b in parsed["benchmarks"]
            if isinstance(b, dict) and b.get("id") and b.get("timestamp")
            and not isinstance(b.get("benchmarks"), list)
        ]
        removed = len(parsed["benchmarks"]) - len(benchmarks)
        if removed:
            logger.warning(f"Dropped {removed} corrupted history entr{'y' if removed == 1 else 'ies'}")
        return benchmarks

    def save_history(self, benchmarks: List[Dict[str, Any]]) -> None:
        self._write_json(self.history_path, {"benchmarks": benchmarks})

    def load_detail(self, run_id: str) -> Optional[Dict[str, Any]]:
        try:
            path = self.detail_path(run_id)
        except ValueError:
            return None
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read {path}: {e}")
            return None

    def save_detail(self, run: Dict[str, Any]) -> None:
        self._write_json(self.detail_path(run["id"]), run)

    def delete_detail(self, run_id: str) -> bool:
        try:
            path = self.detail_path(run_id)
        except ValueError:
            return False
        if path.exists():
            path.unlink()
            return True
        return False

    def list_detail_ids(self) -> List[str]:
        if not self.results_dir.exists():
            return []
        return [
            p.stem for p in self.results_dir.glob("*.json")
            if p.name != HISTORY_FILE_NAME and not p.name.startswith(".")
        ]
