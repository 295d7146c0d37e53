"""FastAPI backend for the benchmark dashboard."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from benchmark.service import BenchmarkService
from dashboard import api
from dashboard.api import get_service, router as api_v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if api._service is not None:
        await api._service.aclose()


app = FastAPI(title="LLM Bench Dashboard", version="0.1.0", lifespan=lifespan)

app.include_router(api_v1_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/api/overview")
async def dashboard_overview(service: BenchmarkService = Depends(get_service)):
    """Aggregate stats for the overview dashboard."""
    history = service.get_history(limit=200)
    runs = history["benchmarks"]

    if not runs:
        return {
            "total_runs": 0,
            "total_tests": 0,
            "avg_success_rate": 0,
            "avg_response_time": 0,
            "models": [],
            "recent_runs": [],
        }

    total_tests = sum(r.get("summary", {}).get("total_tests", 0) or 0 for r in runs)
    successful = sum(r.get("summary", {}).get("successful_tests", 0) or 0 for r in runs)
    avg_rt = sum(r.get("summary", {}).get("average_response_time", 0) or 0 for r in runs) / len(runs)

    models = service.ranking("overall")["models"]

    return {
        "total_runs": history["total"],
        "total_tests": total_tests,
        "avg_success_rate": round(successful / total_tests * 100, 1) if total_tests else 0,
        "avg_response_time": round(avg_rt, 1),
        "models": [{"name": m["name"], "overall_score": round(m["overall_score"], 1)} for m in models],
        "recent_runs": [
            {"id": r["id"], "timestamp": r["timestamp"], "summary": r.get("summary", {})}
            for r in runs[:10]
        ],
    }
