"""Central API layer for the benchmark dashboard."""

from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from benchmark.events import format_sse
from benchmark.ranking import RANKING_MODES
from benchmark.service import BenchmarkService
from core.errors import ConfigError, InvalidRunRequestError, ResultNotFoundError, RunNotFoundError

router = APIRouter(prefix="/api/v1", tags=["api-v1"])

_service: Optional[BenchmarkService] = None


def get_service() -> BenchmarkService:
    global _service
    if _service is None:
        try:
            _service = BenchmarkService()
        except ConfigError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
    return _service


class RunRequest(BaseModel):
    models: List[str] = Field(default_factory=list)
    question_ids: Optional[List[str]] = None
    service_urls: Dict[str, str] = Field(default_factory=dict)
    save: bool = True


class RatingRequest(BaseModel):
    benchmark_id: str
    model_name: str
    question_id: str
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None


class GenerateOptions(BaseModel):
    """Sampling overrides; unset fields fall back to the configured generation defaults."""
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = Field(default=None, gt=0)
    stop: Optional[List[str]] = None


class GenerateRequest(BaseModel):
    model: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    options: GenerateOptions = Field(default_factory=GenerateOptions)
    service_url: Optional[str] = None


def _not_found(exc: Exception) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


# ── Benchmarks ────────────────────────────────────────────────────────

@router.get("/questions")
async def list_questions(service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    return service.list_questions()


@router.post("/benchmark/run")
async def run_benchmark(payload: RunRequest, service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    try:
        return await service.run_benchmark(
            models=payload.models,
            question_ids=payload.question_ids,
            service_urls=payload.service_urls,
            save=payload.save,
        )
    except InvalidRunRequestError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/benchmark/run-stream")
async def run_benchmark_stream(payload: RunRequest, service: BenchmarkService = Depends(get_service)):
    try:
        events = service.stream_benchmark(
            models=payload.models,
            question_ids=payload.question_ids,
            service_urls=payload.service_urls,
            save=payload.save,
        )
    except InvalidRunRequestError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    async def body() -> AsyncIterator[str]:
        async for event in events:
            yield format_sse(event)

    return StreamingResponse(
        body(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/benchmark/history")
async def list_history(
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: BenchmarkService = Depends(get_service),
) -> Dict[str, Any]:
    return service.get_history(limit=limit, offset=offset)


@router.delete("/benchmark/history")
async def delete_all_history(service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    return {"success": True, "deleted": service.delete_all_runs()}


@router.get("/benchmark/history/{run_id}")
async def get_history_entry(run_id: str, service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    try:
        return {"success": True, "benchmark": service.get_run(run_id)}
    except RunNotFoundError as exc:
        raise _not_found(exc) from exc


@router.delete("/benchmark/history/{run_id}")
async def delete_history_entry(run_id: str, service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    if not service.delete_run(run_id):
        raise HTTPException(status_code=404, detail=f"Benchmark '{run_id}' not found")
    return {"success": True, "id": run_id}


@router.post("/benchmark/ratings")
async def update_rating(payload: RatingRequest, service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    try:
        updated = service.rate(
            payload.benchmark_id,
            payload.model_name,
            payload.question_id,
            rating=payload.rating,
            comment=payload.comment,
        )
    except (RunNotFoundError, ResultNotFoundError) as exc:
        raise _not_found(exc) from exc
    return {"success": True, "updated": updated}


@router.get("/benchmark/ratings/{run_id}")
async def get_ratings(run_id: str, service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    try:
        return service.get_ratings(run_id)
    except RunNotFoundError as exc:
        raise _not_found(exc) from exc


@router.get("/benchmark/ranking")
async def ranking(
    mode: str = Query("overall"),
    service: BenchmarkService = Depends(get_service),
) -> Dict[str, Any]:
    if mode not in RANKING_MODES:
        raise HTTPException(status_code=400, detail=f"Unknown ranking mode: {mode}")
    return service.ranking(mode)


# ── Ollama passthrough ────────────────────────────────────────────────

@router.get("/ollama/health")
async def ollama_health(service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    return await service.health()


@router.get("/ollama/models")
async def ollama_models(service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    return {"services": await service.list_models()}


@router.post("/ollama/generate")
async def ollama_generate(payload: GenerateRequest, service: BenchmarkService = Depends(get_service)) -> Dict[str, Any]:
    try:
        return await service.generate(
            payload.model,
            payload.prompt,
            payload.options.model_dump(exclude_none=True),
            payload.service_url,
        )
    except httpx.HTTPStatusError as exc:
        raise HTTPException(
            status_code=502,
            detail=f"Ollama HTTP error: {exc.response.status_code} {exc.response.reason_phrase}",
        ) from exc
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"Ollama unreachable: {exc}") from exc
