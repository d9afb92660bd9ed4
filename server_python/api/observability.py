"""
관측 API 엔드포인트 (Circuit Breaker, Context Cache, Health)
"""
from datetime import datetime

from fastapi import APIRouter, Depends

from errors import ResourceNotFoundError

from .dependencies import get_container

router = APIRouter(prefix="/api/observability", tags=["observability"])
health_router = APIRouter(tags=["health"])


@router.get("/circuits")
async def list_circuits(container=Depends(get_container)):
    breaker = container.circuit_breaker
    return {"circuits": breaker.get_stats(), "summary": breaker.get_summary()}


@router.get("/circuits/{name}")
async def get_circuit(name: str, container=Depends(get_container)):
    stats = container.circuit_breaker.get_stats(name)
    if stats is None:
        raise ResourceNotFoundError("Circuit", name)
    return stats


@router.post("/circuits/{name}/reset")
async def reset_circuit(name: str, container=Depends(get_container)):
    if not container.circuit_breaker.reset(name):
        raise ResourceNotFoundError("Circuit", name)
    return {"success": True, "name": name}


@router.get("/cache")
async def cache_stats(container=Depends(get_container)):
    return container.context_cache.get_stats()


@health_router.get("/health")
async def health(container=Depends(get_container)):
    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "model": container.settings.llm_model,
        "circuits": container.circuit_breaker.get_summary(),
        "sessions": container.memory_store.get_stats()["session_count"],
        "contentSafety": container.safety_checker is not None,
    }
