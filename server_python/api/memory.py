"""
메모리 관리 API 엔드포인트

Long-term 메모리가 바뀌면 캐시된 검색 결과를 무효화합니다.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from errors import ResourceNotFoundError, ServiceUnavailableError
from models.memory import LongTermMemoryCreate, MemoryImportRequest, MemoryPruneRequest

from .dependencies import get_container

router = APIRouter(prefix="/api/memory", tags=["memory"])


@router.get("/export")
async def export_memory(container=Depends(get_container)):
    return container.memory_store.export_snapshot()


@router.post("/import")
async def import_memory(body: MemoryImportRequest, container=Depends(get_container)):
    counts = container.memory_store.import_snapshot(body.snapshot, merge=body.merge)
    container.retriever.invalidate()
    return {"success": True, **counts}


@router.post("/prune")
async def prune_memory(body: MemoryPruneRequest, container=Depends(get_container)):
    counts = container.memory_store.prune(
        max_sessions=body.maxSessions,
        max_messages_per_session=body.maxMessagesPerSession,
        max_long_term_entries=body.maxLongTermEntries,
        keep_recent_days=body.keepRecentDays,
    )
    container.retriever.invalidate()
    return {"success": True, **counts}


@router.get("/analytics")
async def memory_analytics(container=Depends(get_container)):
    return container.memory_store.analytics()


@router.get("/stats")
async def memory_stats(container=Depends(get_container)):
    return container.memory_store.get_stats()


@router.post("/long-term", status_code=201)
async def add_long_term_memory(body: LongTermMemoryCreate, container=Depends(get_container)):
    entry = container.memory_store.add_long_term(
        content=body.content,
        category=body.category,
        importance=body.importance,
    )
    container.retriever.invalidate()
    return entry.to_dict()


@router.get("/long-term")
async def search_long_term_memory(
    category: Optional[str] = None,
    query: Optional[str] = None,
    limit: int = Query(default=10, ge=1, le=100),
    container=Depends(get_container),
):
    entries = container.memory_store.search_long_term(category=category, query=query, limit=limit)
    return {"entries": [entry.to_dict() for entry in entries], "total": len(entries)}


@router.delete("/long-term/{entry_id}")
async def delete_long_term_memory(entry_id: str, container=Depends(get_container)):
    if not container.memory_store.delete_long_term(entry_id):
        raise ResourceNotFoundError("Long-term memory", entry_id)
    container.retriever.invalidate()
    return {"success": True, "id": entry_id}


@router.post("/snapshots/{name}")
async def save_snapshot(name: str, container=Depends(get_container)):
    snapshot = container.memory_store.export_snapshot()
    if not await container.snapshot_repository.save(name, snapshot):
        raise ServiceUnavailableError(f"Failed to save memory snapshot '{name}'", details={"snapshot": name})
    return {
        "success": True,
        "name": name,
        "sessions": len(snapshot["sessions"]),
        "longTermEntries": len(snapshot["longTermMemory"]),
    }


@router.post("/snapshots/{name}/restore")
async def restore_snapshot(name: str, merge: bool = True, container=Depends(get_container)):
    snapshot = await container.snapshot_repository.load(name)
    if snapshot is None:
        raise ResourceNotFoundError("Snapshot", name)
    counts = container.memory_store.import_snapshot(snapshot, merge=merge)
    container.retriever.invalidate()
    return {"success": True, "name": name, **counts}


@router.get("/snapshots")
async def list_snapshots(container=Depends(get_container)):
    names = await container.snapshot_repository.list_all()
    return {"snapshots": names, "total": len(names)}
