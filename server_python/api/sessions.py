"""
세션 API 엔드포인트
"""
from fastapi import APIRouter, Depends, Query

from errors import SessionNotFoundError

from .dependencies import get_container

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.get("")
async def list_sessions(container=Depends(get_container)):
    sessions = container.memory_store.list_sessions()
    return {"sessions": sessions, "total": len(sessions)}


@router.get("/{session_id}/stats")
async def get_session_stats(session_id: str, container=Depends(get_container)):
    stats = container.memory_store.get_session_stats(session_id)
    if stats is None:
        raise SessionNotFoundError(session_id)
    return stats


@router.get("/{session_id}/history")
async def get_session_history(
    session_id: str,
    limit: int = Query(default=10, ge=1, le=100),
    container=Depends(get_container),
):
    memory_store = container.memory_store
    if not memory_store.has_session(session_id):
        raise SessionNotFoundError(session_id)

    history = memory_store.recent_history(session_id, limit)
    return {
        "sessionId": session_id,
        "history": [turn.to_dict() for turn in history],
        "count": len(history),
    }


@router.delete("/{session_id}")
async def delete_session(session_id: str, container=Depends(get_container)):
    if not container.memory_store.clear_session(session_id):
        raise SessionNotFoundError(session_id)
    return {"success": True, "sessionId": session_id}
