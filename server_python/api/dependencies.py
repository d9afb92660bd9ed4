"""
API 공통 의존성
"""
from typing import TYPE_CHECKING
from uuid import uuid4

from fastapi import Request

if TYPE_CHECKING:
    from startup.container import AppContainer


def get_container(request: Request) -> "AppContainer":
    """app.state에 등록된 AppContainer"""
    return request.app.state.container


def new_session_id() -> str:
    return f"session-{uuid4().hex[:12]}"
