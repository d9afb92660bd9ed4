"""
ServerConfig - FastAPI 및 서버 설정

FastAPI 앱 생성, lifespan, CORS, 예외 핸들러, 라우터 등록을 담당합니다.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import agent, memory, observability, sessions
from errors import register_exception_handlers

from .container import AppContainer


def create_fastapi_app(
    container: AppContainer,
    title: str = "Agentic Task Server API"
) -> FastAPI:
    """
    FastAPI 앱 생성

    Args:
        container: 공유 인스턴스 컨테이너 (app.state.container로 노출)
        title: API 제목

    Returns:
        FastAPI 앱 인스턴스
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.startup()
        try:
            yield
        finally:
            await container.shutdown()

    app = FastAPI(title=title, lifespan=lifespan)
    app.state.container = container

    setup_cors(app, allow_origins=container.settings.cors_origins)
    register_exception_handlers(app)

    app.include_router(agent.router)
    app.include_router(sessions.router)
    app.include_router(memory.router)
    app.include_router(observability.router)
    app.include_router(observability.health_router)
    return app


def setup_cors(
    app: FastAPI,
    allow_origins: list = None,
    allow_credentials: bool = True,
    allow_methods: list = None,
    allow_headers: list = None
):
    """
    CORS 미들웨어 설정

    Args:
        app: FastAPI 앱
        allow_origins: 허용할 origin 목록 (기본: ["*"])
        allow_credentials: 자격 증명 허용 여부
        allow_methods: 허용할 HTTP 메서드 (기본: ["*"])
        allow_headers: 허용할 헤더 (기본: ["*"])
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins or ["*"],
        allow_credentials=allow_credentials,
        allow_methods=allow_methods or ["*"],
        allow_headers=allow_headers or ["*"],
    )
