"""
Startup - 서버 초기화 모듈

설정 로드, 로깅, 의존성 컨테이너, FastAPI 앱 생성을 담당합니다.
"""

from .settings import Settings
from .logging_config import setup_logging
from .container import AppContainer
from .server_config import create_fastapi_app, setup_cors

__all__ = [
    "Settings",
    "setup_logging",
    "AppContainer",
    "create_fastapi_app",
    "setup_cors",
]
