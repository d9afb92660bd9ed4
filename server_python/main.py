#!/usr/bin/env python3
"""
Agentic Task Server 메인 엔트리포인트
"""
import sys

# 🔴 출력 버퍼링 비활성화 (nohup에서 로그 즉시 출력)
sys.stdout.reconfigure(line_buffering=True)
sys.stderr.reconfigure(line_buffering=True)

# 🔴 환경 변수는 반드시 다른 import 전에 로드해야 함!
from dotenv import load_dotenv
load_dotenv()

import logging

import uvicorn

from startup import AppContainer, Settings, create_fastapi_app, setup_logging

settings = Settings.from_env()
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)

container = AppContainer(settings)
app = create_fastapi_app(container)


def main():
    logger.info("=" * 50)
    logger.info("Agentic Task Server")
    logger.info(f"HTTP API: http://{settings.host}:{settings.port}")
    logger.info(f"Model: {settings.llm_model}")
    logger.info("=" * 50)

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Server stopped")
    except Exception as error:
        logger.error(f"Failed to start server: {error}")
        sys.exit(1)
