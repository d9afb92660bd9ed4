"""
Logging - 로깅 설정

모든 모듈은 logging.getLogger(__name__)을 사용하고,
프로세스 시작 시 setup_logging()이 한 번 호출됩니다.
"""

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """
    루트 로거 설정

    Args:
        level: 로그 레벨 이름 (DEBUG, INFO, WARNING, ...)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )
    # 외부 라이브러리 로그는 WARNING 이상만
    for noisy in ("aiohttp.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
