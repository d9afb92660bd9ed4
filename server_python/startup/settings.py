"""
Settings - 환경 변수 기반 서버 설정

main.py에서 load_dotenv()가 먼저 실행된 뒤 Settings.from_env()로 읽습니다.
시간 값은 환경 변수에서 밀리초로 받고 초 단위로 보관합니다.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    return value if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    value = _env_str(name)
    return int(value) if value is not None else default


def _env_float(name: str, default: float) -> float:
    value = _env_str(name)
    return float(value) if value is not None else default


def _env_bool(name: str, default: bool = False) -> bool:
    value = _env_str(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_ms(name: str, default_ms: int) -> float:
    """밀리초 환경 변수를 초로 변환"""
    return _env_int(name, default_ms) / 1000.0


@dataclass
class Settings:
    """서버 설정"""

    # LLM
    llm_api_url: str = "https://api.openai.com/v1/chat/completions"
    llm_api_key: str = ""
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2000
    agent_max_iterations: int = 10

    # Circuit Breaker
    circuit_failure_threshold: int = 5
    circuit_success_threshold: int = 2
    circuit_timeout_seconds: float = 60.0
    circuit_reset_timeout_seconds: float = 30.0

    # Context Cache
    cache_ttl_seconds: float = 600.0
    cache_max_size: int = 50

    # Memory
    memory_session_timeout_seconds: float = 1800.0
    memory_sweep_interval_seconds: float = 300.0
    memory_snapshot_backend: str = "memory"
    memory_snapshot_dir: str = "./memory_snapshots"
    redis_url: Optional[str] = None

    # Content Safety
    content_safety_enabled: bool = False
    content_safety_endpoint: Optional[str] = None
    content_safety_api_key: Optional[str] = None
    content_safety_thresholds: Dict[str, int] = field(default_factory=lambda: {
        "hate": 4, "violence": 4, "sexual": 4, "self_harm": 4,
    })

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def content_safety_configured(self) -> bool:
        return bool(self.content_safety_enabled and self.content_safety_endpoint and self.content_safety_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """환경 변수에서 설정 로드"""
        cors = _env_str("CORS_ORIGINS", "*")
        return cls(
            llm_api_url=_env_str("LLM_API_URL", cls.llm_api_url),
            llm_api_key=_env_str("LLM_API_KEY", ""),
            llm_model=_env_str("LLM_MODEL", cls.llm_model),
            llm_temperature=_env_float("LLM_TEMPERATURE", cls.llm_temperature),
            llm_max_tokens=_env_int("LLM_MAX_TOKENS", cls.llm_max_tokens),
            agent_max_iterations=_env_int("AGENT_MAX_ITERATIONS", cls.agent_max_iterations),
            circuit_failure_threshold=_env_int("CIRCUIT_BREAKER_FAILURE_THRESHOLD", 5),
            circuit_success_threshold=_env_int("CIRCUIT_BREAKER_SUCCESS_THRESHOLD", 2),
            circuit_timeout_seconds=_env_ms("CIRCUIT_BREAKER_TIMEOUT", 60000),
            circuit_reset_timeout_seconds=_env_ms("CIRCUIT_BREAKER_RESET_TIMEOUT", 30000),
            cache_ttl_seconds=_env_ms("PROJECT_CONTEXT_CACHE_TTL", 600000),
            cache_max_size=_env_int("MAX_PROJECT_CONTEXT_CACHE", 50),
            memory_session_timeout_seconds=_env_ms("MEMORY_SESSION_TIMEOUT", 1800000),
            memory_sweep_interval_seconds=_env_ms("MEMORY_SWEEP_INTERVAL", 300000),
            memory_snapshot_backend=_env_str("MEMORY_SNAPSHOT_BACKEND", "memory").lower(),
            memory_snapshot_dir=_env_str("MEMORY_SNAPSHOT_DIR", "./memory_snapshots"),
            redis_url=_env_str("REDIS_URL"),
            content_safety_enabled=_env_bool("CONTENT_SAFETY_ENABLED"),
            content_safety_endpoint=_env_str("AZURE_CONTENT_SAFETY_ENDPOINT"),
            content_safety_api_key=_env_str("AZURE_CONTENT_SAFETY_API_KEY"),
            content_safety_thresholds={
                "hate": _env_int("CONTENT_SAFETY_THRESHOLD_HATE", 4),
                "violence": _env_int("CONTENT_SAFETY_THRESHOLD_VIOLENCE", 4),
                "sexual": _env_int("CONTENT_SAFETY_THRESHOLD_SEXUAL", 4),
                "self_harm": _env_int("CONTENT_SAFETY_THRESHOLD_SELF_HARM", 4),
            },
            host=_env_str("HOST", "0.0.0.0"),
            port=_env_int("PORT", 8000),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            cors_origins=[origin.strip() for origin in cors.split(",") if origin.strip()],
        )
