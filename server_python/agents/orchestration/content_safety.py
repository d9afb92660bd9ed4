"""
Content Safety - 입력/출력 콘텐츠 안전성 검사

Azure AI Content Safety의 text:analyze API를 사용합니다.
카테고리별 심각도(0-6)가 임계값 이상이면 위반으로 판단합니다.
검사기 자체의 오류는 호출자(Orchestrator)가 fail-open으로 처리합니다.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

from errors import AgentTaskError

logger = logging.getLogger(__name__)

API_VERSION = "2023-10-01"
MAX_TEXT_LENGTH = 10000

# Azure 카테고리 이름 -> 임계값 설정 키
CATEGORY_KEYS = {
    "Hate": "hate",
    "Violence": "violence",
    "Sexual": "sexual",
    "SelfHarm": "self_harm",
}

DEFAULT_THRESHOLDS = {key: 4 for key in CATEGORY_KEYS.values()}


@dataclass
class SafetyVerdict:
    """안전성 검사 결과"""
    safe: bool
    violations: List[Dict[str, Any]] = field(default_factory=list)
    analysis_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "safe": self.safe,
            "violations": self.violations,
            "analysisTime": round(self.analysis_time_ms, 2),
        }


class ContentSafetyChecker(Protocol):
    """콘텐츠 안전성 검사 인터페이스"""

    async def check(self, text: str) -> SafetyVerdict:
        ...


class ContentSafetyError(AgentTaskError):
    """Content Safety API 호출 실패"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(
            message=message,
            code="CONTENT_SAFETY_ERROR",
            details={"status_code": status_code} if status_code else {}
        )


class AzureContentSafetyChecker:
    """
    Azure AI Content Safety 검사기

    책임:
    - text:analyze 호출 (aiohttp 세션 재사용)
    - 카테고리별 임계값 비교
    - 위반 목록 생성 (category, severity, threshold)
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        thresholds: Optional[Dict[str, int]] = None,
        request_timeout: float = 10.0,
    ):
        """
        Args:
            endpoint: Azure Content Safety 리소스 엔드포인트
            api_key: 구독 키
            thresholds: 카테고리별 임계값 (hate, violence, sexual, self_harm)
            request_timeout: 요청 타임아웃 (초)
        """
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
        self.timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def url(self) -> str:
        return f"{self.endpoint}/contentsafety/text:analyze?api-version={API_VERSION}"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def check(self, text: str) -> SafetyVerdict:
        """
        텍스트 안전성 검사

        Args:
            text: 검사할 텍스트 (10000자 초과분은 잘림)

        Returns:
            SafetyVerdict

        Raises:
            ContentSafetyError: API 호출 실패
        """
        start = time.monotonic()
        if not text or not text.strip():
            return SafetyVerdict(safe=True)

        payload = {
            "text": text[:MAX_TEXT_LENGTH],
            "categories": list(CATEGORY_KEYS),
            "outputType": "FourSeverityLevels",
        }
        headers = {
            "Content-Type": "application/json",
            "Ocp-Apim-Subscription-Key": self.api_key,
        }

        session = await self._get_session()
        try:
            async with session.post(self.url, headers=headers, json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ContentSafetyError(
                        f"Content Safety API error ({response.status}): {error_text[:200]}",
                        status_code=response.status,
                    )
                data = await response.json()
        except aiohttp.ClientError as e:
            raise ContentSafetyError(f"Content Safety connection error: {e}") from e

        violations = self.evaluate(data)
        verdict = SafetyVerdict(
            safe=not violations,
            violations=violations,
            analysis_time_ms=(time.monotonic() - start) * 1000,
        )
        if violations:
            logger.warning(f"[ContentSafety] Violations detected: {[v['category'] for v in violations]}")
        return verdict

    def evaluate(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """API 응답에서 임계값 이상인 카테고리 추출"""
        violations = []
        for item in data.get("categoriesAnalysis") or []:
            category = item.get("category")
            key = CATEGORY_KEYS.get(category)
            if key is None:
                continue
            severity = int(item.get("severity") or 0)
            threshold = self.thresholds[key]
            if severity >= threshold:
                violations.append({
                    "category": category,
                    "severity": severity,
                    "threshold": threshold,
                })
        return violations

    def get_config(self) -> Dict[str, Any]:
        return {"enabled": True, "endpoint": self.endpoint, "thresholds": dict(self.thresholds)}
