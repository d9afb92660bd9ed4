"""
LLM Client - OpenAI 호환 Chat Completions 클라이언트

Connection pooling, rate limit 재시도, tool calling 응답 파싱을 지원합니다.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp

from errors import LLMError
from tools.tool_schemas import ToolCall

logger = logging.getLogger(__name__)


@dataclass
class ChatCompletion:
    """LLM 응답 (텍스트 + tool call 목록)"""
    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: Optional[str] = None
    usage: Dict[str, Any] = field(default_factory=dict)


class LLMClient:
    """
    LLM API 클라이언트 - Connection pooling, rate limit 재시도 지원

    실패(HTTP 에러, 연결 실패)는 LLMError로 올려 보내며,
    Circuit Breaker가 이를 실패로 집계합니다. 재시도는 429 응답에만 적용됩니다.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: int = 2000,
        request_timeout: float = 120.0,
        max_rate_limit_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.default_temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = aiohttp.ClientTimeout(total=request_timeout, connect=10)
        self.max_rate_limit_retries = max_rate_limit_retries
        self.retry_delay = retry_delay
        self._session: Optional[aiohttp.ClientSession] = None

        logger.info(
            f"[LLMClient] API URL: {self.api_url}, model: {self.model}, "
            f"API key: {'set' if self.api_key else 'not set'}"
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """세션 재사용 (Connection pooling)"""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=20, limit_per_host=10)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self.timeout
            )
        return self._session

    async def close(self):
        """세션 종료"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    @staticmethod
    def _is_fixed_temperature_model(model: str) -> bool:
        """temperature=1만 지원하는 모델인지 확인"""
        model_lower = model.lower()
        # o1, o3 reasoning 모델 및 GPT-5 계열은 temperature=1만 지원
        fixed_temp_patterns = ['o1', 'o3', 'gpt-5', 'gpt5']
        name = model_lower.rsplit('/', 1)[-1]
        return any(name.startswith(pattern) for pattern in fixed_temp_patterns)

    def build_payload(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """요청 payload 생성"""
        actual_model = model or self.model
        actual_temperature = temperature if temperature is not None else self.default_temperature

        if self._is_fixed_temperature_model(actual_model) and actual_temperature != 1.0:
            logger.debug(f"[LLM] Fixed-temperature model detected ({actual_model}), forcing temperature=1.0")
            actual_temperature = 1.0

        payload: Dict[str, Any] = {
            "model": actual_model,
            "messages": messages,
            "max_completion_tokens": max_tokens or self.max_tokens,
            "temperature": actual_temperature,
            "stream": False,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"
        return payload

    async def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ChatCompletion:
        """
        Chat Completions 호출

        Args:
            messages: OpenAI 형식 메시지 목록
            tools: OpenAI function calling 형식 tool 정의
            model: 모델 (없으면 기본값)
            temperature: temperature (없으면 기본값)
            max_tokens: 최대 토큰 수

        Returns:
            ChatCompletion

        Raises:
            LLMError: API 키 미설정, HTTP 에러, 연결 실패
        """
        actual_model = model or self.model
        if not self.api_key:
            raise LLMError("LLM_API_KEY is not configured", provider=self.api_url, model=actual_model)

        payload = self.build_payload(messages, tools, model, temperature, max_tokens)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}"
        }

        session = await self._get_session()
        logger.debug(f"[LLM] Calling API: model={actual_model}, messages={len(messages)}, tools={len(tools or [])}")

        for attempt in range(self.max_rate_limit_retries + 1):
            try:
                async with session.post(self.api_url, headers=headers, json=payload) as response:
                    if response.status == 200:
                        data = await response.json()
                        return self.parse_response(data)

                    if response.status == 429 and attempt < self.max_rate_limit_retries:
                        retry_after = float(response.headers.get("Retry-After", self.retry_delay * (attempt + 1)))
                        logger.warning(f"[LLM] Rate limited, waiting {retry_after}s...")
                        await asyncio.sleep(retry_after)
                        continue

                    error_text = await response.text()
                    raise LLMError(
                        f"API Error ({response.status}): {error_text[:500]}",
                        provider=self.api_url,
                        model=actual_model,
                        status_code=response.status,
                    )
            except aiohttp.ClientError as e:
                raise LLMError(f"Connection error: {e}", provider=self.api_url, model=actual_model) from e

        raise LLMError("Rate limit retries exhausted", provider=self.api_url, model=actual_model, status_code=429)

    @staticmethod
    def parse_response(data: Dict[str, Any]) -> ChatCompletion:
        """OpenAI / Azure OpenAI 응답 파싱"""
        choices = data.get("choices") or []
        if not choices:
            return ChatCompletion(usage=data.get("usage") or {})

        choice = choices[0]
        message = choice.get("message") or {}

        tool_calls = []
        for raw in message.get("tool_calls") or []:
            function = raw.get("function") or {}
            arguments = function.get("arguments") or "{}"
            if isinstance(arguments, str):
                try:
                    arguments = json.loads(arguments) if arguments.strip() else {}
                except json.JSONDecodeError:
                    logger.warning(f"[LLM] Malformed tool arguments for {function.get('name')}: {arguments[:200]}")
                    arguments = {"_raw": arguments}
            tool_calls.append(ToolCall(
                id=raw.get("id", ""),
                tool_name=function.get("name", ""),
                arguments=arguments,
            ))

        return ChatCompletion(
            content=message.get("content") or "",
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason"),
            usage=data.get("usage") or {},
        )
