"""
Retrieval - 지식 베이스 컨텍스트 검색

Orchestrator는 enable_rag 요청에 대해 Retriever.retrieve(prompt)를 호출하고,
비어 있지 않은 결과를 "Context from knowledge base" 프롬프트로 감쌉니다.
검색 실패는 컨텍스트 없음으로 처리됩니다.
"""

import logging
import re
from typing import List, Optional, Protocol, Set, Tuple

from context.context_cache import ContextCache
from context.memory import LongTermMemoryEntry, MemoryStore
from errors import async_handle_errors

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r"\w+")


def tokenize(text: str) -> Set[str]:
    """소문자 단어 토큰 (길이 > 2)"""
    return {token for token in _TOKEN_PATTERN.findall(text.lower()) if len(token) > 2}


class Retriever(Protocol):
    """지식 검색 인터페이스"""

    async def retrieve(self, query: str, k: int = 4) -> Optional[str]:
        ...


class LongTermMemoryRetriever:
    """
    Long-term memory 기반 Retriever

    책임:
    - 질의와 long-term 항목 간 단어 겹침 점수 계산 (importance 가중)
    - 상위 k개를 "[1] text\\n\\n[2] text" 형식으로 반환
    - 결과를 project context cache에 보관 (long-term 변경 시 무효화)
    """

    CACHE_PREFIX = "retrieval:"

    def __init__(
        self,
        memory_store: MemoryStore,
        cache: Optional[ContextCache[str]] = None,
        default_k: int = 4,
    ):
        """
        Args:
            memory_store: long-term 항목을 보관하는 MemoryStore
            cache: 검색 결과 캐시 (없으면 캐시하지 않음)
            default_k: 기본 반환 개수
        """
        self._memory_store = memory_store
        self._cache = cache
        self._default_k = default_k

    @async_handle_errors(default_return=None)
    async def retrieve(self, query: str, k: Optional[int] = None) -> Optional[str]:
        """
        질의에 맞는 컨텍스트 검색

        Args:
            query: 사용자 질의
            k: 반환할 최대 항목 수

        Returns:
            포맷된 컨텍스트 문자열, 일치 항목이 없으면 None
        """
        k = k or self._default_k
        if self._cache is None:
            return self._search(query, k) or None

        key = f"{self.CACHE_PREFIX}{k}:{' '.join(sorted(tokenize(query)))}"

        # 일치 항목 없음도 ""로 캐시
        async def load() -> str:
            return self._search(query, k)

        return await self._cache.get_or_load(key, load) or None

    def invalidate(self) -> int:
        """캐시된 검색 결과 제거 (long-term 메모리 변경 시 호출)"""
        if self._cache is None:
            return 0
        keys = [key for key in self._cache.keys() if key.startswith(self.CACHE_PREFIX)]
        for key in keys:
            self._cache.invalidate(key)
        return len(keys)

    def _search(self, query: str, k: int) -> str:
        ranked = self.rank(query, self._memory_store.all_long_term())[:k]
        if not ranked:
            return ""

        logger.debug(f"[Retriever] {len(ranked)} long-term entries matched")
        return "\n\n".join(f"[{i}] {entry.content}" for i, (_, entry) in enumerate(ranked, 1))

    @staticmethod
    def rank(
        query: str,
        entries: List[LongTermMemoryEntry],
    ) -> List[Tuple[float, LongTermMemoryEntry]]:
        """겹치는 단어 수 × (1 + importance) 점수로 정렬, 점수 0은 제외"""
        query_tokens = tokenize(query)
        if not query_tokens:
            return []

        scored = []
        for entry in entries:
            overlap = len(query_tokens & tokenize(entry.content))
            if overlap:
                scored.append((overlap * (1.0 + entry.importance), entry))

        scored.sort(key=lambda item: item[0], reverse=True)
        return scored
