#!/usr/bin/env python3
"""
Snapshot Repository - 메모리 스냅샷 영속성

MemoryStore.export_snapshot() 결과를 이름별로 저장/복원하는 Repository 패턴 구현입니다.
메모리, 파일, Redis 백엔드를 지원합니다.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Optional, List, Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class SnapshotRepository(ABC):
    """
    스냅샷 저장소 추상 클래스

    다양한 백엔드 구현을 위한 인터페이스를 정의합니다.
    """

    @abstractmethod
    async def save(self, name: str, snapshot: Dict[str, Any]) -> bool:
        """스냅샷 저장"""
        pass

    @abstractmethod
    async def load(self, name: str) -> Optional[Dict[str, Any]]:
        """스냅샷 로드"""
        pass

    @abstractmethod
    async def delete(self, name: str) -> bool:
        """스냅샷 삭제"""
        pass

    @abstractmethod
    async def list_all(self) -> List[str]:
        """모든 스냅샷 이름 목록"""
        pass

    async def close(self) -> None:
        """리소스 정리"""
        return None


class InMemorySnapshotRepository(SnapshotRepository):
    """
    메모리 기반 저장소

    프로세스 재시작 시 데이터가 사라집니다. 테스트 및 단일 인스턴스용입니다.
    """

    def __init__(self):
        self._storage: Dict[str, str] = {}

    async def save(self, name: str, snapshot: Dict[str, Any]) -> bool:
        """스냅샷 저장 (JSON 직렬화로 사본 보관)"""
        self._storage[name] = json.dumps(snapshot, ensure_ascii=False)
        return True

    async def load(self, name: str) -> Optional[Dict[str, Any]]:
        data = self._storage.get(name)
        return json.loads(data) if data is not None else None

    async def delete(self, name: str) -> bool:
        return self._storage.pop(name, None) is not None

    async def list_all(self) -> List[str]:
        return sorted(self._storage.keys())


class FileSnapshotRepository(SnapshotRepository):
    """
    파일 기반 저장소

    로컬 파일 시스템에 JSON 형태로 저장합니다.
    """

    def __init__(self, storage_dir: str = "./memory_snapshots"):
        self._storage_dir = storage_dir
        os.makedirs(storage_dir, exist_ok=True)

    def _get_file_path(self, name: str) -> str:
        """파일 경로 생성"""
        # 이름에서 안전한 파일명 생성
        safe_name = name.replace("/", "_").replace("\\", "_")
        return os.path.join(self._storage_dir, f"{safe_name}.json")

    async def save(self, name: str, snapshot: Dict[str, Any]) -> bool:
        try:
            with open(self._get_file_path(name), 'w', encoding='utf-8') as f:
                json.dump(snapshot, f, ensure_ascii=False, indent=2)
            return True
        except OSError as e:
            logger.error(f"[FileSnapshotRepository] Save error: {e}")
            return False

    async def load(self, name: str) -> Optional[Dict[str, Any]]:
        file_path = self._get_file_path(name)
        if not os.path.exists(file_path):
            return None

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"[FileSnapshotRepository] Load error: {e}")
            return None

    async def delete(self, name: str) -> bool:
        file_path = self._get_file_path(name)
        if os.path.exists(file_path):
            os.remove(file_path)
            return True
        return False

    async def list_all(self) -> List[str]:
        return sorted(
            f[:-5]  # .json 제거
            for f in os.listdir(self._storage_dir)
            if f.endswith('.json')
        )


class RedisSnapshotRepository(SnapshotRepository):
    """
    Redis 기반 저장소

    여러 인스턴스가 스냅샷을 공유해야 할 때 사용합니다.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = "memory-snapshot:",
        client: Optional[redis.Redis] = None,
    ):
        self._url = url
        self._key_prefix = key_prefix
        self._client = client

    def _get_client(self) -> redis.Redis:
        """Redis 클라이언트 획득 (지연 생성)"""
        if self._client is None:
            self._client = redis.from_url(self._url, encoding="utf-8", decode_responses=True)
        return self._client

    def _get_key(self, name: str) -> str:
        """Redis 키 생성"""
        return f"{self._key_prefix}{name}"

    async def save(self, name: str, snapshot: Dict[str, Any]) -> bool:
        try:
            await self._get_client().set(self._get_key(name), json.dumps(snapshot, ensure_ascii=False))
            return True
        except redis.RedisError as e:
            logger.error(f"[RedisSnapshotRepository] Save error: {e}")
            return False

    async def load(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            data = await self._get_client().get(self._get_key(name))
        except redis.RedisError as e:
            logger.error(f"[RedisSnapshotRepository] Load error: {e}")
            return None
        return json.loads(data) if data else None

    async def delete(self, name: str) -> bool:
        try:
            return await self._get_client().delete(self._get_key(name)) > 0
        except redis.RedisError as e:
            logger.error(f"[RedisSnapshotRepository] Delete error: {e}")
            return False

    async def list_all(self) -> List[str]:
        try:
            keys = await self._get_client().keys(f"{self._key_prefix}*")
        except redis.RedisError as e:
            logger.error(f"[RedisSnapshotRepository] List error: {e}")
            return []
        return sorted(k[len(self._key_prefix):] for k in keys)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Repository Factory
def create_snapshot_repository(
    backend: str = "memory",
    **kwargs
) -> SnapshotRepository:
    """
    Repository 팩토리 함수

    Args:
        backend: 백엔드 유형 ("memory", "file", "redis")
        **kwargs: 백엔드별 설정

    Returns:
        SnapshotRepository 구현체
    """
    if backend == "memory":
        return InMemorySnapshotRepository()
    elif backend == "file":
        return FileSnapshotRepository(
            storage_dir=kwargs.get("storage_dir", "./memory_snapshots")
        )
    elif backend == "redis":
        return RedisSnapshotRepository(
            url=kwargs.get("url") or "redis://localhost:6379/0",
            key_prefix=kwargs.get("key_prefix", "memory-snapshot:")
        )
    else:
        raise ValueError(f"Unknown snapshot backend: {backend}")
