"""
Context and Memory management for the agentic task server.
Handles session memory, long-term memory, snapshots and the context cache.
"""

from .context_cache import ContextCache, CacheEntry
from .memory import (
    MemoryStore,
    SessionMemory,
    ConversationTurn,
    LongTermMemoryEntry,
    TurnRole,
)
from .snapshot_repository import (
    SnapshotRepository,
    InMemorySnapshotRepository,
    FileSnapshotRepository,
    RedisSnapshotRepository,
    create_snapshot_repository,
)

__all__ = [
    # Cache
    "ContextCache",
    "CacheEntry",
    # Memory
    "MemoryStore",
    "SessionMemory",
    "ConversationTurn",
    "LongTermMemoryEntry",
    "TurnRole",
    # Snapshots
    "SnapshotRepository",
    "InMemorySnapshotRepository",
    "FileSnapshotRepository",
    "RedisSnapshotRepository",
    "create_snapshot_repository",
]
