"""
Memory Store for agent runs.
Provides per-session conversation history with inactivity eviction and a
session-independent long-term memory with explicit pruning.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from errors import ValidationError

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
LARGE_SESSION_MESSAGES = 50


def parse_timestamp(value: Optional[str], default: datetime) -> datetime:
    """
    Parse an ISO timestamp into the naive local time the store uses.

    Offset-aware values (including a trailing "Z") are converted to local time.
    """
    if not value:
        return default
    if not isinstance(value, str):
        raise TypeError(f"Timestamp must be an ISO string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


class TurnRole(str, Enum):
    """Speaker of a conversation turn."""
    SYSTEM = "system"
    HUMAN = "human"
    AGENT = "agent"


@dataclass
class ConversationTurn:
    """A single message in a session."""
    role: TurnRole
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationTurn":
        return cls(
            role=TurnRole(data["role"]),
            content=data["content"],
            timestamp=parse_timestamp(data.get("timestamp"), datetime.now()),
        )


@dataclass
class SessionMemory:
    """Conversation state for one session. Turns are append-only and chronological."""
    session_id: str
    turns: List[ConversationTurn] = field(default_factory=list)
    context: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    last_accessed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "turns": [turn.to_dict() for turn in self.turns],
            "context": self.context,
            "createdAt": self.created_at.isoformat(),
            "lastAccessedAt": self.last_accessed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionMemory":
        now = datetime.now()
        return cls(
            session_id=data["sessionId"],
            turns=[ConversationTurn.from_dict(t) for t in data.get("turns", [])],
            context=dict(data.get("context") or {}),
            created_at=parse_timestamp(data.get("createdAt"), now),
            last_accessed_at=parse_timestamp(data.get("lastAccessedAt"), now),
        )


@dataclass
class LongTermMemoryEntry:
    """A fact persisted independently of any session."""
    id: str
    content: str
    category: str = "general"
    importance: float = 0.5  # 0-1
    embedding: Optional[List[float]] = None
    access_count: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    last_accessed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "content": self.content,
            "category": self.category,
            "importance": self.importance,
            "embedding": self.embedding,
            "accessCount": self.access_count,
            "createdAt": self.created_at.isoformat(),
            "lastAccessedAt": self.last_accessed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LongTermMemoryEntry":
        now = datetime.now()
        return cls(
            id=data["id"],
            content=data["content"],
            category=data.get("category", "general"),
            importance=float(data.get("importance", 0.5)),
            embedding=data.get("embedding"),
            access_count=int(data.get("accessCount", 0)),
            created_at=parse_timestamp(data.get("createdAt"), now),
            last_accessed_at=parse_timestamp(data.get("lastAccessedAt"), now),
        )

    def access(self, now: Optional[datetime] = None) -> None:
        """Record memory access."""
        self.last_accessed_at = now or datetime.now()
        self.access_count += 1


class MemoryStore:
    """
    Memory store for agent sessions.

    Provides:
    - Per-session conversation history (created on first access)
    - Per-session context map (last execution metrics, tools, model)
    - Background sweep of sessions inactive past a fixed window
    - Long-term memory with category search and access tracking
    - Snapshot export/import, pruning and analytics

    Example:
        memory = MemoryStore(inactivity_timeout=timedelta(minutes=30))

        memory.add_turn("session-1", TurnRole.HUMAN, "What is 2+2?")
        memory.add_turn("session-1", TurnRole.AGENT, "4")
        history = memory.recent_history("session-1", 10)

        memory.start_sweeper(interval_seconds=300)
        ...
        await memory.stop_sweeper()
    """

    def __init__(
        self,
        inactivity_timeout: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the memory store.

        Args:
            inactivity_timeout: Sessions idle longer than this are swept
            clock: Time source for timestamps
        """
        self.inactivity_timeout = inactivity_timeout
        self._clock = clock

        self._sessions: Dict[str, SessionMemory] = {}
        self._long_term: Dict[str, LongTermMemoryEntry] = {}
        self._sweeper_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _get_or_create_session(self, session_id: str) -> SessionMemory:
        session = self._sessions.get(session_id)
        if session is None:
            now = self._clock()
            session = SessionMemory(session_id=session_id, created_at=now, last_accessed_at=now)
            self._sessions[session_id] = session
            logger.debug(f"Created session memory: {session_id}")
        return session

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def add_turn(self, session_id: str, role: TurnRole, content: str) -> ConversationTurn:
        """
        Append a turn to a session, creating the session if absent.

        Args:
            session_id: Session identifier
            role: Speaker role
            content: Message text

        Returns:
            The appended turn
        """
        session = self._get_or_create_session(session_id)
        now = self._clock()
        turn = ConversationTurn(role=TurnRole(role), content=content, timestamp=now)
        session.turns.append(turn)
        session.last_accessed_at = now
        return turn

    def recent_history(self, session_id: str, n: int = 10) -> List[ConversationTurn]:
        """Return the last n turns of a session in chronological order."""
        session = self._sessions.get(session_id)
        if session is None or n <= 0:
            return []
        session.last_accessed_at = self._clock()
        return list(session.turns[-n:])

    def update_context(self, session_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Merge updates into a session's context map."""
        session = self._get_or_create_session(session_id)
        session.context.update(updates)
        session.last_accessed_at = self._clock()
        return dict(session.context)

    def get_context(self, session_id: str) -> Dict[str, Any]:
        session = self._sessions.get(session_id)
        return dict(session.context) if session else {}

    def clear_session(self, session_id: str) -> bool:
        """Delete a session. Returns True if it existed."""
        removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info(f"Cleared session memory: {session_id}")
        return removed

    def list_sessions(self) -> List[Dict[str, Any]]:
        """Summaries of all active sessions, most recently accessed first."""
        sessions = sorted(self._sessions.values(), key=lambda s: s.last_accessed_at, reverse=True)
        return [
            {
                "sessionId": s.session_id,
                "messageCount": len(s.turns),
                "createdAt": s.created_at.isoformat(),
                "lastAccessedAt": s.last_accessed_at.isoformat(),
            }
            for s in sessions
        ]

    def get_session_stats(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Per-session stats, or None for an unknown session."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        return {
            "sessionId": session.session_id,
            "messageCount": len(session.turns),
            "lastExecutionTime": session.context.get("lastExecutionTime"),
            "lastToolsUsed": session.context.get("lastToolsUsed", []),
            "lastModel": session.context.get("lastModel"),
            "createdAt": session.created_at.isoformat(),
            "lastAccessedAt": session.last_accessed_at.isoformat(),
        }

    def sweep_inactive(self, now: Optional[datetime] = None) -> int:
        """
        Remove sessions inactive longer than the inactivity window.

        Returns:
            Number of sessions removed
        """
        now = now or self._clock()
        cutoff = now - self.inactivity_timeout
        stale = [sid for sid, s in self._sessions.items() if s.last_accessed_at < cutoff]

        for session_id in stale:
            del self._sessions[session_id]

        if stale:
            logger.info(f"Swept {len(stale)} inactive sessions")
        return len(stale)

    def start_sweeper(self, interval_seconds: float = 300.0) -> None:
        """Start the background inactivity sweep on the running event loop."""
        if self._sweeper_task and not self._sweeper_task.done():
            return
        self._sweeper_task = asyncio.create_task(self._sweep_loop(interval_seconds))
        logger.info(f"Started session sweeper (interval: {interval_seconds}s)")

    async def stop_sweeper(self) -> None:
        """Stop the background sweep task."""
        task, self._sweeper_task = self._sweeper_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped session sweeper")

    async def _sweep_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                self.sweep_inactive()
            except Exception as e:
                logger.exception(f"Session sweep failed: {e}")

    # ------------------------------------------------------------------
    # Long-term memory
    # ------------------------------------------------------------------

    def add_long_term(
        self,
        content: str,
        category: str = "general",
        importance: float = 0.5,
        embedding: Optional[List[float]] = None,
    ) -> LongTermMemoryEntry:
        """
        Add a long-term memory entry.

        Args:
            content: Memory content
            category: Free-form category used for search
            importance: Importance score (0-1)
            embedding: Optional embedding vector

        Returns:
            The created entry
        """
        if not 0.0 <= importance <= 1.0:
            raise ValidationError("importance must be between 0 and 1", field="importance")

        now = self._clock()
        entry = LongTermMemoryEntry(
            id=str(uuid.uuid4()),
            content=content,
            category=category,
            importance=importance,
            embedding=embedding,
            created_at=now,
            last_accessed_at=now,
        )
        self._long_term[entry.id] = entry
        logger.debug(f"Added long-term memory ({category})")
        return entry

    def get_long_term(self, entry_id: str) -> Optional[LongTermMemoryEntry]:
        entry = self._long_term.get(entry_id)
        if entry:
            entry.access(self._clock())
        return entry

    def search_long_term(
        self,
        category: Optional[str] = None,
        query: Optional[str] = None,
        limit: int = 10,
    ) -> List[LongTermMemoryEntry]:
        """
        Search long-term memory.

        Args:
            category: Filter by category
            query: Case-insensitive substring filter on content
            limit: Maximum entries to return

        Returns:
            Matching entries, most important then most recent first
        """
        entries = list(self._long_term.values())

        if category:
            entries = [e for e in entries if e.category == category]

        if query:
            needle = query.lower()
            entries = [e for e in entries if needle in e.content.lower()]

        entries.sort(key=lambda e: (e.importance, e.last_accessed_at), reverse=True)
        entries = entries[:limit]

        now = self._clock()
        for entry in entries:
            entry.access(now)

        return entries

    def all_long_term(self) -> List[LongTermMemoryEntry]:
        """All long-term entries without access tracking."""
        return list(self._long_term.values())

    def delete_long_term(self, entry_id: str) -> bool:
        return self._long_term.pop(entry_id, None) is not None

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def export_snapshot(self) -> Dict[str, Any]:
        """Export all memory as a serializable snapshot."""
        return {
            "version": SNAPSHOT_VERSION,
            "exportedAt": self._clock().isoformat(),
            "sessions": [s.to_dict() for s in self._sessions.values()],
            "longTermMemory": [e.to_dict() for e in self._long_term.values()],
        }

    def import_snapshot(self, data: Dict[str, Any], merge: bool = True) -> Dict[str, int]:
        """
        Import a snapshot produced by export_snapshot.

        Args:
            data: Snapshot dictionary
            merge: Keep existing state (imported ids overwrite) when True

        Returns:
            Counts of imported sessions and long-term entries

        Raises:
            ValidationError: If the snapshot is malformed
        """
        if not isinstance(data, dict):
            raise ValidationError("Snapshot must be an object", field="snapshot")

        raw_sessions = data.get("sessions", [])
        raw_long_term = data.get("longTermMemory", [])
        if not isinstance(raw_sessions, list) or not isinstance(raw_long_term, list):
            raise ValidationError(
                "Snapshot 'sessions' and 'longTermMemory' must be lists",
                field="snapshot",
            )

        # Parse everything before touching state
        try:
            sessions = [SessionMemory.from_dict(s) for s in raw_sessions]
            long_term = [LongTermMemoryEntry.from_dict(e) for e in raw_long_term]
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed snapshot: {e}", field="snapshot") from e

        if not merge:
            self._sessions.clear()
            self._long_term.clear()

        for session in sessions:
            self._sessions[session.session_id] = session
        for entry in long_term:
            self._long_term[entry.id] = entry

        logger.info(f"Imported {len(sessions)} sessions and {len(long_term)} long-term memories")

        return {
            "sessionsImported": len(sessions),
            "longTermImported": len(long_term),
        }

    def prune(
        self,
        max_sessions: Optional[int] = None,
        max_messages_per_session: Optional[int] = None,
        max_long_term_entries: Optional[int] = None,
        keep_recent_days: Optional[int] = None,
    ) -> Dict[str, int]:
        """
        Prune memory by count and age limits.

        Args:
            max_sessions: Keep only the most recently accessed sessions
            max_messages_per_session: Truncate each session to its last N turns
            max_long_term_entries: Keep the most important, then most recent entries
            keep_recent_days: Drop sessions and entries not accessed within this many days

        Returns:
            Counts of removed sessions, messages and long-term entries
        """
        sessions_removed = 0
        messages_removed = 0
        long_term_removed = 0

        if keep_recent_days is not None:
            cutoff = self._clock() - timedelta(days=keep_recent_days)
            for session_id in [sid for sid, s in self._sessions.items() if s.last_accessed_at < cutoff]:
                del self._sessions[session_id]
                sessions_removed += 1
            for entry_id in [eid for eid, e in self._long_term.items() if e.last_accessed_at < cutoff]:
                del self._long_term[entry_id]
                long_term_removed += 1

        if max_sessions is not None and len(self._sessions) > max_sessions:
            ordered = sorted(self._sessions.values(), key=lambda s: s.last_accessed_at, reverse=True)
            for session in ordered[max_sessions:]:
                del self._sessions[session.session_id]
                sessions_removed += 1

        if max_messages_per_session is not None:
            for session in self._sessions.values():
                excess = len(session.turns) - max_messages_per_session
                if excess > 0:
                    session.turns = session.turns[excess:]
                    messages_removed += excess

        if max_long_term_entries is not None and len(self._long_term) > max_long_term_entries:
            ordered = sorted(
                self._long_term.values(),
                key=lambda e: (e.importance, e.last_accessed_at),
                reverse=True,
            )
            for entry in ordered[max_long_term_entries:]:
                del self._long_term[entry.id]
                long_term_removed += 1

        logger.info(
            f"Pruned memory: {sessions_removed} sessions, {messages_removed} messages, "
            f"{long_term_removed} long-term entries"
        )

        return {
            "sessionsRemoved": sessions_removed,
            "messagesRemoved": messages_removed,
            "longTermRemoved": long_term_removed,
        }

    def analytics(self) -> Dict[str, Any]:
        """Usage analytics and memory pressure."""
        now = self._clock()
        cutoff = now - self.inactivity_timeout

        total_sessions = len(self._sessions)
        total_messages = sum(len(s.turns) for s in self._sessions.values())
        total_long_term = len(self._long_term)

        by_category: Dict[str, int] = {}
        for entry in self._long_term.values():
            by_category[entry.category] = by_category.get(entry.category, 0) + 1

        if total_sessions > 100 or total_long_term > 1000:
            pressure = "high"
        elif total_sessions > 50 or total_long_term > 500:
            pressure = "medium"
        else:
            pressure = "low"

        return {
            "totalSessions": total_sessions,
            "totalMessages": total_messages,
            "averageMessagesPerSession": round(total_messages / total_sessions, 2) if total_sessions else 0,
            "totalLongTermEntries": total_long_term,
            "longTermByCategory": by_category,
            "staleSessions": [sid for sid, s in self._sessions.items() if s.last_accessed_at < cutoff],
            "largeSessions": [
                sid for sid, s in self._sessions.items() if len(s.turns) > LARGE_SESSION_MESSAGES
            ],
            "memoryPressure": pressure,
        }

    def get_stats(self) -> Dict[str, Any]:
        """Get memory store statistics."""
        return {
            "session_count": len(self._sessions),
            "message_count": sum(len(s.turns) for s in self._sessions.values()),
            "long_term_count": len(self._long_term),
            "inactivity_timeout_seconds": self.inactivity_timeout.total_seconds(),
            "sweeper_running": bool(self._sweeper_task and not self._sweeper_task.done()),
        }
